from flask import current_app

from extensions import db
from services.repositorio import AtividadeRepo


def registrar_atividade(user_id, action, details='', type='info', metadata=None):
    """Registra uma atividade do usuário (melhor esforço).

    Chamado depois do commit da operação principal. Falhas desfazem apenas a
    gravação do log e nunca são propagadas para a requisição.
    """
    try:
        return AtividadeRepo(user_id).criar(action, details, type, metadata)
    except Exception as e:
        db.session.rollback()
        current_app.logger.warning(f"Erro ao registrar atividade '{action}' do usuário {user_id}: {e}")
        return None
