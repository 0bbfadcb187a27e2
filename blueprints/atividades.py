from datetime import datetime

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user

from auth import require_auth
from schemas import ActivityIn, ActivityQuery
from services.repositorio import AtividadeRepo

atividades_bp = Blueprint('atividades', __name__)


def _tempo_relativo(momento, agora=None):
    if not momento:
        return ''
    segundos = int(((agora or datetime.utcnow()) - momento).total_seconds())
    if segundos < 60:
        return 'Agora mesmo'
    if segundos < 3600:
        return f'{segundos // 60} min atrás'
    if segundos < 86400:
        return f'{segundos // 3600}h atrás'
    return f'{segundos // 86400} dia(s) atrás'


@atividades_bp.route('', methods=['GET'])
@require_auth
def listar():
    """Listar atividades do usuário com paginação e filtro por tipo"""
    filtros = ActivityQuery.model_validate({
        'page': request.args.get('page', 1),
        'limit': request.args.get('limit', current_app.config['ITEMS_PER_PAGE']),
        'type': request.args.get('type') or None
    })
    paginado = AtividadeRepo(current_user.id).paginar(filtros.page, filtros.limit, filtros.type)

    atividades = []
    for atividade in paginado.items:
        dados = atividade.to_dict()
        dados['time'] = _tempo_relativo(atividade.created_at)
        atividades.append(dados)

    return jsonify({
        'activities': atividades,
        'pagination': {
            'page': filtros.page,
            'limit': filtros.limit,
            'total': paginado.total,
            'totalPages': paginado.pages
        }
    })


@atividades_bp.route('', methods=['POST'])
@require_auth
def registrar():
    """Registrar uma atividade manualmente"""
    dados = ActivityIn.model_validate(request.get_json(silent=True) or {})
    atividade = AtividadeRepo(current_user.id).criar(dados.action, dados.details, dados.type, dados.metadata)
    return jsonify({'activity': atividade.to_dict()}), 201
