from flask import Blueprint, request, jsonify
from flask_login import current_user

from auth import require_auth
from schemas import PedidosGeradosRequest
from services.atividades import registrar_atividade
from services.repositorio import FaturamentoRepo, SeparacaoRepo

pedidos_gerados_bp = Blueprint('pedidos_gerados', __name__)


def _info_separacao(sep):
    return {'id': sep.id if sep else None, 'isActive': sep is not None, 'status': 'active' if sep else 'completed'}


@pedidos_gerados_bp.route('', methods=['GET'])
@require_auth
def listar():
    """Pedidos/remessas registrados pelo usuário, mais recentes primeiro"""
    sep = SeparacaoRepo(current_user.id).ativa()
    pedidos = FaturamentoRepo(current_user.id).pedidos()

    resposta = {'data': [p.to_dict() for p in pedidos], 'separationInfo': _info_separacao(sep)}
    if not pedidos:
        resposta['message'] = (
            'Nenhum pedido gerado. Use "Adicionar Pedido" ou "Colar Dados" para fazer upload.' if sep
            else 'Nenhuma separação ativa encontrada. Crie uma separação primeiro.'
        )
    return jsonify(resposta)


@pedidos_gerados_bp.route('', methods=['POST'])
@require_auth
def salvar():
    """Registrar pedidos/remessas na separação ativa"""
    dados = PedidosGeradosRequest.model_validate(request.get_json(silent=True) or {})
    sep = SeparacaoRepo(current_user.id).ativa_ou_erro()
    total = FaturamentoRepo(current_user.id).salvar_pedidos(sep, dados.items)

    registrar_atividade(
        current_user.id,
        'Pedidos gerados registrados',
        f'{total} pedido(s) registrados',
        'separation',
        {'separationId': sep.id, 'count': total}
    )
    return jsonify({'message': 'Dados salvos com sucesso', 'count': total})


@pedidos_gerados_bp.route('', methods=['DELETE'])
@require_auth
def limpar():
    """Remover todos os pedidos gerados do usuário"""
    removidos = FaturamentoRepo(current_user.id).limpar_pedidos()
    return jsonify({'message': 'Dados limpos com sucesso', 'deleted': removidos})
