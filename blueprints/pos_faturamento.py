from flask import Blueprint, request, jsonify
from flask_login import current_user

from auth import require_auth
from schemas import PosFaturamentoRequest
from services.repositorio import FaturamentoRepo, MediaRepo, SeparacaoRepo

pos_faturamento_bp = Blueprint('pos_faturamento', __name__)

STATUS_NOVO = 'novo'
STATUS_ZERADO = 'zerado'
STATUS_FATURADO = 'faturado'
STATUS_PARCIAL = 'parcial'


def comparar(caixas_antes, estoque_atual, tem_analise):
    """Status do item depois do faturamento.

    ``caixas_antes`` vem da análise de médias; sem análise o item é novo.
    """
    diferenca = caixas_antes - estoque_atual
    if not tem_analise:
        return STATUS_NOVO, diferenca
    if estoque_atual == 0:
        return STATUS_ZERADO, diferenca
    if diferenca <= 0:
        return STATUS_FATURADO, diferenca
    return STATUS_PARCIAL, diferenca


@pos_faturamento_bp.route('', methods=['GET'])
@require_auth
def listar():
    """Comparar o estoque pós faturamento com a análise de médias"""
    sep = SeparacaoRepo(current_user.id).ativa_ou_erro()
    itens = FaturamentoRepo(current_user.id).pos_faturamento(sep)
    info = {'id': sep.id, 'isActive': True, 'status': 'active'}
    if not itens:
        return jsonify({
            'data': [],
            'message': 'Nenhum item de pós faturamento. Use "Colar Dados" para fazer upload.',
            'separationInfo': info
        })

    medias = MediaRepo(current_user.id).por_codigos({i.codigo for i in itens})
    linhas = []
    for item in itens:
        media = medias.get(item.codigo)
        caixas_antes = media.quantidade_caixas if media else 0
        status, diferenca = comparar(caixas_antes, item.estoque_atual, media is not None)
        linhas.append({
            'codigo': item.codigo,
            'material': item.material,
            'quantidade_kg': item.quantidade_kg,
            'quantidade_caixas_antes': caixas_antes,
            'quantidade_caixas_atual': item.quantidade_caixas,
            'estoque_atual': item.estoque_atual,
            'diferenca': diferenca,
            'status': status,
        })

    return jsonify({'data': linhas, 'separationInfo': info})


@pos_faturamento_bp.route('', methods=['POST'])
@require_auth
def salvar():
    """Registrar a posição de estoque pós faturamento na separação ativa"""
    dados = PosFaturamentoRequest.model_validate(request.get_json(silent=True) or {})
    sep = SeparacaoRepo(current_user.id).ativa_ou_erro()
    total = FaturamentoRepo(current_user.id).salvar_pos_faturamento(sep, dados.items)
    return jsonify({'message': 'Dados salvos com sucesso', 'count': total})


@pos_faturamento_bp.route('', methods=['DELETE'])
@require_auth
def limpar():
    """Remover todos os dados de pós faturamento do usuário"""
    removidos = FaturamentoRepo(current_user.id).limpar_pos_faturamento()
    return jsonify({'message': 'Dados limpos com sucesso', 'deleted': removidos})
