from flask import Blueprint, request, jsonify, send_file
from flask_login import current_user

from auth import require_auth
from errors import NotFound
from schemas import RelatorioQuery
from services.planilhas import XLSX_MIMETYPE, gerar_relatorio_separacao
from services.repositorio import AtividadeRepo, MediaRepo, SeparacaoRepo

relatorios_bp = Blueprint('relatorios', __name__)


def _repo():
    return SeparacaoRepo(current_user.id)


def _com_usuario(sep):
    dados = sep.to_dict()
    dados['user'] = {'name': current_user.name, 'email': current_user.email}
    return dados


def _itens_com_quantidades(repo, sep):
    quantidades = repo.quantidades_separacao(sep)
    return [
        (item, quantidades.get(item.id, {}))
        for item in sorted(repo.itens(sep), key=lambda i: i.material_code)
    ]


@relatorios_bp.route('/separations', methods=['GET'])
@require_auth
def listar():
    """Histórico de separações com filtros e paginação"""
    filtros = RelatorioQuery.model_validate({
        'type': request.args.get('type') or None,
        'status': request.args.get('status') or None,
        'dateFrom': request.args.get('dateFrom') or None,
        'dateTo': request.args.get('dateTo') or None,
        'page': request.args.get('page', 1),
        'limit': request.args.get('limit', 10),
    })
    paginado = _repo().paginar(
        filtros.page, filtros.limit, filtros.type, filtros.status, filtros.date_from, filtros.date_to
    )

    return jsonify({
        'separations': [_com_usuario(s) for s in paginado.items],
        'pagination': {
            'page': filtros.page,
            'limit': filtros.limit,
            'total': paginado.total,
            'totalPages': paginado.pages
        }
    })


@relatorios_bp.route('/separations/<int:separation_id>', methods=['GET'])
@require_auth
def detalhe(separation_id):
    """Separação com itens, quantidades por loja e atividades relacionadas"""
    repo = _repo()
    sep = repo.obter(separation_id)

    itens = []
    for item, quantidades in _itens_com_quantidades(repo, sep):
        dados = item.to_dict()
        dados['quantities'] = [{'store_code': loja, 'quantity': qtd} for loja, qtd in sorted(quantidades.items())]
        itens.append(dados)

    atividades = AtividadeRepo(current_user.id).da_separacao(sep.id)
    return jsonify({
        'separation': _com_usuario(sep),
        'items': itens,
        'activities': [a.to_dict() for a in atividades]
    })


@relatorios_bp.route('/separations/<int:separation_id>/download', methods=['GET'])
@require_auth
def download(separation_id):
    """Relatório .xlsx da separação (grade por loja e análise de médias)"""
    repo = _repo()
    sep = repo.obter(separation_id)

    itens = [
        {'codigo': item.material_code, 'descricao': item.description, 'quantidades': quantidades}
        for item, quantidades in _itens_com_quantidades(repo, sep)
    ]
    lojas = sorted({loja for item in itens for loja in item['quantidades']})
    medias = [m.to_dict() for m in MediaRepo(current_user.id).listar() if m.separation_id == sep.id]

    output = gerar_relatorio_separacao(lojas, itens, medias)
    if output is None:
        raise NotFound('Nenhum dado encontrado para gerar o relatório.')

    return send_file(
        output,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f'relatorio_{sep.id}.xlsx'
    )


@relatorios_bp.route('/separations/<int:separation_id>/reinforcements', methods=['GET'])
@require_auth
def reforcos(separation_id):
    """Reforços carregados na separação, mais recentes primeiro"""
    repo = _repo()
    sep = repo.obter(separation_id)
    return jsonify({'reinforcements': [r.to_dict() for r in repo.reforcos(sep)]})
