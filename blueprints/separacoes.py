from datetime import datetime

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from auth import require_auth
from errors import Forbidden, NoActiveSeparation, NotFound, ValidationError
from schemas import (
    DeleteSeparationRequest, LastReinforcementQuery, ProductCutRequest, ProductSearchQuery,
    SeparationUploadForm, UpdateItemTypeRequest, UpdateQuantityRequest,
)
from services.analise_medias import atualizar_estoque
from services.atividades import registrar_atividade
from services.corte import COMPLETE_CUT, PARTIAL_CUT, executar_corte, planejar_corte
from services.planilhas import ler_linhas, ler_melancia, ler_reforco, ler_separacao
from services.reforco import REDISTRIBUICAO, REFORCO, aplicar_planilha
from services.repositorio import CadastroRepo, MediaRepo, SeparacaoRepo

separacoes_bp = Blueprint('separacoes', __name__)


def _repo():
    return SeparacaoRepo(current_user.id)


def _duracao(inicio):
    if not inicio:
        return '0h 0m'
    minutos = int((datetime.utcnow() - inicio).total_seconds() // 60)
    return f'{minutos // 60}h {minutos % 60}m'


def _qtd(valor):
    return int(valor) if float(valor).is_integer() else valor


def _limpar_analise_medias(motivo):
    """Limpa a análise de médias; falha é registrada e não interrompe a operação"""
    try:
        MediaRepo(current_user.id).limpar()
        return True
    except SQLAlchemyError as e:
        MediaRepo(current_user.id).descartar()
        current_app.logger.error(f'Erro ao limpar análise de médias ({motivo}): {e}')
        registrar_atividade(
            current_user.id,
            'Erro ao limpar análise de médias',
            f'Erro durante {motivo} da separação',
            'media_analysis',
            {'error': str(e)}
        )
        return False


@separacoes_bp.route('/upload', methods=['POST'])
@require_auth
def upload():
    """Criar separação a partir da planilha de pedidos"""
    arquivo = request.files.get('file')
    if not arquivo or not request.form.get('type') or not request.form.get('date'):
        raise ValidationError('Arquivo, tipo e data são obrigatórios')
    form = SeparationUploadForm.model_validate({'type': request.form.get('type'), 'date': request.form.get('date')})

    repo = _repo()
    if repo.ativa():
        raise ValidationError('Você já possui uma separação ativa. Finalize-a antes de criar uma nova.')

    linhas = ler_linhas(arquivo)
    lojas, itens = ler_separacao(linhas, CadastroRepo(current_user.id).tipos_diurno())

    sep = repo.criar(form.type, form.date, arquivo.filename, itens, lojas)
    current_app.logger.info(f'Separação {sep.id} criada: {len(itens)} itens, {len(lojas)} lojas')

    registrar_atividade(
        current_user.id,
        'Upload de separação',
        f'Arquivo {arquivo.filename} ({form.type}) com {len(itens)} itens e {len(lojas)} lojas',
        'upload',
        {'separationId': sep.id, 'type': form.type, 'date': form.date,
         'fileName': arquivo.filename, 'totalItems': len(itens), 'totalStores': len(lojas)}
    )

    return jsonify({
        'message': 'Separação criada com sucesso',
        'separationId': sep.id,
        'totalItems': len(itens),
        'totalStores': len(lojas),
        'separation': sep.to_dict()
    }), 201


@separacoes_bp.route('/active', methods=['GET'])
@require_auth
def active():
    """Separação ativa do usuário"""
    sep = _repo().ativa()
    return jsonify({'separation': sep.to_dict() if sep else None})


@separacoes_bp.route('/list', methods=['GET'])
@require_auth
def listar():
    """Listar separações (mais recentes primeiro)"""
    return jsonify({'separations': [s.to_dict() for s in _repo().listar()]})


@separacoes_bp.route('/data', methods=['GET'])
@require_auth
def data():
    """Grade item x loja da separação ativa"""
    repo = _repo()
    sep = repo.ativa_ou_erro()
    quantidades = repo.quantidades_separacao(sep)
    lojas = sorted({loja for por_loja in quantidades.values() for loja in por_loja})

    linhas = []
    for item in sorted(repo.itens(sep), key=lambda i: i.material_code):
        linha = {
            'id': item.id,
            'tipoSepar': item.type_separation,
            'calibre': '',
            'codigo': item.material_code,
            'descricao': item.description,
        }
        por_loja = quantidades.get(item.id, {})
        for loja in lojas:
            linha[loja] = por_loja.get(loja, 0)
        linhas.append(linha)

    return jsonify({'data': linhas, 'stores': lojas})


@separacoes_bp.route('/delete', methods=['DELETE'])
@require_auth
def delete():
    """Excluir separação com itens e quantidades"""
    dados = DeleteSeparationRequest.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    try:
        sep = repo.obter(dados.separation_id)
    except NotFound:
        raise NotFound('Separação não encontrada ou não autorizada')

    resumo = sep.to_dict()
    repo.excluir(sep)
    limpou = _limpar_analise_medias('exclusão')

    registrar_atividade(
        current_user.id,
        'Separação deletada',
        f"Separação {resumo['type']} ({resumo['file_name']}) deletada com sucesso.",
        'separation',
        {'separationId': resumo['id'], 'type': resumo['type'], 'status': resumo['status'],
         'mediaAnalysisCleared': limpou}
    )

    return jsonify({'message': 'Separação deletada com sucesso', 'mediaAnalysisCleared': limpou})


@separacoes_bp.route('/finalize', methods=['POST'])
@require_auth
def finalize():
    """Finalizar a separação ativa"""
    repo = _repo()
    sep = repo.ativa_ou_erro()
    duracao = _duracao(sep.created_at)

    repo.finalizar(sep)
    limpou = _limpar_analise_medias('finalização')

    registrar_atividade(
        current_user.id,
        'Separação finalizada',
        f'Separação {sep.type} finalizada com sucesso.',
        'separation',
        {'separationId': sep.id, 'type': sep.type, 'totalItems': sep.total_items,
         'totalStores': sep.total_stores, 'duration': duracao, 'mediaAnalysisCleared': limpou}
    )

    return jsonify({
        'message': 'Separação finalizada com sucesso',
        'separation': sep.to_dict(),
        'duration': duracao,
        'mediaAnalysisCleared': limpou
    })


@separacoes_bp.route('/update-quantity', methods=['POST'])
@require_auth
def update_quantity():
    """Atualizar a quantidade de uma loja (0 remove a linha)"""
    dados = UpdateQuantityRequest.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    sep = repo.ativa_ou_erro()
    try:
        item = repo.item(sep, dados.item_id)
    except NotFound:
        raise NotFound('Item não encontrado na separação ativa')

    repo.gravar_quantidade(item, dados.store_code, dados.quantity)
    atualizar_estoque(current_user.id, [item.material_code])
    return jsonify({'message': 'Quantidade atualizada com sucesso', 'quantity': dados.quantity})


@separacoes_bp.route('/update-item-type', methods=['PUT'])
@require_auth
def update_item_type():
    """Alterar o tipo de separação de um item"""
    dados = UpdateItemTypeRequest.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    item, sep = repo.item_do_usuario(dados.item_id)
    if sep.status != 'active':
        raise Forbidden('Apenas separações ativas podem ser editadas')

    item.type_separation = dados.type_separation
    repo.salvar()
    return jsonify({'message': 'Tipo de separação atualizado com sucesso', 'item': item.to_dict()})


@separacoes_bp.route('/product-search', methods=['GET'])
@require_auth
def product_search():
    """Buscar produtos da separação ativa por código ou descrição"""
    filtros = ProductSearchQuery.model_validate({
        'query': request.args.get('query', ''),
        'limit': request.args.get('limit', 20)
    })
    repo = _repo()
    sep = repo.ativa_ou_erro()

    produtos = []
    for item in repo.buscar_itens(sep, filtros.query, filtros.limit):
        quantidades = repo.quantidades_item(item)
        produtos.append({
            'id': item.id,
            'material_code': item.material_code,
            'description': item.description,
            'total_distributed': sum(quantidades.values()),
            'stores': [
                {'store_code': loja, 'quantity': qtd, 'item_id': item.id}
                for loja, qtd in quantidades.items()
            ]
        })

    return jsonify({'products': produtos, 'total': len(produtos)})


@separacoes_bp.route('/product-cut', methods=['POST'])
@require_auth
def product_cut():
    """Cortar quantidades de um produto na separação ativa"""
    pedido = ProductCutRequest.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    sep = repo.ativa_ou_erro()

    item = repo.item_por_material(sep, pedido.material_code, pedido.description)
    if item is None:
        raise NotFound('Produto não encontrado na separação ativa')

    quantidades = repo.quantidades_item(item)
    if not quantidades:
        raise NotFound('Nenhuma quantidade encontrada para este produto')

    plano = planejar_corte(quantidades, pedido)
    executar_corte(repo, item, plano)
    atualizar_estoque(current_user.id, [item.material_code])

    operacoes = plano.operacoes
    registrar_atividade(
        current_user.id,
        'Corte de produto realizado',
        f'Produto {pedido.material_code} ({item.description}) cortado em {plano.affected_stores} '
        f'loja(s) com total de {_qtd(plano.total_cut_quantity)} unidade(s)',
        'separation',
        {
            'separationId': sep.id,
            'separationType': sep.type,
            'separationDate': sep.date,
            'separationFileName': sep.file_name,
            'materialCode': pedido.material_code,
            'materialDescription': item.description,
            'materialRowNumber': item.row_number,
            'materialTypeSeparation': item.type_separation,
            'cutType': pedido.cut_type,
            'totalCutQuantity': plano.total_cut_quantity,
            'affectedStores': plano.affected_stores,
            'cutOperations': operacoes,
            'completeCuts': sum(1 for op in operacoes if op['operation_type'] == COMPLETE_CUT),
            'partialCuts': sum(1 for op in operacoes if op['operation_type'] == PARTIAL_CUT),
            'quantityDetails': {
                'beforeCut': sum(op['previous_quantity'] for op in operacoes),
                'afterCut': sum(op['new_quantity'] for op in operacoes),
                'totalCut': plano.total_cut_quantity,
            },
            'timestamp': datetime.utcnow().isoformat(),
        }
    )

    return jsonify({
        'success': True,
        'message': f'Corte executado com sucesso! {_qtd(plano.total_cut_quantity)} unidade(s) cortadas '
                   f'de {plano.affected_stores} loja(s)',
        'affected_stores': plano.affected_stores,
        'total_cut_quantity': plano.total_cut_quantity,
        'material_code': pedido.material_code,
        'cut_operations': operacoes
    })


def _planilha_na_separacao_ativa():
    arquivo = request.files.get('file')
    if not arquivo:
        raise ValidationError('Arquivo é obrigatório')
    repo = _repo()
    sep = repo.ativa()
    if sep is None:
        raise NoActiveSeparation('Nenhuma separação ativa encontrada. Crie uma separação antes de carregar reforços.')
    return arquivo, repo, sep


def _aplicar(modo):
    arquivo, repo, sep = _planilha_na_separacao_ativa()
    lojas, materiais = ler_reforco(ler_linhas(arquivo), somente_positivas=(modo == REDISTRIBUICAO))
    resumo = aplicar_planilha(repo, sep, materiais, CadastroRepo(current_user.id).tipos_diurno(), modo)
    atualizar_estoque(current_user.id, resumo['processedMaterialCodes'])
    current_app.logger.info(
        f"{modo} na separação {sep.id}: {resumo['processedItems']} materiais, "
        f"{resumo['newItems']} novos, {resumo['redistributedItems']} redistribuídos"
    )
    return arquivo, repo, sep, lojas, materiais, resumo


@separacoes_bp.route('/upload-reforco', methods=['POST'])
@require_auth
def upload_reforco():
    """Somar a planilha de reforço às quantidades da separação ativa"""
    arquivo, repo, sep, lojas, materiais, resumo = _aplicar(REFORCO)
    impressao = repo.registrar_reforco(sep, arquivo.filename, {'stores': lojas, 'materials': materiais})

    registrar_atividade(
        current_user.id,
        'Reforço carregado',
        f"Arquivo {arquivo.filename} com {resumo['processedItems']} material(is) na separação {sep.type}",
        'upload',
        dict(resumo, separationId=sep.id, fileName=arquivo.filename, reinforcementPrintId=impressao.id)
    )

    return jsonify(dict(
        resumo,
        success=True,
        message=f"Reforço processado com sucesso! {resumo['processedItems']} materiais processados.",
        reinforcementPrintId=impressao.id,
    ))


@separacoes_bp.route('/upload-redistribuicao', methods=['POST'])
@require_auth
def upload_redistribuicao():
    """Substituir a distribuição dos materiais da planilha na separação ativa"""
    arquivo, repo, sep, lojas, materiais, resumo = _aplicar(REDISTRIBUICAO)

    registrar_atividade(
        current_user.id,
        'Redistribuição carregada',
        f"Arquivo {arquivo.filename} com {resumo['processedItems']} material(is) na separação {sep.type}",
        'upload',
        dict(resumo, separationId=sep.id, fileName=arquivo.filename)
    )

    return jsonify(dict(
        resumo,
        success=True,
        message=f"Redistribuição processada com sucesso! {resumo['processedItems']} materiais processados."
    ))


@separacoes_bp.route('/upload-melancia', methods=['POST'])
@require_auth
def upload_melancia():
    """Gravar a carga de melancia (kg por loja) nas lojas já atendidas"""
    arquivo, repo, sep = _planilha_na_separacao_ativa()
    cargas = ler_melancia(ler_linhas(arquivo))

    codigo = current_app.config['MELANCIA_MATERIAL_CODE']
    item = repo.item_por_material(sep, codigo)
    if item is None:
        raise ValidationError(
            f'Material melancia (código {codigo}) não encontrado na separação ativa. '
            'Verifique se o material está presente na separação.'
        )

    atuais = repo.quantidades_item(item)
    atualizadas, nao_encontradas, total_kg = [], [], 0
    for loja, kg in cargas.items():
        if loja not in atuais:
            nao_encontradas.append(loja)
            continue
        repo.definir_quantidade(item, loja, kg)
        atualizadas.append(loja)
        total_kg += kg
    repo.salvar()
    atualizar_estoque(current_user.id, [codigo])

    registrar_atividade(
        current_user.id,
        'Separação de melancia carregada',
        f'{len(atualizadas)} loja(s) atualizadas com {_qtd(total_kg)} kg',
        'upload',
        {'separationId': sep.id, 'fileName': arquivo.filename, 'updatedStores': atualizadas,
         'notFoundStores': nao_encontradas, 'totalKgProcessed': total_kg}
    )

    return jsonify({
        'success': True,
        'message': 'Separação de melancia carregada com sucesso',
        'processedStores': len(cargas),
        'updatedStores': len(atualizadas),
        'notFoundStores': nao_encontradas,
        'totalKgProcessed': total_kg,
        'melanciaItemFound': True
    })


@separacoes_bp.route('/last-reinforcement', methods=['GET'])
@require_auth
def last_reinforcement():
    """Dados do último reforço carregado na separação"""
    if not request.args.get('separationId'):
        raise ValidationError('ID da separação é obrigatório')
    filtros = LastReinforcementQuery.model_validate({'separationId': request.args.get('separationId')})

    repo = _repo()
    impressao = repo.ultimo_reforco(repo.obter(filtros.separation_id))
    if impressao is None:
        raise NotFound('Nenhum dado de reforço encontrado para esta separação.')
    return jsonify({'data': impressao.dados, 'fileName': impressao.file_name,
                    'createdAt': impressao.to_dict()['created_at']})


@separacoes_bp.route('/pre-separation-summary', methods=['GET'])
@require_auth
def pre_separation_summary():
    """Totais por material e zona das lojas (zona seco ou frio conforme o tipo)"""
    repo = _repo()
    sep = repo.ativa()
    if sep is None:
        return jsonify({'data': [], 'zones': []})

    lojas = {l.prefixo: l for l in CadastroRepo(current_user.id).lojas()}
    resumo = {}
    for descricao, tipo, store_code, quantidade in repo.totais_por_descricao(sep):
        linha = resumo.setdefault((descricao, tipo), {})
        loja = lojas.get(store_code)
        if loja is None:
            continue
        zona = loja.zona_frio if tipo == 'FRIO' else loja.zona_seco
        if zona:
            linha[zona] = linha.get(zona, 0) + quantidade

    zonas = sorted({zona for por_zona in resumo.values() for zona in por_zona})
    linhas = []
    for (descricao, tipo), por_zona in resumo.items():
        linha = {'tipoSepar': tipo, 'material': descricao}
        for zona in zonas:
            linha[zona] = por_zona.get(zona, 0)
        linha['totalGeral'] = sum(por_zona.values())
        linhas.append(linha)
    linhas.sort(key=lambda l: l['material'])

    return jsonify({'data': linhas, 'zones': zonas})
