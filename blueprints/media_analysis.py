from datetime import datetime

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user

from auth import require_auth
from errors import AlreadyOk, Conflict, ValidationError
from models import MediaAnalise
from schemas import (
    CustomMediaRequest, ForceStatusRequest, MediaBulkAddRequest,
    MediaBulkInsertRequest, MediaItemUpdate,
)
from services.atividades import registrar_atividade
from services.analise_medias import (
    atualizar_estoque, descartar_media_personalizada, limpar_forcado, reclassificar,
)
from services.media_status import STATUS_OK, calcular_media_sistema
from services.repositorio import MediaRepo, SeparacaoRepo

media_bp = Blueprint('media_analysis', __name__)


def _repo():
    return MediaRepo(current_user.id)


@media_bp.route('/data', methods=['GET'])
@require_auth
def data():
    """Listar análise de médias, atualizando o estoque da separação ativa"""
    itens = atualizar_estoque(current_user.id)
    return jsonify({'data': [i.to_dict() for i in itens]})


@media_bp.route('/bulk-add', methods=['POST'])
@require_auth
def bulk_add():
    """Adicionar itens com média do sistema informada"""
    dados = MediaBulkAddRequest.model_validate(request.get_json(silent=True) or {})
    sep_repo = SeparacaoRepo(current_user.id)
    sep = sep_repo.ativa()
    if sep is None:
        raise ValidationError('Nenhuma separação ativa encontrada. Crie ou ative uma separação primeiro.')

    codigos = [i.codigo for i in dados.items]
    repetidos = sorted({c for c in codigos if codigos.count(c) > 1})
    if repetidos:
        raise ValidationError(f"Códigos repetidos na lista: {', '.join(repetidos)}")

    repo = _repo()
    existentes = repo.por_codigos(codigos)
    if existentes:
        lista = sorted(existentes)
        raise Conflict(f"Os seguintes códigos já existem: {', '.join(lista)}", existingCodes=lista)

    estoque = sep_repo.estoque_por_material(sep, codigos)
    criados = []
    for entrada in dados.items:
        item = MediaAnalise(
            separation_id=sep.id,
            codigo=entrada.codigo,
            material=entrada.material,
            quantidade_kg=entrada.quantidade_kg,
            quantidade_caixas=entrada.quantidade_caixas,
            media_sistema=round(entrada.media_sistema, 2),
            estoque_atual=estoque.get(entrada.codigo, 0),
        )
        reclassificar(item)
        criados.append(repo.adicionar(item))
    repo.salvar()

    registrar_atividade(
        current_user.id,
        'Itens adicionados à análise de médias',
        f'{len(criados)} item(ns) adicionados manualmente',
        'media_analysis',
        {'separationId': sep.id, 'codigos': codigos, 'count': len(criados)}
    )

    return jsonify({
        'success': True,
        'message': f'{len(criados)} item(ns) adicionado(s) com sucesso',
        'items': [i.to_dict() for i in criados]
    }), 201


@media_bp.route('/bulk-insert', methods=['POST'])
@require_auth
def bulk_insert():
    """Inserir/atualizar itens colados (média = kg / caixas)"""
    dados = MediaBulkInsertRequest.model_validate(request.get_json(silent=True) or {})
    sep_repo = SeparacaoRepo(current_user.id)
    sep = sep_repo.ativa()

    # última ocorrência de cada código prevalece
    entradas = {e.codigo: e for e in dados.items}
    repo = _repo()
    existentes = repo.por_codigos(entradas)
    estoque = sep_repo.estoque_por_material(sep, list(entradas))

    for codigo, entrada in entradas.items():
        item = existentes.get(codigo)
        if item is None:
            item = repo.adicionar(MediaAnalise(codigo=codigo))
        item.separation_id = sep.id if sep else None
        item.material = entrada.material
        item.quantidade_kg = entrada.quantidade_kg
        item.quantidade_caixas = entrada.quantidade_caixas
        item.media_sistema = calcular_media_sistema(entrada.quantidade_kg, entrada.quantidade_caixas)
        item.estoque_atual = estoque.get(codigo, 0)
        limpar_forcado(item)
        descartar_media_personalizada(item)
        reclassificar(item)
    repo.salvar()

    registrar_atividade(
        current_user.id,
        'Análise de médias importada',
        f'{len(entradas)} item(ns) inseridos/atualizados',
        'media_analysis',
        {'count': len(entradas), 'separationId': sep.id if sep else None}
    )

    return jsonify({'message': 'Itens adicionados com sucesso', 'count': len(entradas)})


@media_bp.route('/item/<int:item_id>', methods=['PUT'])
@require_auth
def update_item(item_id):
    """Editar item; alterar quantidades recalcula a média e o status"""
    mudancas = MediaItemUpdate.model_validate(request.get_json(silent=True) or {}).model_dump(exclude_unset=True)
    repo = _repo()
    item = repo.obter(item_id)

    novo_codigo = mudancas.get('codigo')
    codigo_alterado = bool(novo_codigo) and novo_codigo != item.codigo
    if codigo_alterado and repo.por_codigo(novo_codigo):
        raise Conflict(f'Código {novo_codigo} já existe na análise')
    quantidades_alteradas = mudancas.get('quantidade_kg') is not None or mudancas.get('quantidade_caixas') is not None

    for campo, valor in mudancas.items():
        if valor is not None:
            setattr(item, campo, valor)

    if codigo_alterado:
        sep_repo = SeparacaoRepo(current_user.id)
        item.estoque_atual = sep_repo.estoque_por_material(sep_repo.ativa(), [item.codigo]).get(item.codigo, 0)
        limpar_forcado(item)
    if quantidades_alteradas:
        item.media_sistema = calcular_media_sistema(item.quantidade_kg, item.quantidade_caixas)
        limpar_forcado(item)
        descartar_media_personalizada(item)
    if codigo_alterado or quantidades_alteradas:
        reclassificar(item)

    repo.salvar()
    return jsonify(item.to_dict())


@media_bp.route('/item/<int:item_id>', methods=['DELETE'])
@require_auth
def delete_item(item_id):
    """Remover item da análise"""
    repo = _repo()
    repo.excluir(repo.obter(item_id))
    return jsonify({'message': 'Item deletado com sucesso'})


@media_bp.route('/force-status', methods=['PUT'])
@require_auth
def force_status():
    """Forçar status OK manualmente"""
    dados = ForceStatusRequest.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    item = repo.obter(dados.item_id)
    if item.status == STATUS_OK:
        raise AlreadyOk()

    status_anterior = item.status
    item.status = STATUS_OK
    item.forced_status = True
    item.forced_reason = dados.reason or 'Forçado manualmente pelo usuário'
    item.forced_by = current_user.id
    item.forced_at = datetime.utcnow()
    repo.salvar()
    current_app.logger.info(f'Status do item {item.codigo} forçado para OK pelo usuário {current_user.id}')

    registrar_atividade(
        current_user.id,
        'Status forçado para OK',
        f'Item {item.codigo} - {item.material}: {status_anterior} -> OK',
        'media_analysis',
        {'item_id': item.id, 'codigo': item.codigo, 'previous_status': status_anterior,
         'reason': item.forced_reason}
    )

    return jsonify({
        'success': True,
        'message': f'Status do item {item.codigo} forçado para OK com sucesso',
        'item': item.to_dict()
    })


@media_bp.route('/update-custom-media', methods=['PUT'])
@require_auth
def update_custom_media():
    """Substituir a média do sistema por um valor personalizado"""
    dados = CustomMediaRequest.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    item = repo.obter(dados.item_id)

    media_anterior = item.media_sistema
    media_calculada = calcular_media_sistema(item.quantidade_kg, item.quantidade_caixas)

    item.media_sistema = dados.custom_media
    limpar_forcado(item)
    reclassificar(item)
    item.metadados = {
        'is_custom_media': True,
        'original_calculated_media': round(media_calculada, 2),
        'custom_media_set_at': datetime.utcnow().isoformat(),
        'custom_media_set_by': current_user.id,
    }
    repo.salvar()

    registrar_atividade(
        current_user.id,
        'Média personalizada definida',
        f'Item {item.codigo} - {item.material}. Média alterada de {media_anterior:.2f} para {dados.custom_media:.2f}',
        'media_analysis',
        {'item_id': item.id, 'item_code': item.codigo, 'previous_media': media_anterior,
         'new_custom_media': dados.custom_media, 'original_calculated_media': media_calculada,
         'status_after_change': item.status}
    )

    return jsonify({
        'success': True,
        'message': 'Média personalizada atualizada com sucesso',
        'item': item.to_dict()
    })


@media_bp.route('/clear', methods=['DELETE'])
@require_auth
def clear():
    """Limpar toda a análise de médias do usuário"""
    removidos = _repo().limpar()
    return jsonify({'message': 'Todos os dados foram limpos com sucesso', 'deleted': removidos})
