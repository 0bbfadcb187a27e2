"""
Motor de corte de quantidades.

``planejar_corte`` é puro: recebe as quantidades atuais de um material
(``{loja: quantidade}``, apenas valores > 0) e o pedido validado, e devolve o
plano com as operações por loja. ``executar_corte`` aplica o plano loja a
loja; cada gravação é independente e as que já foram aplicadas permanecem
mesmo se outra falhar.
"""
from collections import namedtuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from errors import InternalError, InvalidCutQuantity, NothingToUpdate, ValidationError

CUT_ALL = 'all'
CUT_SPECIFIC = 'specific'
CUT_PARTIAL = 'partial'

COMPLETE_CUT = 'complete_cut'
PARTIAL_CUT = 'partial_cut'

PlanoCorte = namedtuple('PlanoCorte', ['operacoes', 'affected_stores', 'total_cut_quantity'])


def _operacao(store_code, anterior, novo, cortado):
    return {
        'store_code': store_code,
        'previous_quantity': anterior,
        'new_quantity': novo,
        'cut_quantity': cortado,
        'operation_type': COMPLETE_CUT if novo == 0 else PARTIAL_CUT,
    }


def planejar_corte(quantidades, pedido) -> PlanoCorte:
    """Calcula as operações de corte.

    Args:
        quantidades: dict ``{store_code: quantity}`` com as quantidades atuais
        pedido: ``schemas.ProductCutRequest`` já validado

    Raises:
        ValidationError: modo ``specific``/``partial`` sem lojas informadas
        InvalidCutQuantity: corte parcial maior que a quantidade da loja
        NothingToUpdate: nenhuma loja do pedido possui quantidade
    """
    operacoes = []

    if pedido.cut_type == CUT_ALL:
        for store_code, atual in quantidades.items():
            operacoes.append(_operacao(store_code, atual, 0, atual))

    elif pedido.cut_type == CUT_SPECIFIC:
        if not pedido.stores:
            raise ValidationError('Nenhuma loja especificada para corte específico')
        selecionadas = {s.store_code for s in pedido.stores}
        for store_code, atual in quantidades.items():
            if store_code in selecionadas:
                operacoes.append(_operacao(store_code, atual, 0, atual))

    elif pedido.cut_type == CUT_PARTIAL:
        if not pedido.partial_cuts:
            raise ValidationError('Nenhuma quantidade especificada para corte parcial')
        cortes = {pc.store_code: pc for pc in pedido.partial_cuts}
        for store_code, atual in quantidades.items():
            corte = cortes.get(store_code)
            if corte is None:
                continue
            if corte.quantity_to_cut > atual:
                raise InvalidCutQuantity(store_code, corte.quantity_to_cut, atual)
            operacoes.append(_operacao(store_code, atual, atual - corte.quantity_to_cut, corte.quantity_to_cut))

    else:
        raise ValidationError(f'Tipo de corte inválido: {pedido.cut_type}')

    if not operacoes:
        raise NothingToUpdate()

    total = sum(op['cut_quantity'] for op in operacoes)
    return PlanoCorte(operacoes, len(operacoes), total)


def executar_corte(repo, item, plano):
    """Aplica o plano de corte no banco, loja a loja.

    Lojas que chegam a zero têm a linha removida; as demais são atualizadas.
    Se alguma gravação falhar, as demais seguem aplicadas e um
    ``InternalError`` é levantado ao final.
    """
    falhas = []
    for op in plano.operacoes:
        try:
            repo.gravar_quantidade(item, op['store_code'], op['new_quantity'])
        except SQLAlchemyError as e:
            repo.descartar()
            falhas.append((op['store_code'], e))
            current_app.logger.error(f"Falha ao aplicar corte na loja {op['store_code']} (item {item.id}): {e}")

    if falhas:
        raise InternalError(
            'Erro ao executar algumas atualizações do corte',
            failed_stores=[store_code for store_code, _ in falhas],
        )
