"""
Classificador de status da análise de médias.

Compara o estoque distribuído na separação ativa com a quantidade de caixas
declarada no sistema e com a média informada, produzindo um dos status
``OK``, ``ATENÇÃO`` ou ``CRÍTICO`` e as métricas derivadas.

Regras (a primeira que casar vence):

1. ``estoque_atual > quantidade_caixas`` -> ``CRÍTICO``
2. ``estoque_atual == 0`` -> ``OK``
3. ``media_sistema`` inteira -> ``OK``, fracionária -> ``ATENÇÃO``
"""
from collections import namedtuple
from numbers import Real

from errors import ValidationError

STATUS_OK = 'OK'
STATUS_ATENCAO = 'ATENÇÃO'
STATUS_CRITICO = 'CRÍTICO'
STATUS_VALIDOS = (STATUS_OK, STATUS_ATENCAO, STATUS_CRITICO)

ClassificacaoMedia = namedtuple('ClassificacaoMedia', ['status', 'diferenca_caixas', 'media_real'])


def _validar_numero(nome, valor):
    # bool é subclasse de int, mas não é uma quantidade
    if isinstance(valor, bool) or not isinstance(valor, Real):
        raise ValidationError(f'Campo {nome} deve ser numérico')
    if valor != valor:
        raise ValidationError(f'Campo {nome} deve ser numérico')
    if valor < 0:
        raise ValidationError(f'Campo {nome} não pode ser negativo')
    return valor


def classify(estoque_atual, quantidade_caixas, media_sistema, quantidade_kg=0) -> ClassificacaoMedia:
    """Classifica um item da análise de médias.

    Args:
        estoque_atual: soma das quantidades distribuídas nas lojas
        quantidade_caixas: caixas declaradas no sistema
        media_sistema: média (kg por caixa) declarada
        quantidade_kg: peso total declarado, usado apenas para ``media_real``

    Raises:
        ValidationError: entrada não numérica ou negativa
    """
    estoque_atual = _validar_numero('estoque_atual', estoque_atual)
    quantidade_caixas = _validar_numero('quantidade_caixas', quantidade_caixas)
    media_sistema = _validar_numero('media_sistema', media_sistema)
    quantidade_kg = _validar_numero('quantidade_kg', quantidade_kg)

    if estoque_atual > quantidade_caixas:
        status = STATUS_CRITICO
    elif estoque_atual == 0:
        status = STATUS_OK
    elif float(media_sistema).is_integer():
        status = STATUS_OK
    else:
        status = STATUS_ATENCAO

    diferenca_caixas = quantidade_caixas - estoque_atual
    media_real = round(quantidade_kg / estoque_atual, 2) if estoque_atual > 0 else 0

    return ClassificacaoMedia(status, diferenca_caixas, media_real)


def calcular_media_sistema(quantidade_kg, quantidade_caixas):
    """Média kg/caixa; 0 quando não há caixas."""
    if not quantidade_caixas:
        return 0
    return quantidade_kg / quantidade_caixas
