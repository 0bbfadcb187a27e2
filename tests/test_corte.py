"""
Testes do planejamento de corte (sem banco)
"""
import pytest

from errors import InvalidCutQuantity, NothingToUpdate, ValidationError
from schemas import ProductCutRequest
from services.corte import COMPLETE_CUT, PARTIAL_CUT, planejar_corte


def _pedido(**dados):
    dados.setdefault('material_code', '1001')
    return ProductCutRequest.model_validate(dados)


@pytest.mark.unit
class TestPlanejarCorte:
    """Testes dos três modos de corte"""

    def test_corte_total(self):
        plano = planejar_corte({'A': 5, 'B': 3}, _pedido(cut_type='all'))
        assert plano.affected_stores == 2
        assert plano.total_cut_quantity == 8
        assert all(op['new_quantity'] == 0 for op in plano.operacoes)
        assert all(op['operation_type'] == COMPLETE_CUT for op in plano.operacoes)

    def test_corte_especifico(self):
        pedido = _pedido(cut_type='specific', stores=[{'store_code': 'B', 'cut_all': True}])
        plano = planejar_corte({'A': 5, 'B': 3}, pedido)
        assert plano.affected_stores == 1
        assert plano.total_cut_quantity == 3
        assert plano.operacoes[0]['store_code'] == 'B'

    def test_corte_especifico_loja_ausente(self):
        pedido = _pedido(cut_type='specific', stores=[{'store_code': 'Z', 'cut_all': True}])
        with pytest.raises(NothingToUpdate):
            planejar_corte({'A': 5, 'B': 3}, pedido)

    def test_corte_especifico_sem_lojas(self):
        with pytest.raises(ValidationError):
            planejar_corte({'A': 5}, _pedido(cut_type='specific', stores=[]))

    def test_corte_parcial(self):
        pedido = _pedido(cut_type='partial', partial_cuts=[
            {'store_code': 'A', 'quantity_to_cut': 2, 'current_quantity': 5},
            {'store_code': 'B', 'quantity_to_cut': 3, 'current_quantity': 3},
        ])
        plano = planejar_corte({'A': 5, 'B': 3}, pedido)
        por_loja = {op['store_code']: op for op in plano.operacoes}
        assert por_loja['A']['new_quantity'] == 3
        assert por_loja['A']['operation_type'] == PARTIAL_CUT
        assert por_loja['B']['new_quantity'] == 0
        assert por_loja['B']['operation_type'] == COMPLETE_CUT
        assert plano.total_cut_quantity == 5

    def test_corte_parcial_maior_que_disponivel(self):
        pedido = _pedido(cut_type='partial', partial_cuts=[
            {'store_code': 'B', 'quantity_to_cut': 4, 'current_quantity': 3},
        ])
        with pytest.raises(InvalidCutQuantity) as exc:
            planejar_corte({'A': 5, 'B': 3}, pedido)
        assert exc.value.extra['store_code'] == 'B'
        assert exc.value.extra['available_quantity'] == 3
        assert 'loja B' in exc.value.message

    def test_corte_parcial_sem_cortes(self):
        with pytest.raises(ValidationError):
            planejar_corte({'A': 5}, _pedido(cut_type='partial'))

    def test_quantidades_nao_sao_alteradas(self):
        quantidades = {'A': 5, 'B': 3}
        planejar_corte(quantidades, _pedido(cut_type='all'))
        assert quantidades == {'A': 5, 'B': 3}
