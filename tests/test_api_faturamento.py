"""
Testes para API de faturamento
"""
from io import BytesIO

import pytest
from openpyxl import load_workbook

from services.planilhas import COLUNAS_FATURAMENTO

MEDIAS_OK = [
    {'codigo': '1001', 'material': 'BANANA PRATA', 'quantidade_kg': 80, 'quantidade_caixas': 8, 'media_sistema': 10},
    {'codigo': '1003', 'material': 'LARANJA PERA', 'quantidade_kg': 90, 'quantidade_caixas': 6, 'media_sistema': 15},
]


@pytest.fixture
def lojas_com_centro(client, auth_headers):
    for prefixo, centro in (('L01', 'C101'), ('L02', 'C102'), ('L03', 'C103')):
        response = client.post('/api/cadastro/lojas', json={
            'prefixo': prefixo, 'nome': f'Loja {prefixo}', 'uf': 'SP', 'centro': centro
        }, headers=auth_headers)
        assert response.status_code == 201


def _adicionar_medias(client, headers, itens):
    response = client.post('/api/media-analysis/bulk-add', json={'items': itens}, headers=headers)
    assert response.status_code == 201


@pytest.mark.api
class TestCheckMediaStatus:
    """Testes da verificação prévia ao faturamento"""

    def test_sem_separacao_ativa(self, client, auth_headers):
        response = client.get('/api/faturamento/check-media-status', headers=auth_headers)
        assert response.status_code == 404

    def test_materiais_sem_analise(self, client, auth_headers, separacao_ativa):
        _adicionar_medias(client, auth_headers, MEDIAS_OK[:1])
        response = client.get('/api/faturamento/check-media-status', headers=auth_headers)
        assert response.status_code == 400
        payload = response.get_json()
        assert payload['missingMaterials'] == ['1003']
        assert payload['totalMaterialsInSeparation'] == 2

    def test_resumo_com_item_critico(self, client, auth_headers, separacao_ativa):
        _adicionar_medias(client, auth_headers, [
            MEDIAS_OK[0], dict(MEDIAS_OK[1], quantidade_caixas=4)
        ])
        response = client.get('/api/faturamento/check-media-status', headers=auth_headers)
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['totalItems'] == 2
        assert payload['criticalItems'] == 1
        assert payload['successRate'] == 50
        assert payload['errorItems'][0]['codigo'] == '1003'
        assert payload['summary']['canProceed'] is False
        assert payload['summary']['hasCriticalIssues'] is True

    def test_tudo_ok(self, client, auth_headers, separacao_ativa):
        _adicionar_medias(client, auth_headers, MEDIAS_OK)
        payload = client.get('/api/faturamento/check-media-status', headers=auth_headers).get_json()
        assert payload['itemsWithError'] == 0
        assert payload['successRate'] == 100
        assert payload['summary']['canProceed'] is True


@pytest.mark.api
class TestGerarFaturamento:
    """Testes da tabela e da planilha de faturamento"""

    def test_loja_sem_centro(self, client, auth_headers, separacao_ativa):
        client.post('/api/cadastro/lojas', json={'prefixo': 'L01', 'nome': 'Loja L01', 'uf': 'SP', 'centro': 'C101'},
                    headers=auth_headers)
        _adicionar_medias(client, auth_headers, MEDIAS_OK)
        response = client.get('/api/faturamento/generate-table', headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['storesWithoutCenter'] == ['L02', 'L03']

    def test_generate_table_recusa_status_nao_ok(self, client, auth_headers, separacao_ativa, lojas_com_centro):
        _adicionar_medias(client, auth_headers, [
            dict(MEDIAS_OK[0], media_sistema=10.5), MEDIAS_OK[1]
        ])
        response = client.get('/api/faturamento/generate-table', headers=auth_headers)
        assert response.status_code == 400
        payload = response.get_json()
        assert [i['codigo'] for i in payload['errorItems']] == ['1001']
        assert payload['errorItems'][0]['status'] == 'ATENÇÃO'

    def test_generate_table_material_sem_media(self, client, auth_headers, separacao_ativa, lojas_com_centro):
        _adicionar_medias(client, auth_headers, MEDIAS_OK[1:])
        response = client.get('/api/faturamento/generate-table', headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['missingMaterials'] == ['1001']

    def test_generate_table(self, client, auth_headers, separacao_ativa, lojas_com_centro):
        _adicionar_medias(client, auth_headers, MEDIAS_OK)
        response = client.get('/api/faturamento/generate-table', headers=auth_headers)
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['summary'] == {'totalItems': 4, 'uniqueMaterials': 2, 'uniqueStores': 3}
        primeira = payload['items'][0]
        assert primeira['loja'] == 'L01'
        assert primeira['centro'] == 'C101'
        assert primeira['material'] == '1001'
        assert primeira['quantidade'] == 5

    def test_generate_excel(self, client, auth_headers, separacao_ativa, lojas_com_centro):
        _adicionar_medias(client, auth_headers, MEDIAS_OK)
        response = client.post('/api/faturamento/generate-excel', headers=auth_headers)
        assert response.status_code == 200
        assert response.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        assert 'faturamento_' in response.headers['Content-Disposition']

        ws = load_workbook(BytesIO(response.data)).active
        linhas = list(ws.iter_rows(values_only=True))
        assert linhas[0] == COLUNAS_FATURAMENTO
        assert [(l[1], l[4], l[5]) for l in linhas[1:]] == [
            ('C101', '1001', 50),
            ('C101', '1003', 30),
            ('C102', '1001', 30),
            ('C103', '1003', 60),
        ]
        assert all(l[2] == 'F06' and l[3] == 'CD03' and l[6] == 'DP01' for l in linhas[1:])

    def test_generate_excel_material_sem_media(self, client, auth_headers, separacao_ativa, lojas_com_centro):
        _adicionar_medias(client, auth_headers, MEDIAS_OK[:1])
        response = client.post('/api/faturamento/generate-excel', headers=auth_headers)
        assert response.status_code == 400
        assert '1003' in response.get_json()['error']

    def test_generate_table_apos_alterar_quantidade(self, client, auth_headers, separacao_ativa, lojas_com_centro):
        """Mudança de quantidade na separação reclassifica a análise antes do faturamento"""
        _adicionar_medias(client, auth_headers, MEDIAS_OK)
        assert client.get('/api/faturamento/generate-table', headers=auth_headers).status_code == 200

        linhas = client.get('/api/separations/data', headers=auth_headers).get_json()['data']
        banana_id = next(l['id'] for l in linhas if l['codigo'] == '1001')
        client.post('/api/separations/update-quantity',
                    json={'itemId': banana_id, 'storeCode': 'L01', 'quantity': 22}, headers=auth_headers)

        response = client.get('/api/faturamento/generate-table', headers=auth_headers)
        assert response.status_code == 400
        item = response.get_json()['errorItems'][0]
        assert item['codigo'] == '1001'
        assert item['status'] == 'CRÍTICO'
        assert item['error'] == 'Problema crítico: estoque distribuído maior que a quantidade de caixas declarada'

        payload = client.get('/api/faturamento/check-media-status', headers=auth_headers).get_json()
        assert payload['criticalItems'] == 1

    def test_corte_atualiza_status_da_analise(self, client, auth_headers, separacao_ativa, lojas_com_centro):
        _adicionar_medias(client, auth_headers, [MEDIAS_OK[0], dict(MEDIAS_OK[1], quantidade_caixas=4)])
        assert client.get('/api/faturamento/generate-table', headers=auth_headers).status_code == 400

        client.post('/api/separations/product-cut', json={
            'material_code': '1003', 'cut_type': 'specific',
            'stores': [{'store_code': 'L03', 'cut_all': True}]
        }, headers=auth_headers)
        assert client.get('/api/faturamento/generate-table', headers=auth_headers).status_code == 200


@pytest.mark.api
class TestVolumeIndicator:
    """Testes do indicador de volume"""

    def test_volume(self, client, auth_headers, separacao_ativa):
        response = client.get('/api/faturamento/volume-indicator', headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json() == {'totalVolume': 14, 'totalItems': 4}

    def test_volume_sem_separacao_ativa(self, client, auth_headers):
        response = client.get('/api/faturamento/volume-indicator', headers=auth_headers)
        assert response.status_code == 404
