"""
Testes para API de análise de médias
"""
import pytest

ITENS_PADRAO = [
    # estoque 8 <= 10 caixas, média fracionada
    {'codigo': '1001', 'material': 'BANANA PRATA', 'quantidade_kg': 100, 'quantidade_caixas': 10, 'media_sistema': 12.5},
    # estoque 6 > 4 caixas
    {'codigo': '1003', 'material': 'LARANJA PERA', 'quantidade_kg': 60, 'quantidade_caixas': 4, 'media_sistema': 15},
    # fora da separação: estoque zerado
    {'codigo': '9999', 'material': 'ABACAXI', 'quantidade_kg': 20, 'quantidade_caixas': 5, 'media_sistema': 2.5},
]


@pytest.fixture
def itens_media(client, auth_headers, separacao_ativa):
    response = client.post('/api/media-analysis/bulk-add', json={'items': ITENS_PADRAO}, headers=auth_headers)
    assert response.status_code == 201
    return {i['codigo']: i for i in response.get_json()['items']}


@pytest.mark.api
class TestMediaAnalysisAPI:
    """Testes da análise de médias"""

    def test_bulk_add_classifica_itens(self, itens_media):
        banana = itens_media['1001']
        assert banana['estoque_atual'] == 8
        assert banana['status'] == 'ATENÇÃO'
        assert banana['diferenca_caixas'] == 2
        assert banana['media_real'] == 12.5

        assert itens_media['1003']['status'] == 'CRÍTICO'
        assert itens_media['1003']['diferenca_caixas'] == -2
        assert itens_media['9999']['status'] == 'OK'
        assert itens_media['9999']['estoque_atual'] == 0

    def test_bulk_add_sem_separacao_ativa(self, client, auth_headers):
        response = client.post('/api/media-analysis/bulk-add', json={'items': ITENS_PADRAO[:1]}, headers=auth_headers)
        assert response.status_code == 400
        assert 'Nenhuma separação ativa' in response.get_json()['error']

    def test_bulk_add_codigo_existente(self, client, auth_headers, itens_media):
        response = client.post('/api/media-analysis/bulk-add', json={'items': ITENS_PADRAO[:1]}, headers=auth_headers)
        assert response.status_code == 409
        payload = response.get_json()
        assert payload['existingCodes'] == ['1001']
        assert '1001' in payload['error']

    def test_bulk_add_valor_negativo(self, client, auth_headers, separacao_ativa):
        item = dict(ITENS_PADRAO[0], quantidade_caixas=-1)
        response = client.post('/api/media-analysis/bulk-add', json={'items': [item]}, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['details'][0]['campo'].endswith('quantidade_caixas')

    def test_bulk_add_lista_vazia(self, client, auth_headers, separacao_ativa):
        response = client.post('/api/media-analysis/bulk-add', json={'items': []}, headers=auth_headers)
        assert response.status_code == 400

    def test_data_reflete_corte(self, client, auth_headers, itens_media):
        """O estoque é recalculado a partir da separação ativa em cada leitura"""
        client.post('/api/separations/product-cut', json={
            'material_code': '1003', 'cut_type': 'specific',
            'stores': [{'store_code': 'L03', 'cut_all': True}]
        }, headers=auth_headers)

        response = client.get('/api/media-analysis/data', headers=auth_headers)
        assert response.status_code == 200
        laranja = next(i for i in response.get_json()['data'] if i['codigo'] == '1003')
        assert laranja['estoque_atual'] == 2
        assert laranja['status'] == 'OK'
        assert laranja['diferenca_caixas'] == 2

    def test_data_releitura_idempotente(self, client, auth_headers, itens_media):
        primeira = client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data']
        segunda = client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data']
        campos = ('codigo', 'status', 'diferenca_caixas', 'media_real')
        assert [{c: i[c] for c in campos} for i in primeira] == [{c: i[c] for c in campos} for i in segunda]

    def test_force_status(self, client, auth_headers, itens_media):
        item_id = itens_media['1003']['id']
        response = client.put('/api/media-analysis/force-status',
                              json={'item_id': item_id, 'reason': 'Conferido no estoque'},
                              headers=auth_headers)
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['message'] == 'Status do item 1003 forçado para OK com sucesso'
        assert payload['item']['forced_by'] is not None

        laranja = next(i for i in client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data']
                       if i['id'] == item_id)
        assert laranja['status'] == 'OK'
        assert laranja['forced_status'] is True
        assert laranja['forced_reason'] == 'Conferido no estoque'

    def test_force_status_item_ja_ok(self, client, auth_headers, itens_media):
        response = client.put('/api/media-analysis/force-status',
                              json={'item_id': itens_media['9999']['id']}, headers=auth_headers)
        assert response.status_code == 409
        assert response.get_json()['error'] == 'Item já possui status OK'

    def test_force_status_item_de_outro_usuario(self, client, outro_auth_headers, itens_media):
        response = client.put('/api/media-analysis/force-status',
                              json={'item_id': itens_media['1003']['id']}, headers=outro_auth_headers)
        assert response.status_code == 404

    def test_update_item_recalcula_media(self, client, auth_headers, itens_media):
        item_id = itens_media['1001']['id']
        response = client.put(f'/api/media-analysis/item/{item_id}',
                              json={'quantidade_kg': 80, 'quantidade_caixas': 10}, headers=auth_headers)
        assert response.status_code == 200
        item = response.get_json()
        assert item['media_sistema'] == 8
        assert item['status'] == 'OK'
        assert item['media_real'] == 10

    def test_update_item_limpa_status_forcado(self, client, auth_headers, itens_media):
        item_id = itens_media['1003']['id']
        client.put('/api/media-analysis/force-status', json={'item_id': item_id}, headers=auth_headers)
        response = client.put(f'/api/media-analysis/item/{item_id}',
                              json={'quantidade_caixas': 5}, headers=auth_headers)
        item = response.get_json()
        assert item['forced_status'] is False
        assert item['status'] == 'CRÍTICO'

    def test_update_item_inexistente(self, client, auth_headers, itens_media):
        response = client.put('/api/media-analysis/item/99999', json={'material': 'X'}, headers=auth_headers)
        assert response.status_code == 404

    def test_update_custom_media(self, client, auth_headers, itens_media):
        item_id = itens_media['1001']['id']
        response = client.put('/api/media-analysis/update-custom-media',
                              json={'item_id': item_id, 'custom_media': 12}, headers=auth_headers)
        assert response.status_code == 200
        item = response.get_json()['item']
        assert item['media_sistema'] == 12
        assert item['status'] == 'OK'
        assert item['metadata']['is_custom_media'] is True
        assert item['metadata']['original_calculated_media'] == 10

    def test_update_item_descarta_media_personalizada(self, client, auth_headers, itens_media):
        """Recalcular a média a partir das quantidades apaga a marca de média personalizada"""
        item_id = itens_media['1001']['id']
        client.put('/api/media-analysis/update-custom-media',
                   json={'item_id': item_id, 'custom_media': 3.5}, headers=auth_headers)

        response = client.put(f'/api/media-analysis/item/{item_id}', json={'quantidade_kg': 40}, headers=auth_headers)
        item = response.get_json()
        assert item['media_sistema'] == 4
        assert 'is_custom_media' not in item['metadata']
        assert 'original_calculated_media' not in item['metadata']

    def test_bulk_insert_descarta_media_personalizada(self, client, auth_headers, itens_media):
        item_id = itens_media['1001']['id']
        client.put('/api/media-analysis/update-custom-media',
                   json={'item_id': item_id, 'custom_media': 3.5}, headers=auth_headers)
        client.post('/api/media-analysis/bulk-insert', json={'items': [
            {'codigo': '1001', 'material': 'BANANA PRATA', 'quantidadeKg': 80, 'quantidadeCaixas': 8},
        ]}, headers=auth_headers)

        banana = next(i for i in client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data']
                      if i['id'] == item_id)
        assert banana['media_sistema'] == 10
        assert banana['metadata'] == {}

    def test_update_item_novo_codigo_rele_estoque(self, client, auth_headers, itens_media):
        """Trocar o código reclassifica com o estoque do novo material"""
        response = client.put(f"/api/media-analysis/item/{itens_media['1003']['id']}",
                              json={'codigo': '8888'}, headers=auth_headers)
        item = response.get_json()
        assert item['estoque_atual'] == 0
        assert item['status'] == 'OK'

        client.delete(f"/api/media-analysis/item/{itens_media['1003']['id']}", headers=auth_headers)
        response = client.put(f"/api/media-analysis/item/{itens_media['9999']['id']}",
                              json={'codigo': '1003'}, headers=auth_headers)
        item = response.get_json()
        assert item['estoque_atual'] == 6
        assert item['diferenca_caixas'] == -1
        assert item['status'] == 'CRÍTICO'

    def test_update_item_codigo_duplicado(self, client, auth_headers, itens_media):
        response = client.put(f"/api/media-analysis/item/{itens_media['9999']['id']}",
                              json={'codigo': '1001'}, headers=auth_headers)
        assert response.status_code == 409

    def test_update_custom_media_fora_do_intervalo(self, client, auth_headers, itens_media):
        response = client.put('/api/media-analysis/update-custom-media',
                              json={'item_id': itens_media['1001']['id'], 'custom_media': 1000},
                              headers=auth_headers)
        assert response.status_code == 400

    def test_bulk_insert_calcula_media(self, client, auth_headers, separacao_ativa):
        response = client.post('/api/media-analysis/bulk-insert', json={'items': [
            {'codigo': '1001', 'material': 'BANANA PRATA', 'quantidadeKg': 80, 'quantidadeCaixas': 8},
            {'codigo': '7777', 'material': 'MELÃO', 'quantidadeKg': 10, 'quantidadeCaixas': 0},
        ]}, headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['count'] == 2

        dados = {i['codigo']: i for i in client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data']}
        assert dados['1001']['media_sistema'] == 10
        assert dados['1001']['estoque_atual'] == 8
        assert dados['1001']['status'] == 'OK'
        assert dados['7777']['media_sistema'] == 0

    def test_bulk_insert_atualiza_existente(self, client, auth_headers, itens_media):
        response = client.post('/api/media-analysis/bulk-insert', json={'items': [
            {'codigo': '1001', 'material': 'BANANA NANICA', 'quantidadeKg': 90, 'quantidadeCaixas': 9},
        ]}, headers=auth_headers)
        assert response.status_code == 200
        dados = {i['codigo']: i for i in client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data']}
        assert len(dados) == 3
        assert dados['1001']['material'] == 'BANANA NANICA'

    def test_delete_item_e_clear(self, client, auth_headers, itens_media):
        response = client.delete(f"/api/media-analysis/item/{itens_media['9999']['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert len(client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data']) == 2

        response = client.delete('/api/media-analysis/clear', headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['deleted'] == 2
        assert client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data'] == []
