"""
Testes para reforço, redistribuição, melancia e resumos da separação ativa
"""
import pytest

from services.reforco import quantidade_redistribuicao, quantidade_reforco

CABECALHO = ['Código', 'Descrição', 'L01', 'L02', 'L03']


def _enviar(client, headers, build_xlsx, rota, linhas, nome='planilha.xlsx'):
    return client.post(
        f'/api/separations/{rota}',
        data={'file': (build_xlsx(linhas), nome)},
        headers=headers,
        content_type='multipart/form-data'
    )


def _grade(client, headers):
    return {l['codigo']: l for l in client.get('/api/separations/data', headers=headers).get_json()['data']}


@pytest.mark.unit
class TestRegrasDeQuantidade:
    """Regras de soma do reforço e de substituição da redistribuição"""

    def test_reforco_soma_ou_zera(self):
        assert quantidade_reforco(5, 2) == 7
        assert quantidade_reforco(0, 4) == 4
        assert quantidade_reforco(3, 0) == 0

    def test_redistribuicao_substitui(self):
        assert quantidade_redistribuicao(5, 1) == 1
        assert quantidade_redistribuicao(5, 0) == 0
        assert quantidade_redistribuicao(0, 3) == 3


@pytest.mark.api
class TestUploadReforco:
    """Testes do upload de reforço"""

    def test_reforco_soma_e_cria_itens(self, client, auth_headers, build_xlsx, separacao_ativa):
        response = _enviar(client, auth_headers, build_xlsx, 'upload-reforco', [
            CABECALHO,
            ['1001', 'BANANA PRATA', 2, 0, 1],
            ['2001', 'MAMÃO FORMOSA', 0, 4, 0],
        ], nome='reforco.xlsx')
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['success'] is True
        assert payload['message'] == 'Reforço processado com sucesso! 2 materiais processados.'
        assert payload['processedItems'] == 2
        assert payload['newItems'] == 1
        assert payload['newMaterialCodes'] == ['2001']
        assert payload['updatedMaterialCodes'] == ['1001']
        assert payload['redistributedMaterialCodes'] == ['1001']

        grade = _grade(client, auth_headers)
        assert (grade['1001']['L01'], grade['1001']['L02'], grade['1001']['L03']) == (7, 0, 1)
        assert grade['2001']['L02'] == 4
        assert grade['2001']['tipoSepar'] == 'SECO'
        assert grade['1003']['L01'] == 2

        ativa = client.get('/api/separations/active', headers=auth_headers).get_json()['separation']
        assert ativa['total_items'] == 3

    def test_ultimo_reforco(self, client, auth_headers, build_xlsx, separacao_ativa):
        sep_id = separacao_ativa['separationId']
        response = client.get(f'/api/separations/last-reinforcement?separationId={sep_id}', headers=auth_headers)
        assert response.status_code == 404

        _enviar(client, auth_headers, build_xlsx, 'upload-reforco',
                [CABECALHO, ['1001', 'BANANA PRATA', 1, 1, 1]], nome='reforco_manha.xlsx')
        response = client.get(f'/api/separations/last-reinforcement?separationId={sep_id}', headers=auth_headers)
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['fileName'] == 'reforco_manha.xlsx'
        assert payload['data']['stores'] == ['L01', 'L02', 'L03']
        assert payload['data']['materials'][0]['material_code'] == '1001'

    def test_ultimo_reforco_sem_id(self, client, auth_headers, separacao_ativa):
        response = client.get('/api/separations/last-reinforcement', headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'ID da separação é obrigatório'

    def test_ultimo_reforco_de_outro_usuario(self, client, auth_headers, outro_auth_headers, build_xlsx,
                                             separacao_ativa):
        _enviar(client, auth_headers, build_xlsx, 'upload-reforco', [CABECALHO, ['1001', 'BANANA PRATA', 1, 1, 1]])
        sep_id = separacao_ativa['separationId']
        response = client.get(f'/api/separations/last-reinforcement?separationId={sep_id}',
                              headers=outro_auth_headers)
        assert response.status_code == 404

    def test_reforco_sem_separacao_ativa(self, client, auth_headers, build_xlsx):
        response = _enviar(client, auth_headers, build_xlsx, 'upload-reforco',
                           [CABECALHO, ['1001', 'BANANA PRATA', 1, 1, 1]])
        assert response.status_code == 404
        assert 'Nenhuma separação ativa' in response.get_json()['error']

    def test_reforco_sem_arquivo(self, client, auth_headers, separacao_ativa):
        response = client.post('/api/separations/upload-reforco', data={}, headers=auth_headers,
                               content_type='multipart/form-data')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Arquivo é obrigatório'

    def test_reforco_registra_atividade(self, client, auth_headers, build_xlsx, separacao_ativa):
        _enviar(client, auth_headers, build_xlsx, 'upload-reforco', [CABECALHO, ['1001', 'BANANA PRATA', 1, 1, 1]])
        atividades = client.get('/api/user-activities', headers=auth_headers).get_json()['activities']
        assert atividades[0]['action'] == 'Reforço carregado'
        assert atividades[0]['metadata']['separationId'] == separacao_ativa['separationId']


@pytest.mark.api
class TestUploadRedistribuicao:
    """Testes do upload de redistribuição"""

    def test_redistribuicao_substitui_distribuicao(self, client, auth_headers, build_xlsx, separacao_ativa):
        response = _enviar(client, auth_headers, build_xlsx, 'upload-redistribuicao', [
            CABECALHO,
            ['1001', 'BANANA PRATA', 1, None, None],
        ])
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['message'] == 'Redistribuição processada com sucesso! 1 materiais processados.'
        assert payload['updatedItems'] == 1
        assert payload['redistributedItems'] == 1

        grade = _grade(client, auth_headers)
        assert grade['1001']['L01'] == 1
        assert grade['1001']['L02'] == 0
        assert grade['1003']['L03'] == 4

    def test_redistribuicao_sem_quantidade_valida(self, client, auth_headers, build_xlsx, separacao_ativa):
        response = _enviar(client, auth_headers, build_xlsx, 'upload-redistribuicao', [
            CABECALHO,
            ['1001', 'BANANA PRATA', 0, None, -2],
        ])
        assert response.status_code == 400
        assert 'quantidade válida' in response.get_json()['error']
        assert _grade(client, auth_headers)['1001']['L01'] == 5

    def test_redistribuicao_reclassifica_analise(self, client, auth_headers, build_xlsx, separacao_ativa):
        client.post('/api/media-analysis/bulk-add', json={'items': [
            {'codigo': '1001', 'material': 'BANANA PRATA', 'quantidade_kg': 40, 'quantidade_caixas': 4,
             'media_sistema': 10},
        ]}, headers=auth_headers)
        _enviar(client, auth_headers, build_xlsx, 'upload-redistribuicao',
                [CABECALHO, ['1001', 'BANANA PRATA', 1, 1, 1]])

        banana = client.get('/api/media-analysis/data', headers=auth_headers).get_json()['data'][0]
        assert banana['estoque_atual'] == 3
        assert banana['status'] == 'OK'


@pytest.mark.api
class TestUploadMelancia:
    """Testes da carga de melancia"""

    @pytest.fixture
    def separacao_com_melancia(self, upload_separacao, auth_headers):
        response = upload_separacao(auth_headers, linhas=[
            ['Código', 'Descrição', 'L01', 'L02'],
            ['100195', 'MELANCIA', 10, 20],
            ['1001', 'BANANA PRATA', 5, 3],
        ])
        assert response.status_code == 201

    def test_melancia_atualiza_lojas_existentes(self, client, auth_headers, build_xlsx, separacao_com_melancia):
        response = _enviar(client, auth_headers, build_xlsx, 'upload-melancia', [
            ['Loja', 'Nome', 'KG'],
            ['L01', 'Loja Centro', 12.5],
            ['L09', 'Loja Nova', 3],
        ])
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['processedStores'] == 2
        assert payload['updatedStores'] == 1
        assert payload['notFoundStores'] == ['L09']
        assert payload['totalKgProcessed'] == 12.5
        assert payload['melanciaItemFound'] is True

        melancia = _grade(client, auth_headers)['100195']
        assert melancia['L01'] == 12.5
        assert melancia['L02'] == 20
        assert 'L09' not in melancia

    def test_melancia_fora_da_separacao(self, client, auth_headers, build_xlsx, separacao_ativa):
        response = _enviar(client, auth_headers, build_xlsx, 'upload-melancia',
                           [['Loja', 'Nome', 'KG'], ['L01', None, 5]])
        assert response.status_code == 400
        assert 'Material melancia (código 100195)' in response.get_json()['error']

    def test_melancia_sem_lojas(self, client, auth_headers, build_xlsx, separacao_com_melancia):
        response = _enviar(client, auth_headers, build_xlsx, 'upload-melancia',
                           [['Loja', 'Nome', 'KG'], [None, None, 5]])
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Nenhuma loja encontrada na planilha'


@pytest.mark.api
class TestResumoPreSeparacao:
    """Testes do resumo por zona"""

    def test_resumo_por_zona(self, client, auth_headers, separacao_ativa):
        for prefixo, zona in (('L01', 'Z1'), ('L02', 'Z2'), ('L03', 'Z1')):
            client.post('/api/cadastro/lojas', json={
                'prefixo': prefixo, 'nome': f'Loja {prefixo}', 'uf': 'SP', 'zonaSeco': zona, 'zonaFrio': 'F1'
            }, headers=auth_headers)

        response = client.get('/api/separations/pre-separation-summary', headers=auth_headers)
        assert response.status_code == 200
        payload = response.get_json()
        assert payload['zones'] == ['Z1', 'Z2']
        assert payload['data'] == [
            {'tipoSepar': 'SECO', 'material': 'BANANA PRATA', 'Z1': 5, 'Z2': 3, 'totalGeral': 8},
            {'tipoSepar': 'SECO', 'material': 'LARANJA PERA', 'Z1': 6, 'Z2': 0, 'totalGeral': 6},
        ]

    def test_resumo_ignora_lojas_sem_cadastro(self, client, auth_headers, separacao_ativa):
        client.post('/api/cadastro/lojas', json={'prefixo': 'L01', 'nome': 'Loja L01', 'uf': 'SP', 'zonaSeco': 'Z1'},
                    headers=auth_headers)
        payload = client.get('/api/separations/pre-separation-summary', headers=auth_headers).get_json()
        assert payload['zones'] == ['Z1']
        assert [l['totalGeral'] for l in payload['data']] == [5, 2]

    def test_resumo_sem_separacao_ativa(self, client, auth_headers):
        response = client.get('/api/separations/pre-separation-summary', headers=auth_headers)
        assert response.get_json() == {'data': [], 'zones': []}
