import os
import sys
from io import BytesIO

import pytest
from openpyxl import Workbook

# Ensure project root is on sys.path for imports when running via pytest
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app import create_app
from config import TestingConfig
from extensions import db

SENHA_PADRAO = 'senha123'

PEDIDOS_PADRAO = [
    ['Código', 'Descrição', 'L01', 'L02', 'L03'],
    ['1001', 'BANANA PRATA', 5, 3, None],
    ['1002', 'MAÇÃ FUJI', 0, 0, 0],
    ['1003', 'LARANJA PERA', 2, None, 4],
]


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.config.update({
        'TESTING': True,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def build_xlsx():
    """Monta um .xlsx em memória a partir de uma lista de linhas"""
    def _build(linhas):
        wb = Workbook()
        ws = wb.active
        for linha in linhas:
            ws.append(linha)
        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output
    return _build


def registrar_usuario(client, email='operador@colhetron.com', name='Operador Teste', password=SENHA_PADRAO):
    return client.post('/api/auth/register', json={'email': email, 'password': password, 'name': name})


@pytest.fixture
def usuario(client):
    """Usuário registrado pela API: dict com user e token"""
    response = registrar_usuario(client)
    assert response.status_code == 201
    return response.get_json()


@pytest.fixture
def auth_headers(usuario):
    return {'Authorization': f"Bearer {usuario['token']}"}


@pytest.fixture
def outro_auth_headers(client):
    response = registrar_usuario(client, email='outro@colhetron.com', name='Outro Operador')
    return {'Authorization': f"Bearer {response.get_json()['token']}"}


@pytest.fixture
def upload_separacao(client, build_xlsx):
    """Envia uma planilha de pedidos e devolve a resposta"""
    def _upload(headers, linhas=None, tipo='SP', data='2026-10-19', nome='pedidos.xlsx'):
        arquivo = build_xlsx(linhas or PEDIDOS_PADRAO)
        return client.post(
            '/api/separations/upload',
            data={'file': (arquivo, nome), 'type': tipo, 'date': data},
            headers=headers,
            content_type='multipart/form-data'
        )
    return _upload


@pytest.fixture
def separacao_ativa(upload_separacao, auth_headers):
    response = upload_separacao(auth_headers)
    assert response.status_code == 201
    return response.get_json()
