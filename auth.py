from functools import wraps
from flask import request, jsonify, current_app
from flask_login import LoginManager, current_user
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from errors import Unauthorized
from extensions import db
from models import Usuario

# Configuração do Flask-Login
login_manager = LoginManager()


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=current_app.config['TOKEN_SALT'])


def gerar_token(usuario) -> str:
    """Gera o token Bearer do usuário"""
    return _serializer().dumps({'user_id': usuario.id, 'email': usuario.email, 'role': usuario.role})


def verificar_token(token: str):
    """Retorna o payload do token ou None se inválido/expirado"""
    try:
        payload = _serializer().loads(token, max_age=current_app.config['TOKEN_MAX_AGE'])
    except SignatureExpired:
        current_app.logger.info('Token expirado recebido')
        return None
    except BadSignature:
        return None
    if not isinstance(payload, dict) or 'user_id' not in payload:
        return None
    return payload


def _bearer_token():
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header.split(' ', 1)[1].strip() or None


def init_login_manager(app):
    """Inicializa o gerenciador de login"""
    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        return jsonify({'error': 'Usuário não autenticado'}), 401


@login_manager.user_loader
def load_user(user_id):
    """Carrega o usuário pelo ID"""
    return db.session.get(Usuario, int(user_id))


@login_manager.request_loader
def load_user_from_request(req):
    """Autentica a requisição pelo header Authorization: Bearer <token>"""
    token = _bearer_token()
    if not token:
        return None
    payload = verificar_token(token)
    if not payload:
        return None
    return db.session.get(Usuario, payload['user_id'])


def require_auth(f):
    """Decorador que exige um token Bearer válido"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _bearer_token():
            raise Unauthorized('Token de autorização necessário')
        if not current_user.is_authenticated:
            raise Unauthorized('Token inválido')
        return f(*args, **kwargs)
    return decorated_function
