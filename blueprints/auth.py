from datetime import datetime, timedelta
import secrets

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user

from auth import gerar_token, require_auth
from errors import Conflict, InternalError, Unauthorized, ValidationError
from extensions import db
from models import Usuario, CodigoRecuperacao
from schemas import ForgotPasswordRequest, LoginRequest, RegisterRequest, ResetPasswordRequest
from services.atividades import registrar_atividade
from services.email import enviar_codigo_recuperacao

auth_bp = Blueprint('auth', __name__)

MENSAGEM_RECUPERACAO = 'Se o email existir em nossa base, você receberá as instruções de recuperação.'


def _gerar_codigo():
    return f'{secrets.randbelow(1000000):06d}'


@auth_bp.route('/register', methods=['POST'])
def register():
    """Cadastrar novo usuário"""
    dados = RegisterRequest.model_validate(request.get_json(silent=True) or {})
    email = dados.email.lower()

    if Usuario.query.filter_by(email=email).first():
        raise Conflict('Email já está em uso')

    usuario = Usuario(email=email, name=dados.name)
    usuario.set_password(dados.password)
    db.session.add(usuario)
    db.session.commit()
    current_app.logger.info(f'Usuário registrado: {email}')

    return jsonify({
        'message': 'Usuário criado com sucesso',
        'user': usuario.to_dict(),
        'token': gerar_token(usuario)
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Autenticar usuário e emitir token"""
    dados = LoginRequest.model_validate(request.get_json(silent=True) or {})
    usuario = Usuario.query.filter_by(email=dados.email.lower()).first()

    if not usuario or not usuario.check_password(dados.password):
        current_app.logger.warning(f'Tentativa de login inválida para {dados.email}')
        raise Unauthorized('Credenciais inválidas')

    usuario.last_login = datetime.utcnow()
    db.session.commit()

    registrar_atividade(
        usuario.id,
        'Login realizado',
        f'Login no sistema via {usuario.email}',
        'login',
        {'email': usuario.email, 'ip': request.remote_addr}
    )

    return jsonify({
        'message': 'Login realizado com sucesso',
        'user': usuario.to_dict(),
        'token': gerar_token(usuario)
    })


@auth_bp.route('/me', methods=['GET'])
@require_auth
def me():
    """Dados do usuário autenticado"""
    return jsonify({'user': current_user.to_dict()})


@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    """Gerar código de recuperação e enviar por e-mail"""
    dados = ForgotPasswordRequest.model_validate(request.get_json(silent=True) or {})
    usuario = Usuario.query.filter_by(email=dados.email.lower()).first()

    # Mesma resposta exista ou não o e-mail
    if not usuario:
        return jsonify({'success': True, 'message': MENSAGEM_RECUPERACAO})

    ttl = current_app.config.get('RECOVERY_CODE_TTL_MINUTES', 15)
    codigo = CodigoRecuperacao(
        user_id=usuario.id,
        email=usuario.email,
        code=_gerar_codigo(),
        expires_at=datetime.utcnow() + timedelta(minutes=ttl),
        used=False
    )
    db.session.add(codigo)
    db.session.commit()

    if not enviar_codigo_recuperacao(usuario.email, usuario.name, codigo.code):
        raise InternalError('Erro ao enviar email de recuperação')

    return jsonify({'success': True, 'message': MENSAGEM_RECUPERACAO})


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    """Redefinir senha com o código recebido por e-mail"""
    dados = ResetPasswordRequest.model_validate(request.get_json(silent=True) or {})
    email = dados.email.lower()

    codigo = CodigoRecuperacao.query.filter_by(email=email, code=dados.code, used=False).order_by(
        CodigoRecuperacao.created_at.desc()
    ).first()
    if not codigo or not codigo.is_valid():
        raise ValidationError('Código inválido ou expirado')

    usuario = db.session.get(Usuario, codigo.user_id)
    if not usuario:
        raise ValidationError('Código inválido ou expirado')

    usuario.set_password(dados.password)
    # Invalida todos os códigos pendentes do usuário
    CodigoRecuperacao.query.filter_by(user_id=usuario.id, used=False).update({'used': True})
    db.session.commit()
    current_app.logger.info(f'Senha redefinida para {email}')

    return jsonify({'success': True, 'message': 'Senha redefinida com sucesso'})
