"""
Erros de domínio da aplicação e seus tratadores HTTP.

Toda falha é convertida na borda da requisição em um payload JSON
``{'error': <mensagem>}`` com o status HTTP correspondente. Nenhum stack
trace ou identificador interno é exposto ao cliente.
"""
from flask import jsonify, request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from extensions import db


class ColhetronError(Exception):
    status_code = 500
    default_message = 'Erro interno do servidor'

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self):
        payload = {'error': self.message}
        payload.update(self.extra)
        return payload


class Unauthorized(ColhetronError):
    status_code = 401
    default_message = 'Token de autorização necessário'


class Forbidden(ColhetronError):
    status_code = 403
    default_message = 'Acesso negado'


class NotFound(ColhetronError):
    status_code = 404
    default_message = 'Registro não encontrado'


class ValidationError(ColhetronError):
    status_code = 400
    default_message = 'Dados inválidos'


class Conflict(ColhetronError):
    status_code = 409
    default_message = 'Conflito com o estado atual do registro'


class InternalError(ColhetronError):
    status_code = 500


class NoActiveSeparation(NotFound):
    default_message = 'Nenhuma separação ativa encontrada'


class AlreadyOk(Conflict):
    default_message = 'Item já possui status OK'


class InvalidCutQuantity(Conflict):
    def __init__(self, store_code, quantity_to_cut, available):
        super().__init__(
            f'Quantidade a cortar ({_fmt(quantity_to_cut)}) é maior que a disponível '
            f'({_fmt(available)}) na loja {store_code}',
            store_code=store_code,
            quantity_to_cut=quantity_to_cut,
            available_quantity=available,
        )


class NothingToUpdate(ColhetronError):
    status_code = 400
    default_message = 'Nenhuma atualização necessária'


def _fmt(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def validation_details(exc: PydanticValidationError):
    """Converte erros do pydantic em uma lista campo/mensagem."""
    return [
        {
            'campo': '.'.join(str(part) for part in err.get('loc', ())),
            'mensagem': err.get('msg', ''),
        }
        for err in exc.errors()
    ]


def register_error_handlers(app):
    """Registra os tratadores de erro JSON no app."""

    @app.errorhandler(ColhetronError)
    def _handle_colhetron_error(e):
        if e.status_code >= 500:
            app.logger.error(f'{request.method} {request.path} falhou: {e.message}')
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(PydanticValidationError)
    def _handle_pydantic_error(e):
        return jsonify({'error': 'Dados inválidos', 'details': validation_details(e)}), 400

    @app.errorhandler(SQLAlchemyError)
    def _handle_db_error(e):
        db.session.rollback()
        app.logger.exception(f'Erro de banco de dados em {request.method} {request.path}')
        return jsonify({'error': 'Erro interno do servidor'}), 500

    @app.errorhandler(RequestEntityTooLarge)
    def _handle_413(e):
        return jsonify({'error': 'Arquivo muito grande'}), 413

    @app.errorhandler(404)
    def _handle_404(e):
        return jsonify({'error': 'Not Found', 'code': 404}), 404

    @app.errorhandler(405)
    def _handle_405(e):
        return jsonify({'error': 'Método não permitido', 'code': 405}), 405

    @app.errorhandler(500)
    def _handle_500(e):
        return jsonify({'error': 'Internal Server Error', 'code': 500}), 500

    @app.errorhandler(Exception)
    def _handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({'error': e.description, 'code': e.code}), e.code
        db.session.rollback()
        app.logger.exception(f'Erro inesperado em {request.method} {request.path}')
        return jsonify({'error': 'Erro interno do servidor'}), 500
