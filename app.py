import logging
from logging.handlers import RotatingFileHandler
import os
import time
import uuid

from flask import Flask, request, g, jsonify

from config import Config
from extensions import init_extensions
from errors import register_error_handlers
from auth import init_login_manager
from blueprints.auth import auth_bp
from blueprints.cadastro import cadastro_bp
from blueprints.separacoes import separacoes_bp
from blueprints.media_analysis import media_bp
from blueprints.faturamento import faturamento_bp
from blueprints.atividades import atividades_bp
from blueprints.relatorios import relatorios_bp
from blueprints.pedidos_gerados import pedidos_gerados_bp
from blueprints.pos_faturamento import pos_faturamento_bp
from blueprints.estatisticas import estatisticas_bp


class _ReqIdFilter(logging.Filter):
    def filter(self, record):
        try:
            record.request_id = getattr(g, 'request_id', None) or '-'
        except RuntimeError:
            # fora de contexto de requisição
            record.request_id = '-'
        return True


def _configure_logging(app):
    log_level_name = str(os.environ.get('LOG_LEVEL', 'INFO')).upper()
    app.logger.setLevel(getattr(logging, log_level_name, logging.INFO))
    log_file = str(os.environ.get('LOG_FILE') or '')
    if log_file:
        handler = RotatingFileHandler(log_file, maxBytes=2*1024*1024, backupCount=5, encoding='utf-8')
        fmt = logging.Formatter('%(asctime)s %(levelname)s %(name)s [req:%(request_id)s] %(message)s')
        handler.setFormatter(fmt)
        handler.addFilter(_ReqIdFilter())
        app.logger.addHandler(handler)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    _configure_logging(app)

    # Inicializar extensões
    init_extensions(app)

    # Login manager (tokens Bearer)
    init_login_manager(app)

    # Registrar blueprints
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(cadastro_bp, url_prefix='/api/cadastro')
    app.register_blueprint(separacoes_bp, url_prefix='/api/separations')
    app.register_blueprint(media_bp, url_prefix='/api/media-analysis')
    app.register_blueprint(faturamento_bp, url_prefix='/api/faturamento')
    app.register_blueprint(atividades_bp, url_prefix='/api/user-activities')
    app.register_blueprint(relatorios_bp, url_prefix='/api/relatorios')
    app.register_blueprint(pedidos_gerados_bp, url_prefix='/api/pedidos-gerados')
    app.register_blueprint(pos_faturamento_bp, url_prefix='/api/pos-faturamento')
    app.register_blueprint(estatisticas_bp, url_prefix='/api/user-stats')

    register_error_handlers(app)

    app.config['START_TIME'] = app.config.get('START_TIME') or time.time()

    @app.before_request
    def _req_id_provisioning():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())

    @app.after_request
    def _set_security_headers(resp):
        resp.headers.setdefault('X-Content-Type-Options', 'nosniff')
        resp.headers.setdefault('X-Frame-Options', 'DENY')
        resp.headers.setdefault('Referrer-Policy', 'no-referrer')
        resp.headers.setdefault('Cache-Control', 'no-store')
        rid = getattr(g, 'request_id', None)
        if rid:
            resp.headers.setdefault('X-Request-ID', rid)
        return resp

    @app.route('/api/health', methods=['GET'])
    def health():
        """Status do serviço"""
        return jsonify({
            'status': 'ok',
            'uptime_seconds': int(time.time() - app.config['START_TIME'])
        })

    return app

# Expor o app para gunicorn
app = create_app()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', '5000'))
    host = os.environ.get('HOST', '127.0.0.1')
    app.run(debug=True, host=host, port=port)
