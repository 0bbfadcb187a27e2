from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_mail import Mail

# SQLAlchemy (persistência oficial)
db = SQLAlchemy()
migrate = Migrate()

# Envio de e-mails transacionais (recuperação de senha)
mail = Mail()


def init_extensions(app):
    """Inicializa as extensões do app."""
    db.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)
    app.logger.info(f"[DB Init] URI={_sanitize_db_uri(app.config.get('SQLALCHEMY_DATABASE_URI', ''))}")


def _sanitize_db_uri(uri: str) -> str:
    """Mascara credenciais em uma URI de banco para evitar exposição em logs."""
    try:
        if '://' in uri and '@' in uri:
            scheme, rest = uri.split('://', 1)
            creds, host_and_path = rest.split('@', 1)
            masked_creds = '***:***' if ':' in creds else '***'
            return f"{scheme}://{masked_creds}@{host_and_path}"
        return uri
    except Exception:
        return '<hidden>'
