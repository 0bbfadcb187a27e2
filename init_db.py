"""
Script para inicializar o banco de dados
"""
import os

from app import create_app
from extensions import db
from models import Usuario


def criar_usuario_inicial():
    """Cria o usuário definido em ADMIN_EMAIL/ADMIN_PASSWORD, se ainda não existir"""
    email = (os.environ.get('ADMIN_EMAIL') or '').strip().lower()
    senha = os.environ.get('ADMIN_PASSWORD') or ''
    if not email or not senha:
        return None
    if Usuario.query.filter_by(email=email).first():
        print(f"ℹ️  Usuário {email} já existe")
        return None
    usuario = Usuario(email=email, name=os.environ.get('ADMIN_NAME') or 'Administrador', role='admin')
    usuario.set_password(senha)
    db.session.add(usuario)
    db.session.commit()
    print(f"✅ Usuário {email} criado")
    return usuario


def init_database():
    """Inicializa o banco de dados criando todas as tabelas"""

    app = create_app()

    with app.app_context():
        print("🚀 Inicializando banco de dados...")

        # Cria todas as tabelas
        db.create_all()

        print("✅ Banco de dados inicializado com sucesso!")
        print("📊 Tabelas criadas:")

        # Lista as tabelas criadas
        inspector = db.inspect(db.engine)
        for table in inspector.get_table_names():
            print(f"  • {table}")

        criar_usuario_inicial()

if __name__ == "__main__":
    init_database()
