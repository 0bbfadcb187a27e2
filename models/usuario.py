from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from extensions import db

class Usuario(UserMixin, db.Model):
    """Modelo para usuários do sistema"""
    __tablename__ = 'usuarios'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(30), nullable=False, default='user')

    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Usuario {self.email} - {self.role}>'

    def set_password(self, password):
        """Define a senha do usuário com hash seguro"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Verifica se a senha fornecida está correta"""
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'last_login': self.last_login.isoformat() if self.last_login else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

class CodigoRecuperacao(db.Model):
    """Código de 6 dígitos enviado por e-mail para redefinição de senha"""
    __tablename__ = 'codigos_recuperacao'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    email = db.Column(db.String(120), nullable=False, index=True)
    code = db.Column(db.String(6), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('idx_recuperacao_email_code', 'email', 'code'),
    )

    def is_valid(self, now=None):
        now = now or datetime.utcnow()
        return not self.used and self.expires_at >= now

class AtividadeUsuario(db.Model):
    """Trilha de auditoria das ações do usuário"""
    __tablename__ = 'atividades_usuario'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    action = db.Column(db.String(200), nullable=False)
    details = db.Column(db.Text, nullable=False, default='')
    type = db.Column(db.String(30), nullable=False, default='info', index=True)
    # 'metadata' é reservado pelo SQLAlchemy na classe declarativa
    metadados = db.Column('metadata', db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        db.Index('idx_atividade_usuario_data', 'user_id', 'created_at'),
    )

    def __repr__(self):
        return f'<AtividadeUsuario {self.user_id} - {self.action}>'

    def to_dict(self):
        return {
            'id': self.id,
            'action': self.action,
            'details': self.details or '',
            'type': self.type or 'info',
            'metadata': self.metadados or {},
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
