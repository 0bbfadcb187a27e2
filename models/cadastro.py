from datetime import datetime
from extensions import db

TIPOS_LOJA = ('CD', 'Loja Padrão', 'Administrativo')
TIPOS_SEPARACAO_MATERIAL = ('SECO', 'FRIO')

class Loja(db.Model):
    """Cadastro de lojas (destinos da separação)"""
    __tablename__ = 'lojas'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    prefixo = db.Column(db.String(20), nullable=False, index=True)
    nome = db.Column(db.String(200), nullable=False)
    tipo = db.Column(db.String(20), nullable=False, default='CD')
    uf = db.Column(db.String(2), nullable=False)
    centro = db.Column(db.String(20), nullable=True)
    zona_seco = db.Column(db.String(50), nullable=False, default='')
    subzona_seco = db.Column(db.String(50), nullable=False, default='')
    zona_frio = db.Column(db.String(50), nullable=False, default='')
    ordem_seco = db.Column(db.Integer, nullable=False, default=0)
    ordem_frio = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'prefixo', name='uq_loja_usuario_prefixo'),
    )

    def __repr__(self):
        return f'<Loja {self.prefixo} - {self.nome}>'

    def to_dict(self):
        return {
            'id': self.id,
            'prefixo': self.prefixo,
            'nome': self.nome,
            'tipo': self.tipo,
            'uf': self.uf,
            'centro': self.centro,
            'zonaSeco': self.zona_seco,
            'subzonaSeco': self.subzona_seco,
            'zonaFrio': self.zona_frio,
            'ordemSeco': self.ordem_seco,
            'ordemFrio': self.ordem_frio
        }

class Material(db.Model):
    """Cadastro de materiais com o tipo de separação por turno"""
    __tablename__ = 'materiais'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    material = db.Column(db.String(50), nullable=False, index=True)
    descricao = db.Column(db.String(255), nullable=False)
    noturno = db.Column(db.String(10), nullable=False, default='SECO')
    diurno = db.Column(db.String(10), nullable=False, default='SECO')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'material', name='uq_material_usuario_codigo'),
    )

    def __repr__(self):
        return f'<Material {self.material} - {self.descricao}>'

    def to_dict(self):
        return {
            'id': self.id,
            'material': self.material,
            'descricao': self.descricao,
            'noturno': self.noturno,
            'diurno': self.diurno
        }
