from datetime import datetime
from extensions import db

SEPARATION_TYPES = ('SP', 'ES', 'RJ')
SEPARATION_STATUS = ('active', 'completed')
TYPE_SEPARATION = ('SECO', 'FRIO', 'ORGANICO')

class Separacao(db.Model):
    """Separação: um job de divisão de pedidos (um dia/região)"""
    __tablename__ = 'separacoes'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(2), nullable=False)
    date = db.Column(db.String(10), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    total_items = db.Column(db.Integer, nullable=False, default=0)
    total_stores = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(10), nullable=False, default='active', index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    itens = db.relationship('ItemSeparacao', backref='separacao', lazy=True, cascade='all, delete-orphan')
    reforcos = db.relationship('ImpressaoReforco', backref='separacao', lazy=True, cascade='all, delete-orphan')

    __table_args__ = (
        db.Index('idx_separacao_usuario_status', 'user_id', 'status'),
    )

    def __repr__(self):
        return f'<Separacao {self.id} {self.type} - {self.status}>'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'date': self.date,
            'file_name': self.file_name,
            'total_items': self.total_items,
            'total_stores': self.total_stores,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

class ItemSeparacao(db.Model):
    """Uma linha de material dentro da separação"""
    __tablename__ = 'itens_separacao'

    id = db.Column(db.Integer, primary_key=True)
    separation_id = db.Column(db.Integer, db.ForeignKey('separacoes.id', ondelete='CASCADE'), nullable=False, index=True)
    material_code = db.Column(db.String(50), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)
    row_number = db.Column(db.Integer, nullable=True)
    type_separation = db.Column(db.String(10), nullable=False, default='SECO')

    quantidades = db.relationship('QuantidadeSeparacao', backref='item', lazy=True, cascade='all, delete-orphan')

    __table_args__ = (
        db.Index('idx_item_separacao_material', 'separation_id', 'material_code'),
    )

    def __repr__(self):
        return f'<ItemSeparacao {self.material_code} - {self.description}>'

    def to_dict(self):
        return {
            'id': self.id,
            'separation_id': self.separation_id,
            'material_code': self.material_code,
            'description': self.description,
            'row_number': self.row_number,
            'type_separation': self.type_separation
        }

class QuantidadeSeparacao(db.Model):
    """Quantidade de um material alocada a uma loja (apenas quantidades > 0)"""
    __tablename__ = 'quantidades_separacao'

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey('itens_separacao.id', ondelete='CASCADE'), nullable=False, index=True)
    separation_id = db.Column(db.Integer, db.ForeignKey('separacoes.id', ondelete='CASCADE'), nullable=False, index=True)
    store_code = db.Column(db.String(20), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('item_id', 'store_code', name='uq_quantidade_item_loja'),
        db.CheckConstraint('quantity > 0', name='check_quantidade_positiva'),
    )

    def __repr__(self):
        return f'<QuantidadeSeparacao item={self.item_id} loja={self.store_code}: {self.quantity}>'

    def to_dict(self):
        return {
            'item_id': self.item_id,
            'store_code': self.store_code,
            'quantity': self.quantity
        }

class ImpressaoReforco(db.Model):
    """Cópia da planilha de reforço carregada, para reimpressão e histórico"""
    __tablename__ = 'impressoes_reforco'

    id = db.Column(db.Integer, primary_key=True)
    separation_id = db.Column(db.Integer, db.ForeignKey('separacoes.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    file_name = db.Column(db.String(255), nullable=False)
    dados = db.Column('data', db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<ImpressaoReforco {self.id} separacao={self.separation_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'separation_id': self.separation_id,
            'file_name': self.file_name,
            'data': self.dados or {},
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
