from datetime import datetime
from extensions import db

class PedidoGerado(db.Model):
    """Pedido/remessa gerado no ERP a partir do faturamento"""
    __tablename__ = 'pedidos_gerados'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    separation_id = db.Column(db.Integer, db.ForeignKey('separacoes.id', ondelete='SET NULL'), nullable=True, index=True)
    pedido = db.Column(db.String(50), nullable=False)
    remessa = db.Column(db.String(50), nullable=False)
    dados_adicionais = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<PedidoGerado {self.pedido}/{self.remessa}>'

    def to_dict(self):
        return {
            'id': self.id,
            'separation_id': self.separation_id,
            'pedido': self.pedido,
            'remessa': self.remessa,
            'dados_adicionais': self.dados_adicionais,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

class PosFaturamento(db.Model):
    """Posição de estoque colada depois do faturamento, comparada à análise de médias"""
    __tablename__ = 'pos_faturamento'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    separation_id = db.Column(db.Integer, db.ForeignKey('separacoes.id', ondelete='CASCADE'), nullable=False, index=True)
    codigo = db.Column(db.String(50), nullable=False, index=True)
    material = db.Column(db.String(255), nullable=False)
    quantidade_kg = db.Column(db.Float, nullable=False, default=0)
    quantidade_caixas = db.Column(db.Float, nullable=False, default=0)
    estoque_atual = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<PosFaturamento {self.codigo}>'
