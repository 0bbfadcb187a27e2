from datetime import datetime
from extensions import db

class MediaAnalise(db.Model):
    """Linha da análise de médias: compara a média do sistema com o estoque distribuído"""
    __tablename__ = 'analise_medias'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('usuarios.id', ondelete='CASCADE'), nullable=False, index=True)
    separation_id = db.Column(db.Integer, db.ForeignKey('separacoes.id', ondelete='SET NULL'), nullable=True, index=True)
    codigo = db.Column(db.String(50), nullable=False, index=True)
    material = db.Column(db.String(255), nullable=False)
    quantidade_kg = db.Column(db.Float, nullable=False, default=0)
    quantidade_caixas = db.Column(db.Float, nullable=False, default=0)
    media_sistema = db.Column(db.Float, nullable=False, default=0)
    estoque_atual = db.Column(db.Float, nullable=False, default=0)
    diferenca_caixas = db.Column(db.Float, nullable=False, default=0)
    media_real = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(db.String(10), nullable=False, default='OK', index=True)

    # Status forçado manualmente para OK
    forced_status = db.Column(db.Boolean, nullable=False, default=False)
    forced_reason = db.Column(db.Text, nullable=True)
    forced_by = db.Column(db.Integer, nullable=True)
    forced_at = db.Column(db.DateTime, nullable=True)

    metadados = db.Column('metadata', db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'codigo', name='uq_media_usuario_codigo'),
    )

    def __repr__(self):
        return f'<MediaAnalise {self.codigo} - {self.status}>'

    def aplicar_classificacao(self, classificacao):
        """Copia o resultado do classificador para as colunas persistidas"""
        self.status = classificacao.status
        self.diferenca_caixas = classificacao.diferenca_caixas
        self.media_real = classificacao.media_real

    def to_dict(self):
        return {
            'id': self.id,
            'separation_id': self.separation_id,
            'codigo': self.codigo,
            'material': self.material,
            'quantidade_kg': self.quantidade_kg,
            'quantidade_caixas': self.quantidade_caixas,
            'media_sistema': self.media_sistema,
            'estoque_atual': self.estoque_atual,
            'diferenca_caixas': self.diferenca_caixas,
            'media_real': self.media_real,
            'status': self.status,
            'forced_status': bool(self.forced_status),
            'forced_reason': self.forced_reason,
            'forced_by': self.forced_by,
            'forced_at': self.forced_at.isoformat() if self.forced_at else None,
            'metadata': self.metadados or {},
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
