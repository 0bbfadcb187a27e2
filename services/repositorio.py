"""
Repositórios de acesso a dados, sempre escopados pelo usuário.

Toda leitura/escrita de dados de um usuário passa por um destes objetos,
construídos com o ``user_id`` autenticado. Nenhuma rota filtra tabelas de
negócio diretamente.

Classes:
- SeparacaoRepo
- MediaRepo
- CadastroRepo
- AtividadeRepo
- FaturamentoRepo
"""
from collections import defaultdict

from sqlalchemy import func, or_

from errors import NoActiveSeparation, NotFound
from extensions import db
from models import (
    AtividadeUsuario, ImpressaoReforco, ItemSeparacao, Loja, Material, MediaAnalise,
    PedidoGerado, PosFaturamento, QuantidadeSeparacao, Separacao,
)


class _RepoBase:
    def __init__(self, user_id):
        self.user_id = user_id

    def salvar(self):
        db.session.commit()

    def descartar(self):
        db.session.rollback()


# -------------------------
# Separações
# -------------------------

class SeparacaoRepo(_RepoBase):

    def _query(self):
        return Separacao.query.filter(Separacao.user_id == self.user_id)

    def ativa(self):
        return self._query().filter(Separacao.status == 'active').order_by(Separacao.created_at.desc()).first()

    def ativa_ou_erro(self):
        sep = self.ativa()
        if sep is None:
            raise NoActiveSeparation()
        return sep

    def listar(self):
        return self._query().order_by(Separacao.created_at.desc(), Separacao.id.desc()).all()

    def paginar(self, page=1, per_page=10, type=None, status=None, date_from=None, date_to=None):
        """Histórico de separações com filtros; datas no formato AAAA-MM-DD."""
        query = self._query()
        if type:
            query = query.filter(Separacao.type == type)
        if status:
            query = query.filter(Separacao.status == status)
        if date_from:
            query = query.filter(Separacao.date >= date_from)
        if date_to:
            query = query.filter(Separacao.date <= date_to)
        return query.order_by(Separacao.created_at.desc(), Separacao.id.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )

    def obter(self, separation_id):
        sep = self._query().filter(Separacao.id == separation_id).first()
        if sep is None:
            raise NotFound('Separação não encontrada')
        return sep

    def criar(self, type, date, file_name, itens, stores):
        """Cria a separação com itens e quantidades (> 0) em uma transação.

        ``itens`` é uma lista de dicts ``{material_code, description,
        row_number, type_separation, quantities: {store: qty}}``.
        """
        sep = Separacao(
            user_id=self.user_id,
            type=type,
            date=date,
            file_name=file_name,
            total_items=len(itens),
            total_stores=len(stores),
            status='active',
        )
        db.session.add(sep)
        db.session.flush()

        for dados in itens:
            item = ItemSeparacao(
                separation_id=sep.id,
                material_code=dados['material_code'],
                description=dados['description'],
                row_number=dados.get('row_number'),
                type_separation=dados.get('type_separation') or 'SECO',
            )
            db.session.add(item)
            db.session.flush()
            for store_code, quantity in dados['quantities'].items():
                if quantity > 0:
                    db.session.add(QuantidadeSeparacao(
                        item_id=item.id,
                        separation_id=sep.id,
                        store_code=store_code,
                        quantity=quantity,
                    ))
        db.session.commit()
        return sep

    def finalizar(self, sep):
        sep.status = 'completed'
        db.session.commit()
        return sep

    def excluir(self, sep):
        # itens e quantidades saem pelo cascade dos relacionamentos
        db.session.delete(sep)
        db.session.commit()

    def atualizar_totais(self, sep):
        sep.total_items = ItemSeparacao.query.filter(ItemSeparacao.separation_id == sep.id).count()
        sep.total_stores = len(self.lojas_da_separacao(sep))
        db.session.commit()
        return sep

    # Itens

    def criar_item(self, sep, material_code, description, row_number=None, type_separation='SECO'):
        """Adiciona um item à separação sem commit."""
        item = ItemSeparacao(
            separation_id=sep.id,
            material_code=material_code,
            description=description,
            row_number=row_number,
            type_separation=type_separation or 'SECO',
        )
        db.session.add(item)
        db.session.flush()
        return item

    def itens(self, sep):
        return ItemSeparacao.query.filter(
            ItemSeparacao.separation_id == sep.id
        ).order_by(ItemSeparacao.row_number.asc(), ItemSeparacao.id.asc()).all()

    def item(self, sep, item_id):
        item = ItemSeparacao.query.filter(
            ItemSeparacao.id == item_id,
            ItemSeparacao.separation_id == sep.id,
        ).first()
        if item is None:
            raise NotFound('Item não encontrado')
        return item

    def item_do_usuario(self, item_id):
        """Item de qualquer separação do usuário, junto com a separação."""
        row = db.session.query(ItemSeparacao, Separacao).join(
            Separacao, ItemSeparacao.separation_id == Separacao.id
        ).filter(
            ItemSeparacao.id == item_id,
            Separacao.user_id == self.user_id,
        ).first()
        if row is None:
            raise NotFound('Item não encontrado ou não autorizado')
        return row

    def item_por_material(self, sep, material_code, description=None):
        query = ItemSeparacao.query.filter(
            ItemSeparacao.separation_id == sep.id,
            ItemSeparacao.material_code == material_code,
        )
        if description:
            query = query.filter(ItemSeparacao.description == description)
        return query.order_by(ItemSeparacao.id.asc()).first()

    def buscar_itens(self, sep, texto, limit=20):
        padrao = f'%{texto}%'
        return ItemSeparacao.query.filter(
            ItemSeparacao.separation_id == sep.id,
            or_(ItemSeparacao.material_code.ilike(padrao), ItemSeparacao.description.ilike(padrao)),
        ).order_by(ItemSeparacao.material_code.asc()).limit(limit).all()

    # Quantidades

    def quantidades_item(self, item):
        """``{store_code: quantity}`` do item, apenas quantidades > 0."""
        rows = QuantidadeSeparacao.query.filter(
            QuantidadeSeparacao.separation_id == item.separation_id,
            QuantidadeSeparacao.item_id == item.id,
            QuantidadeSeparacao.quantity > 0,
        ).order_by(QuantidadeSeparacao.store_code.asc()).all()
        return {q.store_code: q.quantity for q in rows}

    def quantidades_separacao(self, sep):
        """``{item_id: {store_code: quantity}}`` de toda a separação."""
        mapa = defaultdict(dict)
        rows = QuantidadeSeparacao.query.filter(
            QuantidadeSeparacao.separation_id == sep.id,
            QuantidadeSeparacao.quantity > 0,
        ).all()
        for q in rows:
            mapa[q.item_id][q.store_code] = q.quantity
        return mapa

    def lojas_da_separacao(self, sep):
        rows = db.session.query(QuantidadeSeparacao.store_code).filter(
            QuantidadeSeparacao.separation_id == sep.id
        ).distinct().all()
        return sorted(r[0] for r in rows)

    def gravar_quantidade(self, item, store_code, quantity):
        """Grava a quantidade de uma loja: remove a linha quando zero."""
        self.definir_quantidade(item, store_code, quantity)
        db.session.commit()

    def definir_quantidade(self, item, store_code, quantity):
        """Upsert da quantidade sem commit, para gravações em lote."""
        atual = QuantidadeSeparacao.query.filter(
            QuantidadeSeparacao.separation_id == item.separation_id,
            QuantidadeSeparacao.item_id == item.id,
            QuantidadeSeparacao.store_code == store_code,
        ).first()
        if quantity <= 0:
            if atual is not None:
                db.session.delete(atual)
        elif atual is None:
            db.session.add(QuantidadeSeparacao(
                item_id=item.id,
                separation_id=item.separation_id,
                store_code=store_code,
                quantity=quantity,
            ))
        else:
            atual.quantity = quantity

    def estoque_por_material(self, sep, codigos=None):
        """Soma das quantidades distribuídas por código de material."""
        if sep is None:
            return {}
        query = db.session.query(
            ItemSeparacao.material_code, func.sum(QuantidadeSeparacao.quantity)
        ).join(
            QuantidadeSeparacao, QuantidadeSeparacao.item_id == ItemSeparacao.id
        ).filter(
            ItemSeparacao.separation_id == sep.id,
            QuantidadeSeparacao.quantity > 0,
        )
        if codigos is not None:
            query = query.filter(ItemSeparacao.material_code.in_(list(codigos)))
        return {codigo: total or 0 for codigo, total in query.group_by(ItemSeparacao.material_code).all()}

    def linhas_faturamento(self, sep):
        """Linhas (loja, material, quantidade) agrupadas, apenas quantidades > 0."""
        return db.session.query(
            QuantidadeSeparacao.store_code,
            ItemSeparacao.material_code,
            func.sum(QuantidadeSeparacao.quantity),
        ).join(
            ItemSeparacao, QuantidadeSeparacao.item_id == ItemSeparacao.id
        ).filter(
            QuantidadeSeparacao.separation_id == sep.id,
            QuantidadeSeparacao.quantity > 0,
        ).group_by(
            QuantidadeSeparacao.store_code, ItemSeparacao.material_code
        ).order_by(
            QuantidadeSeparacao.store_code.asc(), ItemSeparacao.material_code.asc()
        ).all()

    def totais_por_descricao(self, sep):
        """Linhas (descrição, tipo, loja, quantidade) agrupadas, para o resumo por zona."""
        return db.session.query(
            ItemSeparacao.description,
            ItemSeparacao.type_separation,
            QuantidadeSeparacao.store_code,
            func.sum(QuantidadeSeparacao.quantity),
        ).join(
            ItemSeparacao, QuantidadeSeparacao.item_id == ItemSeparacao.id
        ).filter(
            QuantidadeSeparacao.separation_id == sep.id,
            QuantidadeSeparacao.quantity > 0,
        ).group_by(
            ItemSeparacao.description, ItemSeparacao.type_separation, QuantidadeSeparacao.store_code
        ).all()

    def volume(self, sep):
        """(soma das quantidades, número de linhas) da separação."""
        total, linhas = db.session.query(
            func.sum(QuantidadeSeparacao.quantity), func.count(QuantidadeSeparacao.id)
        ).filter(
            QuantidadeSeparacao.separation_id == sep.id,
            QuantidadeSeparacao.quantity > 0,
        ).one()
        return total or 0, linhas or 0

    # Reforços

    def registrar_reforco(self, sep, file_name, dados):
        impressao = ImpressaoReforco(
            separation_id=sep.id,
            user_id=self.user_id,
            file_name=file_name,
            dados=dados,
        )
        db.session.add(impressao)
        db.session.commit()
        return impressao

    def reforcos(self, sep):
        return ImpressaoReforco.query.filter(
            ImpressaoReforco.separation_id == sep.id,
            ImpressaoReforco.user_id == self.user_id,
        ).order_by(ImpressaoReforco.created_at.desc(), ImpressaoReforco.id.desc()).all()

    def ultimo_reforco(self, sep):
        reforcos = self.reforcos(sep)
        return reforcos[0] if reforcos else None


# -------------------------
# Análise de médias
# -------------------------

class MediaRepo(_RepoBase):

    def _query(self):
        return MediaAnalise.query.filter(MediaAnalise.user_id == self.user_id)

    def listar(self):
        return self._query().order_by(MediaAnalise.created_at.desc(), MediaAnalise.id.desc()).all()

    def obter(self, item_id):
        item = self._query().filter(MediaAnalise.id == item_id).first()
        if item is None:
            raise NotFound('Item não encontrado')
        return item

    def por_codigo(self, codigo):
        return self._query().filter(MediaAnalise.codigo == codigo).first()

    def por_codigos(self, codigos):
        codigos = list(codigos)
        if not codigos:
            return {}
        return {m.codigo: m for m in self._query().filter(MediaAnalise.codigo.in_(codigos)).all()}

    def adicionar(self, item):
        item.user_id = self.user_id
        db.session.add(item)
        return item

    def excluir(self, item):
        db.session.delete(item)
        db.session.commit()

    def limpar(self):
        total = self._query().delete(synchronize_session=False)
        db.session.commit()
        return total


# -------------------------
# Cadastros
# -------------------------

class CadastroRepo(_RepoBase):

    def lojas(self):
        return Loja.query.filter(Loja.user_id == self.user_id).order_by(Loja.prefixo.asc()).all()

    def loja(self, loja_id):
        loja = Loja.query.filter(Loja.user_id == self.user_id, Loja.id == loja_id).first()
        if loja is None:
            raise NotFound('Loja não encontrada')
        return loja

    def loja_por_prefixo(self, prefixo):
        return Loja.query.filter(Loja.user_id == self.user_id, Loja.prefixo == prefixo).first()

    def lojas_por_prefixo(self, prefixos):
        prefixos = list(prefixos)
        if not prefixos:
            return {}
        return {l.prefixo: l for l in Loja.query.filter(Loja.user_id == self.user_id, Loja.prefixo.in_(prefixos)).all()}

    def materiais(self):
        return Material.query.filter(Material.user_id == self.user_id).order_by(Material.material.asc()).all()

    def material(self, material_id):
        material = Material.query.filter(Material.user_id == self.user_id, Material.id == material_id).first()
        if material is None:
            raise NotFound('Material não encontrado')
        return material

    def material_por_codigo(self, codigo):
        return Material.query.filter(Material.user_id == self.user_id, Material.material == codigo).first()

    def tipos_diurno(self):
        """``{material: diurno}`` para classificar os itens da separação."""
        rows = db.session.query(Material.material, Material.diurno).filter(Material.user_id == self.user_id).all()
        return {codigo: diurno for codigo, diurno in rows}

    def adicionar(self, registro):
        registro.user_id = self.user_id
        db.session.add(registro)
        return registro

    def excluir(self, registro):
        db.session.delete(registro)
        db.session.commit()


# -------------------------
# Atividades
# -------------------------

class AtividadeRepo(_RepoBase):

    def criar(self, action, details='', type='info', metadata=None):
        atividade = AtividadeUsuario(
            user_id=self.user_id,
            action=action,
            details=details or '',
            type=type or 'info',
            metadados=metadata or {},
        )
        db.session.add(atividade)
        db.session.commit()
        return atividade

    def paginar(self, page=1, per_page=20, type=None):
        query = AtividadeUsuario.query.filter(AtividadeUsuario.user_id == self.user_id)
        if type:
            query = query.filter(AtividadeUsuario.type == type)
        return query.order_by(AtividadeUsuario.created_at.desc(), AtividadeUsuario.id.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )

    def da_separacao(self, separation_id, limit=100):
        """Atividades cujo metadata aponta para a separação."""
        return AtividadeUsuario.query.filter(
            AtividadeUsuario.user_id == self.user_id,
            AtividadeUsuario.metadados['separationId'].as_integer() == separation_id,
        ).order_by(AtividadeUsuario.created_at.desc(), AtividadeUsuario.id.desc()).limit(limit).all()

    def dias_ativos(self):
        rows = db.session.query(AtividadeUsuario.created_at).filter(AtividadeUsuario.user_id == self.user_id).all()
        return len({r[0].date() for r in rows if r[0]})


# -------------------------
# Pedidos gerados / pós faturamento
# -------------------------

class FaturamentoRepo(_RepoBase):

    def pedidos(self):
        return PedidoGerado.query.filter(PedidoGerado.user_id == self.user_id).order_by(
            PedidoGerado.created_at.desc(), PedidoGerado.id.desc()
        ).all()

    def salvar_pedidos(self, sep, itens):
        for item in itens:
            db.session.add(PedidoGerado(
                user_id=self.user_id,
                separation_id=sep.id,
                pedido=item.pedido,
                remessa=item.remessa,
                dados_adicionais=item.dados_adicionais,
            ))
        db.session.commit()
        return len(itens)

    def limpar_pedidos(self):
        total = PedidoGerado.query.filter(PedidoGerado.user_id == self.user_id).delete(synchronize_session=False)
        db.session.commit()
        return total

    def pos_faturamento(self, sep):
        return PosFaturamento.query.filter(
            PosFaturamento.user_id == self.user_id,
            PosFaturamento.separation_id == sep.id,
        ).order_by(PosFaturamento.created_at.desc(), PosFaturamento.id.desc()).all()

    def salvar_pos_faturamento(self, sep, itens):
        for item in itens:
            db.session.add(PosFaturamento(
                user_id=self.user_id,
                separation_id=sep.id,
                codigo=item.codigo,
                material=item.material,
                quantidade_kg=item.quantidade_kg,
                quantidade_caixas=item.quantidade_caixas,
                estoque_atual=item.estoque_atual,
            ))
        db.session.commit()
        return len(itens)

    def limpar_pos_faturamento(self):
        total = PosFaturamento.query.filter(PosFaturamento.user_id == self.user_id).delete(synchronize_session=False)
        db.session.commit()
        return total
