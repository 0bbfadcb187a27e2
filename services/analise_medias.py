"""
Manutenção das linhas da análise de médias.

O estoque (``estoque_atual``) de cada linha espelha as quantidades da
separação ativa; toda escrita que altera quantidades chama
``atualizar_estoque`` para que o status usado no faturamento não fique
defasado.
"""
from services.media_status import classify
from services.repositorio import MediaRepo, SeparacaoRepo

CHAVES_MEDIA_PERSONALIZADA = (
    'is_custom_media',
    'original_calculated_media',
    'custom_media_set_at',
    'custom_media_set_by',
)


def limpar_forcado(item):
    item.forced_status = False
    item.forced_reason = None
    item.forced_by = None
    item.forced_at = None


def descartar_media_personalizada(item):
    """Remove do metadata as marcas de média personalizada."""
    metadados = dict(item.metadados or {})
    for chave in CHAVES_MEDIA_PERSONALIZADA:
        metadados.pop(chave, None)
    item.metadados = metadados


def reclassificar(item):
    """Recalcula status e métricas a partir dos campos atuais do item"""
    resultado = classify(item.estoque_atual, item.quantidade_caixas, item.media_sistema, item.quantidade_kg)
    if item.forced_status:
        # status forçado permanece OK; métricas seguem atualizadas
        item.diferenca_caixas = resultado.diferenca_caixas
        item.media_real = resultado.media_real
    else:
        item.aplicar_classificacao(resultado)
    return item


def atualizar_estoque(user_id, codigos=None):
    """Relê o estoque da separação ativa e reclassifica as linhas da análise.

    Args:
        user_id: dono da análise
        codigos: restringe aos códigos informados; ``None`` atualiza todas

    Returns:
        As linhas atualizadas (mais recentes primeiro quando ``codigos`` é None)
    """
    repo = MediaRepo(user_id)
    if codigos is None:
        itens = repo.listar()
    else:
        itens = list(repo.por_codigos(codigos).values())
    if not itens:
        return []

    sep_repo = SeparacaoRepo(user_id)
    estoque = sep_repo.estoque_por_material(sep_repo.ativa(), [i.codigo for i in itens])
    for item in itens:
        item.estoque_atual = estoque.get(item.codigo, 0)
        reclassificar(item)
    repo.salvar()
    return itens
