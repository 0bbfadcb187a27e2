"""
Aplicação das planilhas de reforço e de redistribuição sobre a separação ativa.

Reforço soma à quantidade atual de cada loja do cabeçalho; loja com célula
zerada perde a quantidade (redistribuída). Redistribuição substitui por
completo a distribuição dos materiais da planilha: lojas que não aparecem
com quantidade > 0 são removidas.

Todas as gravações de um upload vão em uma única transação.
"""
REFORCO = 'reforco'
REDISTRIBUICAO = 'redistribuicao'


def quantidade_reforco(atual, reforco):
    if reforco > 0:
        return atual + reforco
    return 0


def quantidade_redistribuicao(atual, nova):
    return nova if nova > 0 else 0


def _resumo_vazio():
    return {
        'processedItems': 0,
        'updatedItems': 0,
        'newItems': 0,
        'redistributedItems': 0,
        'processedMaterialCodes': [],
        'newMaterialCodes': [],
        'updatedMaterialCodes': [],
        'redistributedMaterialCodes': [],
    }


def aplicar_planilha(repo, sep, materiais, tipos_diurno, modo):
    """Grava as quantidades da planilha na separação.

    Args:
        repo: ``SeparacaoRepo`` do usuário
        sep: separação ativa
        materiais: saída de ``planilhas.ler_reforco``
        tipos_diurno: ``{material: diurno}`` para itens novos
        modo: ``REFORCO`` ou ``REDISTRIBUICAO``

    Returns:
        dict com os contadores e as listas de códigos afetados
    """
    regra = quantidade_reforco if modo == REFORCO else quantidade_redistribuicao
    resumo = _resumo_vazio()

    try:
        for dados in materiais:
            codigo = dados['material_code']
            item = repo.item_por_material(sep, codigo)
            novo = item is None
            if novo:
                item = repo.criar_item(
                    sep, codigo, dados['description'], dados.get('row_number'),
                    tipos_diurno.get(codigo) or 'SECO',
                )
                atuais = {}
            else:
                atuais = repo.quantidades_item(item)

            lojas = set(dados['quantities'])
            if modo == REDISTRIBUICAO:
                lojas |= set(atuais)

            alterou = redistribuiu = False
            for loja in sorted(lojas):
                atual = atuais.get(loja, 0)
                nova = regra(atual, dados['quantities'].get(loja, 0))
                if nova == atual:
                    continue
                repo.definir_quantidade(item, loja, nova)
                if nova == 0:
                    redistribuiu = True
                else:
                    alterou = True

            resumo['processedItems'] += 1
            resumo['processedMaterialCodes'].append(codigo)
            if novo:
                resumo['newItems'] += 1
                resumo['newMaterialCodes'].append(codigo)
            elif alterou:
                resumo['updatedItems'] += 1
                resumo['updatedMaterialCodes'].append(codigo)
            if redistribuiu:
                resumo['redistributedItems'] += 1
                resumo['redistributedMaterialCodes'].append(codigo)

        repo.atualizar_totais(sep)
    except Exception:
        repo.descartar()
        raise
    return resumo
