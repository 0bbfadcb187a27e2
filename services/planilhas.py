"""
Leitura e escrita de planilhas .xlsx (openpyxl).
"""
from io import BytesIO
import unicodedata

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError, validation_details
from schemas import LojaIn, MaterialIn

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

COLUNAS_FATURAMENTO = ('Data', 'Centro', 'Grupo Comprador', 'Código fornecedor', 'Codigo', 'QTD', 'DP')
LARGURAS_FATURAMENTO = (12, 10, 15, 15, 12, 12, 8)

COLUNAS_ANALISE_RELATORIO = ('Código', 'Material', 'Qtd KG', 'Qtd Caixas', 'Média Sistema')


def _texto(valor):
    if valor is None:
        return ''
    if isinstance(valor, float) and valor.is_integer():
        valor = int(valor)
    return str(valor).strip()


def _numero(valor):
    if valor is None or valor == '':
        return 0
    if isinstance(valor, bool):
        return 0
    if isinstance(valor, (int, float)):
        return valor
    try:
        return float(str(valor).strip().replace(',', '.'))
    except ValueError:
        return 0


def _normalizar(cabecalho):
    texto = unicodedata.normalize('NFKD', _texto(cabecalho)).encode('ascii', 'ignore').decode('ascii')
    return ' '.join(texto.upper().split())


def ler_linhas(arquivo):
    """Lê a primeira aba de um upload .xlsx e devolve as linhas como tuplas."""
    nome = (getattr(arquivo, 'filename', '') or '').lower()
    if not nome.endswith('.xlsx'):
        raise ValidationError('Formato de arquivo inválido. Envie uma planilha .xlsx')
    try:
        wb = load_workbook(BytesIO(arquivo.read()), read_only=True, data_only=True)
    except Exception:
        raise ValidationError('Não foi possível ler a planilha enviada')
    try:
        ws = wb.worksheets[0]
        linhas = [tuple(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    # descartar linhas totalmente vazias no fim
    while linhas and all(c is None or _texto(c) == '' for c in linhas[-1]):
        linhas.pop()
    return linhas


def _lojas_cabecalho(cabecalho):
    """Códigos das lojas a partir da coluna C, até a primeira célula vazia."""
    lojas = []
    for celula in cabecalho[2:]:
        codigo = _texto(celula)
        if not codigo:
            break
        lojas.append(codigo)
    if not lojas:
        raise ValidationError('Nenhuma loja encontrada no cabeçalho da planilha')
    return lojas


def ler_separacao(linhas, tipos_diurno=None):
    """Interpreta a planilha de pedidos.

    Linha 1: colunas A/B livres, códigos das lojas a partir da coluna C até a
    primeira célula vazia. Demais linhas: código do material (A), descrição
    (B) e quantidades por loja. Só viram itens as linhas com código,
    descrição e ao menos uma quantidade > 0.

    Returns:
        (lojas, itens)
    """
    if len(linhas) < 2:
        raise ValidationError('Planilha vazia ou sem itens')
    tipos_diurno = tipos_diurno or {}
    lojas = _lojas_cabecalho(linhas[0])

    itens = []
    for indice, linha in enumerate(linhas[1:], start=1):
        linha = tuple(linha) + (None,) * max(0, len(lojas) + 2 - len(linha))
        codigo = _texto(linha[0])
        descricao = _texto(linha[1])
        if not codigo or not descricao:
            continue
        quantidades = {}
        for posicao, loja in enumerate(lojas):
            qtd = _numero(linha[posicao + 2])
            if qtd > 0:
                quantidades[loja] = qtd
        if not quantidades:
            continue
        itens.append({
            'material_code': codigo,
            'description': descricao,
            'row_number': indice + 1,
            'type_separation': tipos_diurno.get(codigo) or 'SECO',
            'quantities': quantidades,
        })

    if not itens:
        raise ValidationError('Nenhum item com quantidade encontrado na planilha')
    return lojas, itens


def ler_reforco(linhas, somente_positivas=False):
    """Interpreta a planilha de reforço ou de redistribuição.

    Mesmo layout da planilha de pedidos. No reforço toda loja do cabeçalho
    entra no resultado (célula vazia ou inválida vale 0); na redistribuição
    (``somente_positivas``) ficam apenas as quantidades > 0 e materiais sem
    nenhuma são descartados.

    Returns:
        (lojas, materiais) onde cada material é
        ``{material_code, description, row_number, quantities}``
    """
    if len(linhas) < 2:
        raise ValidationError('Planilha vazia ou sem itens')
    lojas = _lojas_cabecalho(linhas[0])

    materiais = []
    for indice, linha in enumerate(linhas[1:], start=1):
        linha = tuple(linha) + (None,) * max(0, len(lojas) + 2 - len(linha))
        codigo = _texto(linha[0])
        descricao = _texto(linha[1])
        if not codigo or not descricao:
            continue
        quantidades = {}
        for posicao, loja in enumerate(lojas):
            qtd = max(_numero(linha[posicao + 2]), 0)
            if qtd > 0 or not somente_positivas:
                quantidades[loja] = qtd
        if somente_positivas and not quantidades:
            continue
        materiais.append({
            'material_code': codigo,
            'description': descricao,
            'row_number': indice + 1,
            'quantities': quantidades,
        })

    if not materiais:
        if somente_positivas:
            raise ValidationError('Nenhum material com quantidade válida (> 0) encontrado na planilha')
        raise ValidationError('Nenhum material encontrado na planilha')
    return lojas, materiais


def ler_melancia(linhas):
    """Planilha de melancia: loja na coluna A e kg na coluna C, a partir da linha 2.

    Returns:
        ``{loja: kg}``; linhas sem loja ou com kg negativo são ignoradas
    """
    cargas = {}
    for linha in linhas[1:]:
        linha = tuple(linha) + (None,) * max(0, 3 - len(linha))
        loja = _texto(linha[0])
        kg = _numero(linha[2])
        if not loja or kg < 0:
            continue
        cargas[loja] = kg
    if not cargas:
        raise ValidationError('Nenhuma loja encontrada na planilha')
    return cargas


def _registros(linhas):
    """Converte as linhas em dicts usando o cabeçalho normalizado."""
    if len(linhas) < 2:
        raise ValidationError('Planilha vazia ou sem dados')
    cabecalho = [_normalizar(c) for c in linhas[0]]
    for numero, linha in enumerate(linhas[1:], start=2):
        registro = {}
        for nome, valor in zip(cabecalho, linha):
            if nome:
                registro[nome] = valor
        yield numero, registro


def _primeiro(registro, *nomes):
    for nome in nomes:
        valor = _texto(registro.get(nome))
        if valor:
            return valor
    return ''


def _mensagens(exc):
    return '; '.join(f"{d['campo']}: {d['mensagem']}" for d in validation_details(exc))


def ler_lojas(linhas):
    """Lê a planilha de lojas. Devolve (lojas, erros)."""
    lojas, erros = [], []
    for numero, reg in _registros(linhas):
        prefixo = _primeiro(reg, 'PREFIXO')
        nome = _primeiro(reg, 'NOME')
        uf = _primeiro(reg, 'UF').upper()
        if not prefixo and not nome and not uf:
            continue
        if not prefixo or not nome or not uf:
            erros.append(f'Linha {numero}: PREFIXO, NOME e UF são obrigatórios')
            continue
        dados = {
            'prefixo': prefixo,
            'nome': nome,
            'tipo': _primeiro(reg, 'TIPO') or 'CD',
            'uf': uf,
            'centro': _primeiro(reg, 'CENTRO') or None,
            'zona_seco': _primeiro(reg, 'ZONA SECO'),
            'subzona_seco': _primeiro(reg, 'SUBZONA SECO'),
            'zona_frio': _primeiro(reg, 'ZONA FRIO'),
            'ordem_seco': int(_numero(reg.get('ORDEM SECO'))),
            'ordem_frio': int(_numero(reg.get('ORDEM FRIO'))),
        }
        try:
            lojas.append(LojaIn.model_validate(dados).model_dump())
        except PydanticValidationError as e:
            erros.append(f'Linha {numero}: {_mensagens(e)}')
    return lojas, erros


def _tipo_separacao(valor):
    valor = _texto(valor).upper()
    return valor if valor in ('SECO', 'FRIO') else 'SECO'


def ler_materiais(linhas):
    """Lê a planilha de materiais. Devolve (materiais, erros)."""
    materiais, erros = [], []
    for numero, reg in _registros(linhas):
        codigo = _primeiro(reg, 'MATERIAL', 'CODIGO')
        descricao = _primeiro(reg, 'DESCRICAO', 'DESCRIPTION')
        if not codigo and not descricao:
            continue
        if not codigo or not descricao:
            erros.append(f'Linha {numero}: MATERIAL e DESCRIÇÃO são obrigatórios')
            continue
        dados = {
            'material': codigo,
            'descricao': descricao,
            'noturno': _tipo_separacao(reg.get('NOTURNO', reg.get('NIGHT'))),
            'diurno': _tipo_separacao(reg.get('DIURNO', reg.get('DAY'))),
        }
        try:
            materiais.append(MaterialIn.model_validate(dados).model_dump())
        except PydanticValidationError as e:
            erros.append(f'Linha {numero}: {_mensagens(e)}')
    return materiais, erros


def gerar_faturamento(linhas):
    """Gera o .xlsx de faturamento em memória.

    ``linhas`` são dicts com as chaves de ``COLUNAS_FATURAMENTO``.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = 'Faturamento'
    ws.append(list(COLUNAS_FATURAMENTO))
    cabecalho_fill = PatternFill(start_color='D9E1F2', end_color='D9E1F2', fill_type='solid')
    for celula in ws[1]:
        celula.font = Font(bold=True)
        celula.fill = cabecalho_fill
    for linha in linhas:
        ws.append([linha[coluna] for coluna in COLUNAS_FATURAMENTO])
    for indice, largura in enumerate(LARGURAS_FATURAMENTO):
        ws.column_dimensions[chr(ord('A') + indice)].width = largura

    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def gerar_relatorio_separacao(lojas, itens, medias):
    """Gera o relatório .xlsx de uma separação.

    Args:
        lojas: códigos das lojas (colunas da aba ``Separacao``)
        itens: dicts ``{codigo, descricao, quantidades: {loja: qtd}}``
        medias: dicts com as chaves ``codigo, material, quantidade_kg,
            quantidade_caixas, media_sistema``

    Returns:
        BytesIO com a planilha, ou None quando não há itens nem médias
    """
    if not itens and not medias:
        return None

    wb = Workbook()
    wb.remove(wb.active)

    if itens:
        ws = wb.create_sheet('Separacao')
        ws.append(['CÓDIGO', 'DESCRIÇÃO'] + list(lojas))
        for item in itens:
            ws.append([item['codigo'], item['descricao']] + [item['quantidades'].get(loja, 0) for loja in lojas])
        ws.column_dimensions['A'].width = 15
        ws.column_dimensions['B'].width = 50
        for indice in range(len(lojas)):
            ws.column_dimensions[get_column_letter(indice + 3)].width = 10

    if medias:
        ws = wb.create_sheet('Analise de Media')
        ws.append(list(COLUNAS_ANALISE_RELATORIO))
        for media in medias:
            ws.append([media['codigo'], media['material'], media['quantidade_kg'],
                       media['quantidade_caixas'], media['media_sistema']])

    for ws in wb.worksheets:
        for celula in ws[1]:
            celula.font = Font(bold=True)

    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output
