from datetime import datetime
from zoneinfo import ZoneInfo

from flask import Blueprint, jsonify, current_app, send_file
from flask_login import current_user

from auth import require_auth
from errors import NoActiveSeparation, NotFound, ValidationError
from services.analise_medias import atualizar_estoque
from services.atividades import registrar_atividade
from services.media_status import STATUS_ATENCAO, STATUS_CRITICO, STATUS_OK
from services.planilhas import XLSX_MIMETYPE, gerar_faturamento
from services.repositorio import CadastroRepo, MediaRepo, SeparacaoRepo

faturamento_bp = Blueprint('faturamento', __name__)

MENSAGENS_STATUS = {
    STATUS_ATENCAO: 'Diferença significativa entre estoque e quantidade prevista',
    STATUS_CRITICO: 'Problema crítico: estoque distribuído maior que a quantidade de caixas declarada',
}


def _mensagem_status(status):
    return MENSAGENS_STATUS.get(status, 'Status não identificado')


def _acao_recomendada(criticos, alertas):
    if criticos > 0:
        return 'Recomendado corrigir itens críticos antes de prosseguir'
    if alertas > 0:
        return 'Revisar itens com atenção ou prosseguir com cautela'
    return 'Todos os itens estão OK - pode prosseguir com segurança'


def _item_com_erro(item):
    return {
        'id': item.id,
        'codigo': item.codigo,
        'material': item.material,
        'status': item.status,
        'error': _mensagem_status(item.status),
        'mediaSistema': item.media_sistema,
    }


def _itens_faturamento():
    """Quantidades > 0 da separação ativa agrupadas por loja e material, com o centro da loja"""
    repo = SeparacaoRepo(current_user.id)
    sep = repo.ativa_ou_erro()
    descricoes = {i.material_code: i.description for i in repo.itens(sep)}
    linhas = repo.linhas_faturamento(sep)

    lojas = CadastroRepo(current_user.id).lojas_por_prefixo({loja for loja, _, _ in linhas})
    sem_centro = sorted({loja for loja, _, _ in linhas if not (lojas.get(loja) and lojas[loja].centro)})
    if sem_centro:
        raise ValidationError(
            f"Lojas sem centro definido: {', '.join(sem_centro)}. Configure os centros no cadastro de lojas.",
            storesWithoutCenter=sem_centro
        )

    return [
        {
            'loja': loja,
            'centro': lojas[loja].centro,
            'material': material,
            'description': descricoes.get(material, ''),
            'quantidade': quantidade,
        }
        for loja, material, quantidade in linhas
    ]


def _medias_ou_erro(codigos, mensagem):
    atualizar_estoque(current_user.id, codigos)
    medias = MediaRepo(current_user.id).por_codigos(codigos)
    faltando = [c for c in codigos if c not in medias]
    if faltando:
        raise ValidationError(
            mensagem or f"Materiais sem média: {', '.join(faltando)}",
            missingMaterials=faltando,
            details=f"Materiais sem média: {', '.join(faltando)}"
        )
    return medias


@faturamento_bp.route('/check-media-status', methods=['GET'])
@require_auth
def check_media_status():
    """Verificar o status da análise de médias antes do faturamento"""
    repo = SeparacaoRepo(current_user.id)
    sep = repo.ativa()
    if sep is None:
        raise NoActiveSeparation('Nenhuma separação ativa encontrada. Crie uma separação primeiro.')

    codigos = sorted({i.material_code for i in repo.itens(sep)})
    if not codigos:
        raise NotFound('Nenhum material encontrado na separação ativa')

    atualizar_estoque(current_user.id, codigos)
    medias = MediaRepo(current_user.id).por_codigos(codigos)
    faltando = [c for c in codigos if c not in medias]
    if faltando:
        raise ValidationError(
            f"Materiais sem análise de média: {', '.join(faltando)}. Execute a análise de médias primeiro.",
            missingMaterials=faltando,
            totalMaterialsInSeparation=len(codigos),
            materialsWithAnalysis=len(medias)
        )

    itens = list(medias.values())
    com_erro = [i for i in itens if i.status != STATUS_OK]
    criticos = [i for i in com_erro if i.status == STATUS_CRITICO]
    alertas = [i for i in com_erro if i.status == STATUS_ATENCAO]
    total = len(itens)

    return jsonify({
        'totalItems': total,
        'totalMaterialsInSeparation': len(codigos),
        'itemsWithError': len(com_erro),
        'criticalItems': len(criticos),
        'warningItems': len(alertas),
        'successRate': round((total - len(com_erro)) / max(total, 1) * 100),
        'errorItems': [_item_com_erro(i) for i in com_erro],
        'summary': {
            'canProceed': not com_erro,
            'hasWarnings': bool(alertas),
            'hasCriticalIssues': bool(criticos),
            'recommendedAction': _acao_recomendada(len(criticos), len(alertas))
        }
    })


@faturamento_bp.route('/generate-table', methods=['GET'])
@require_auth
def generate_table():
    """Gerar a tabela de faturamento da separação ativa"""
    itens = _itens_faturamento()
    codigos = sorted({i['material'] for i in itens})
    medias = _medias_ou_erro(codigos, 'Materiais sem média encontrados')

    com_erro = [m for m in medias.values() if m.status != STATUS_OK]
    if com_erro:
        raise ValidationError(
            'Problemas encontrados na análise de médias',
            errorItems=[_item_com_erro(m) for m in com_erro],
            totalItems=len(medias)
        )

    return jsonify({
        'items': itens,
        'summary': {
            'totalItems': len(itens),
            'uniqueMaterials': len(codigos),
            'uniqueStores': len({i['loja'] for i in itens})
        }
    })


@faturamento_bp.route('/generate-excel', methods=['POST'])
@require_auth
def generate_excel():
    """Exportar a planilha de faturamento (.xlsx)"""
    itens = _itens_faturamento()
    codigos = sorted({i['material'] for i in itens})
    medias = MediaRepo(current_user.id).por_codigos(codigos)
    faltando = [c for c in codigos if c not in medias]
    if faltando:
        raise ValidationError(
            f"Médias não encontradas para os materiais: {', '.join(faltando)}. Execute a análise de médias primeiro."
        )

    cfg = current_app.config
    agora = datetime.now(ZoneInfo(cfg['FATURAMENTO_TIMEZONE']))
    linhas = [
        {
            'Data': agora.strftime('%d/%m/%Y'),
            'Centro': item['centro'],
            'Grupo Comprador': cfg['FATURAMENTO_GRUPO_COMPRADOR'],
            'Código fornecedor': cfg['FATURAMENTO_CODIGO_FORNECEDOR'],
            'Codigo': item['material'],
            'QTD': round(item['quantidade'] * (medias[item['material']].media_sistema or 0), 2),
            'DP': cfg['FATURAMENTO_DP'],
        }
        for item in itens
    ]
    output = gerar_faturamento(linhas)

    registrar_atividade(
        current_user.id,
        'Planilha de faturamento gerada',
        f'{len(linhas)} linha(s) exportadas',
        'separation',
        {'rows': len(linhas), 'materials': len(codigos)}
    )

    return send_file(
        output,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"faturamento_{agora.strftime('%Y-%m-%d')}.xlsx"
    )


@faturamento_bp.route('/volume-indicator', methods=['GET'])
@require_auth
def volume_indicator():
    """Volume total distribuído na separação ativa"""
    repo = SeparacaoRepo(current_user.id)
    sep = repo.ativa()
    if sep is None:
        raise NoActiveSeparation('Nenhuma separação ativa encontrada. Crie uma separação primeiro.')

    total, linhas = repo.volume(sep)
    return jsonify({'totalVolume': total, 'totalItems': linhas})
