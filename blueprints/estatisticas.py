from flask import Blueprint, jsonify
from flask_login import current_user

from auth import require_auth
from services.repositorio import AtividadeRepo, SeparacaoRepo

estatisticas_bp = Blueprint('estatisticas', __name__)

# separações mais longas que um dia não entram no tempo médio
DURACAO_MAXIMA_MINUTOS = 24 * 60


def _media(valores):
    return round(sum(valores) / len(valores)) if valores else 0


def tempo_medio(separacoes):
    """Tempo médio entre criação e finalização, no formato ``Xh Ym``"""
    minutos = []
    for sep in separacoes:
        if not sep.created_at or not sep.updated_at:
            continue
        duracao = int((sep.updated_at - sep.created_at).total_seconds() // 60)
        if 0 < duracao < DURACAO_MAXIMA_MINUTOS:
            minutos.append(duracao)
    media = _media(minutos)
    return f'{media // 60}h {media % 60}m'


@estatisticas_bp.route('', methods=['GET'])
@require_auth
def user_stats():
    """Estatísticas de separação do usuário"""
    separacoes = SeparacaoRepo(current_user.id).listar()
    finalizadas = [s for s in separacoes if s.status == 'completed']
    total = len(separacoes)

    return jsonify({'stats': {
        'totalSeparacoes': total,
        'separacoesFinalizadas': len(finalizadas),
        'separacoesAtivas': sum(1 for s in separacoes if s.status == 'active'),
        'mediaItemsSeparados': _media([s.total_items or 0 for s in finalizadas]),
        'mediaLojas': _media([s.total_stores or 0 for s in finalizadas]),
        'tempoMedioSeparacao': tempo_medio(finalizadas),
        'eficiencia': round(len(finalizadas) / total * 100) if total else 0,
        'diasAtivos': AtividadeRepo(current_user.id).dias_ativos()
    }})
