from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user

from auth import require_auth
from errors import Conflict, ValidationError
from models import Loja, Material
from schemas import LojaIn, MaterialIn
from services.atividades import registrar_atividade
from services.planilhas import ler_linhas, ler_lojas, ler_materiais
from services.repositorio import CadastroRepo

cadastro_bp = Blueprint('cadastro', __name__)


def _repo():
    return CadastroRepo(current_user.id)


def _arquivo():
    arquivo = request.files.get('file')
    if not arquivo:
        raise ValidationError('Arquivo é obrigatório')
    return arquivo


# Lojas

@cadastro_bp.route('/lojas', methods=['GET'])
@require_auth
def listar_lojas():
    """Listar lojas ordenadas por prefixo"""
    return jsonify({'lojas': [l.to_dict() for l in _repo().lojas()]})


@cadastro_bp.route('/lojas', methods=['POST'])
@require_auth
def criar_loja():
    """Criar loja"""
    dados = LojaIn.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    if repo.loja_por_prefixo(dados.prefixo):
        raise Conflict('Já existe uma loja com este prefixo')

    loja = repo.adicionar(Loja(**dados.model_dump()))
    repo.salvar()
    return jsonify(loja.to_dict()), 201


@cadastro_bp.route('/lojas/<int:loja_id>', methods=['PUT'])
@require_auth
def atualizar_loja(loja_id):
    """Atualizar loja"""
    dados = LojaIn.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    loja = repo.loja(loja_id)

    if dados.prefixo != loja.prefixo and repo.loja_por_prefixo(dados.prefixo):
        raise Conflict('Já existe uma loja com este prefixo')

    for campo, valor in dados.model_dump().items():
        setattr(loja, campo, valor)
    repo.salvar()
    return jsonify(loja.to_dict())


@cadastro_bp.route('/lojas/<int:loja_id>', methods=['DELETE'])
@require_auth
def excluir_loja(loja_id):
    """Excluir loja"""
    repo = _repo()
    repo.excluir(repo.loja(loja_id))
    return jsonify({'message': 'Loja deletada com sucesso'})


@cadastro_bp.route('/lojas/upload', methods=['POST'])
@require_auth
def upload_lojas():
    """Importar lojas da planilha (upsert por prefixo)"""
    lojas, erros = ler_lojas(ler_linhas(_arquivo()))
    if not lojas:
        raise ValidationError('Nenhuma loja encontrada no arquivo', errors=erros)

    repo = _repo()
    existentes = repo.lojas_por_prefixo(l['prefixo'] for l in lojas)
    criadas = atualizadas = 0
    for dados in lojas:
        loja = existentes.get(dados['prefixo'])
        if loja is None:
            loja = repo.adicionar(Loja(**dados))
            existentes[dados['prefixo']] = loja
            criadas += 1
        else:
            for campo, valor in dados.items():
                setattr(loja, campo, valor)
            atualizadas += 1
    repo.salvar()
    current_app.logger.info(f'Importação de lojas: {criadas} criadas, {atualizadas} atualizadas')

    registrar_atividade(
        current_user.id,
        'Lojas importadas',
        f'{len(lojas)} loja(s) importadas da planilha',
        'upload',
        {'created': criadas, 'updated': atualizadas, 'errors': erros}
    )

    return jsonify({
        'message': 'Lojas importadas com sucesso',
        'count': len(lojas),
        'created': criadas,
        'updated': atualizadas,
        'errors': erros
    })


# Materiais

@cadastro_bp.route('/materiais', methods=['GET'])
@require_auth
def listar_materiais():
    """Listar materiais ordenados por código"""
    return jsonify({'materiais': [m.to_dict() for m in _repo().materiais()]})


@cadastro_bp.route('/materiais', methods=['POST'])
@require_auth
def criar_material():
    """Criar material"""
    dados = MaterialIn.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    if repo.material_por_codigo(dados.material):
        raise Conflict('Já existe um material com este código')

    material = repo.adicionar(Material(**dados.model_dump()))
    repo.salvar()
    return jsonify(material.to_dict()), 201


@cadastro_bp.route('/materiais/<int:material_id>', methods=['PUT'])
@require_auth
def atualizar_material(material_id):
    """Atualizar material"""
    dados = MaterialIn.model_validate(request.get_json(silent=True) or {})
    repo = _repo()
    material = repo.material(material_id)

    if dados.material != material.material and repo.material_por_codigo(dados.material):
        raise Conflict('Já existe um material com este código')

    for campo, valor in dados.model_dump().items():
        setattr(material, campo, valor)
    repo.salvar()
    return jsonify(material.to_dict())


@cadastro_bp.route('/materiais/<int:material_id>', methods=['DELETE'])
@require_auth
def excluir_material(material_id):
    """Excluir material"""
    repo = _repo()
    repo.excluir(repo.material(material_id))
    return jsonify({'message': 'Material deletado com sucesso'})


@cadastro_bp.route('/materiais/upload', methods=['POST'])
@require_auth
def upload_materiais():
    """Importar materiais da planilha (upsert por código)"""
    materiais, erros = ler_materiais(ler_linhas(_arquivo()))
    if not materiais:
        raise ValidationError('Nenhum material encontrado no arquivo', errors=erros)

    repo = _repo()
    criados = atualizados = 0
    vistos = {}
    for dados in materiais:
        material = vistos.get(dados['material']) or repo.material_por_codigo(dados['material'])
        if material is None:
            material = repo.adicionar(Material(**dados))
            criados += 1
        else:
            for campo, valor in dados.items():
                setattr(material, campo, valor)
            atualizados += 1
        vistos[dados['material']] = material
    repo.salvar()
    current_app.logger.info(f'Importação de materiais: {criados} criados, {atualizados} atualizados')

    registrar_atividade(
        current_user.id,
        'Materiais importados',
        f'{len(materiais)} material(is) importados da planilha',
        'upload',
        {'created': criados, 'updated': atualizados, 'errors': erros}
    )

    return jsonify({
        'message': 'Materiais importados com sucesso',
        'count': len(materiais),
        'created': criados,
        'updated': atualizados,
        'errors': erros
    })
