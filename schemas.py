"""
DTOs de entrada validados com pydantic.

As rotas chamam ``Schema.model_validate(payload)``; violações viram
``400 {'error': 'Dados inválidos', 'details': [...]}`` no tratador global.
"""
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

SENHA_FORTE = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]+$')


class _Base(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


# -------------------------
# Auth
# -------------------------

class RegisterRequest(_Base):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=2)


class LoginRequest(_Base):
    email: EmailStr
    password: str = Field(min_length=1)


class ForgotPasswordRequest(_Base):
    email: EmailStr


class ResetPasswordRequest(_Base):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    email: EmailStr
    code: str = Field(min_length=6, max_length=6, pattern=r'^\d{6}$')
    password: str = Field(min_length=8)
    confirm_password: str = Field(alias='confirmPassword')

    @field_validator('password')
    @classmethod
    def _senha_forte(cls, v):
        if not SENHA_FORTE.match(v):
            raise ValueError('Senha deve conter ao menos uma letra minúscula, uma maiúscula, um número e um caractere especial')
        return v

    @model_validator(mode='after')
    def _senhas_iguais(self):
        if self.password != self.confirm_password:
            raise ValueError('Senhas não coincidem')
        return self


# -------------------------
# Separações
# -------------------------

class SeparationUploadForm(_Base):
    type: Literal['SP', 'ES', 'RJ']
    date: str = Field(pattern=r'^\d{4}-\d{2}-\d{2}$')


class DeleteSeparationRequest(_Base):
    model_config = ConfigDict(populate_by_name=True)

    separation_id: int = Field(alias='separationId')


class UpdateQuantityRequest(_Base):
    model_config = ConfigDict(populate_by_name=True)

    item_id: int = Field(alias='itemId')
    store_code: str = Field(alias='storeCode', min_length=1)
    quantity: float = Field(ge=0)


class UpdateItemTypeRequest(_Base):
    model_config = ConfigDict(populate_by_name=True)

    item_id: int = Field(alias='itemId')
    type_separation: Literal['SECO', 'FRIO', 'ORGANICO'] = Field(alias='typeSeparation')


class ProductSearchQuery(_Base):
    query: str = Field(min_length=1)
    limit: int = Field(default=20, ge=1, le=100)


class LastReinforcementQuery(_Base):
    model_config = ConfigDict(populate_by_name=True)

    separation_id: int = Field(alias='separationId')


class SpecificStoreCut(_Base):
    store_code: str = Field(min_length=1)
    cut_all: bool = True


class PartialStoreCut(_Base):
    store_code: str = Field(min_length=1)
    quantity_to_cut: float = Field(ge=1)
    current_quantity: float = Field(ge=1)


class ProductCutRequest(_Base):
    material_code: str = Field(min_length=1)
    description: Optional[str] = None
    cut_type: Literal['all', 'specific', 'partial']
    stores: Optional[List[SpecificStoreCut]] = None
    partial_cuts: Optional[List[PartialStoreCut]] = None


# -------------------------
# Análise de médias
# -------------------------

class MediaBulkAddItem(_Base):
    codigo: str = Field(min_length=1)
    material: str = Field(min_length=1)
    quantidade_kg: float = Field(ge=0)
    quantidade_caixas: float = Field(ge=0)
    media_sistema: float = Field(ge=0)


class MediaBulkAddRequest(_Base):
    items: List[MediaBulkAddItem] = Field(min_length=1)


class MediaBulkInsertItem(_Base):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    codigo: str = Field(min_length=1)
    material: str = Field(min_length=1)
    quantidade_kg: float = Field(alias='quantidadeKg', ge=0)
    quantidade_caixas: float = Field(alias='quantidadeCaixas', ge=0)


class MediaBulkInsertRequest(_Base):
    items: List[MediaBulkInsertItem] = Field(min_length=1)


class MediaItemUpdate(_Base):
    codigo: Optional[str] = Field(default=None, min_length=1)
    material: Optional[str] = Field(default=None, min_length=1)
    quantidade_kg: Optional[float] = Field(default=None, ge=0)
    quantidade_caixas: Optional[float] = Field(default=None, ge=0)


class ForceStatusRequest(_Base):
    item_id: int
    reason: Optional[str] = None


class CustomMediaRequest(_Base):
    item_id: int
    custom_media: float = Field(ge=0.01, le=999)


# -------------------------
# Cadastros
# -------------------------

class LojaIn(_Base):
    prefixo: str = Field(min_length=1, max_length=20)
    nome: str = Field(min_length=1, max_length=200)
    tipo: Literal['CD', 'Loja Padrão', 'Administrativo'] = 'CD'
    uf: str = Field(min_length=2, max_length=2)
    centro: Optional[str] = None
    zona_seco: str = Field(default='', alias='zonaSeco')
    subzona_seco: str = Field(default='', alias='subzonaSeco')
    zona_frio: str = Field(default='', alias='zonaFrio')
    ordem_seco: int = Field(default=0, alias='ordemSeco', ge=0)
    ordem_frio: int = Field(default=0, alias='ordemFrio', ge=0)

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    @field_validator('uf')
    @classmethod
    def _uf_maiuscula(cls, v):
        return v.upper()


class MaterialIn(_Base):
    material: str = Field(min_length=1, max_length=50)
    descricao: str = Field(min_length=1, max_length=255)
    noturno: Literal['SECO', 'FRIO'] = 'SECO'
    diurno: Literal['SECO', 'FRIO'] = 'SECO'


# -------------------------
# Atividades
# -------------------------

class ActivityIn(_Base):
    action: str = Field(min_length=1)
    details: str = ''
    type: Literal['upload', 'login', 'separation', 'media_analysis', 'profile_update', 'settings_change', 'info'] = 'info'
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ActivityQuery(_Base):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    type: Optional[str] = None


# -------------------------
# Relatórios
# -------------------------

class RelatorioQuery(_Base):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    type: Optional[Literal['SP', 'ES', 'RJ']] = None
    status: Optional[Literal['active', 'completed']] = None
    date_from: Optional[str] = Field(default=None, alias='dateFrom', pattern=r'^\d{4}-\d{2}-\d{2}$')
    date_to: Optional[str] = Field(default=None, alias='dateTo', pattern=r'^\d{4}-\d{2}-\d{2}$')
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


# -------------------------
# Pedidos gerados / pós faturamento
# -------------------------

class PedidoGeradoIn(_Base):
    pedido: str = Field(min_length=1, max_length=50)
    remessa: str = Field(min_length=1, max_length=50)
    dados_adicionais: Optional[str] = None


class PedidosGeradosRequest(_Base):
    items: List[PedidoGeradoIn] = Field(min_length=1)


class PosFaturamentoIn(_Base):
    codigo: str = Field(min_length=1, max_length=50)
    material: str = Field(min_length=1)
    quantidade_kg: float = Field(default=0, ge=0)
    quantidade_caixas: float = Field(default=0, ge=0)
    estoque_atual: float = Field(default=0, ge=0)


class PosFaturamentoRequest(_Base):
    items: List[PosFaturamentoIn] = Field(min_length=1)
