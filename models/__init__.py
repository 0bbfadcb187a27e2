# Models package
from .usuario import Usuario, CodigoRecuperacao, AtividadeUsuario
from .separacao import Separacao, ItemSeparacao, QuantidadeSeparacao, ImpressaoReforco
from .media import MediaAnalise
from .cadastro import Loja, Material
from .faturamento import PedidoGerado, PosFaturamento
