"""
Pacote core - Módulos centrais do Precificador NF-e.

Contém:
    - NFeParser: Extração de notas e produtos de XMLs de NF-e
    - PricingEngine: Custo líquido, preços por canal e arredondamento
    - ProfitColumnEngine: Colunas de lucro da tabela de revisão
    - Heurísticas de cor e tamanho (módulo descricao)
"""

from .models import (
    Arredondamento,
    Canal,
    Invoice,
    PricedProduct,
    PricingParameters,
    RawProduct,
)
from .parser import MalformedInvoiceError, NFeParser
from .pricing import PricingEngine
from .profit import ProfitColumnEngine

__all__ = [
    'Arredondamento',
    'Canal',
    'Invoice',
    'MalformedInvoiceError',
    'NFeParser',
    'PricedProduct',
    'PricingEngine',
    'PricingParameters',
    'ProfitColumnEngine',
    'RawProduct',
]
