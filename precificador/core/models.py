"""
================================================================================
MÓDULO: models.py - Registros de Dados do Precificador
================================================================================

Define os registros que circulam pelo pipeline:

    XML ──► RawProduct / Invoice ──► PricedProduct ──► linhas de exibição

Todos os registros são imutáveis (dataclasses congeladas). Os dados originais
da nota (RawProduct) nunca são sobrescritos pelos cálculos: os valores
derivados vivem em campos separados do PricedProduct, para que a nota possa
ser auditada a qualquer momento.

Valores monetários e percentuais usam Decimal.

Versão: 1.0
================================================================================
"""

# =============================================================================
# IMPORTS
# =============================================================================

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Tuple

ZERO = Decimal("0")


def como_decimal(valor) -> Decimal:
    """Converte int, float ou str em Decimal sem herdar o erro binário do float."""
    if isinstance(valor, Decimal):
        return valor
    return Decimal(str(valor))


# =============================================================================
# ENUMERAÇÕES
# =============================================================================

class Canal(Enum):
    """Canais de venda, cada um com seu próprio markup."""

    XAPURI = "xapuri"
    EPITA = "epita"


class Arredondamento(Enum):
    """
    Política de arredondamento dos preços de venda.

    Conjunto fechado: cada membro tem uma única função de avaliação,
    registrada em ``pricing.FUNCOES_ARREDONDAMENTO``.

    Example:
        >>> Arredondamento.from_config(".90")
        <Arredondamento.NOVENTA: '90'>
        >>> Arredondamento.NOVENTA.aplicar(Decimal("17.92"))
        Decimal('18.90')
    """

    NENHUM = "none"
    NOVENTA = "90"
    CINQUENTA = "50"

    @classmethod
    def from_config(cls, texto: Optional[str]) -> "Arredondamento":
        """
        Converte o texto de configuração em um membro da enumeração.

        Aceita "none"/"" (sem arredondamento), "90"/".90"/"0.90" e
        "50"/".50"/"0.50".

        Raises:
            ValueError: Se o texto não corresponder a nenhuma política.
        """
        valor = (texto or "").strip().lower()
        if valor in ("", "none", "nenhum"):
            return cls.NENHUM
        if valor.startswith("0."):
            valor = valor[1:]
        valor = valor.lstrip(".")
        for membro in cls:
            if membro.value == valor:
                return membro
        raise ValueError(f"Arredondamento inválido: {texto!r}")

    def aplicar(self, preco: Decimal) -> Decimal:
        """Aplica esta política ao preço informado."""
        # Import local: pricing importa este módulo
        from .pricing import FUNCOES_ARREDONDAMENTO

        return FUNCOES_ARREDONDAMENTO[self](preco)


# =============================================================================
# DADOS DA NOTA
# =============================================================================

@dataclass(frozen=True)
class RawProduct:
    """
    Um item (<det>) da NF-e, exatamente como decodificado do XML.

    Os campos ``cor`` e ``tamanho`` são inferidos da descrição e da
    referência (código) no momento do parsing. Ausência é um estado válido:
    ``cor`` é None e ``tamanho`` é "".
    """

    numero_item: str = ""
    codigo: str = ""
    ean: str = ""
    descricao: str = ""
    ncm: str = ""
    cfop: str = ""
    unidade: str = ""
    quantidade: Decimal = ZERO
    valor_unitario: Decimal = ZERO
    valor_total: Decimal = ZERO
    desconto: Decimal = ZERO
    descricao_complementar: str = ""

    # ICMS / IPI (campos opacos, não calculados aqui)
    base_icms: Decimal = ZERO
    valor_icms: Decimal = ZERO
    aliquota_icms: Decimal = ZERO
    base_ipi: Decimal = ZERO
    valor_ipi: Decimal = ZERO
    aliquota_ipi: Decimal = ZERO

    cor: Optional[str] = None
    tamanho: str = ""

    @property
    def referencia(self) -> str:
        """A referência do produto é o próprio código do fornecedor."""
        return self.codigo


@dataclass(frozen=True)
class Invoice:
    """
    Nota fiscal decodificada.

    ``id`` é a chave de acesso (44 dígitos) ou, na falta dela, o número
    da nota.
    """

    id: str
    chave_acesso: str = ""
    numero: str = ""
    serie: str = ""
    data_emissao: str = ""
    fornecedor: str = ""
    cnpj_emitente: str = ""
    valor_total: Decimal = ZERO
    valor_frete: Decimal = ZERO
    produtos: Tuple[RawProduct, ...] = field(default_factory=tuple)

    @property
    def quantidade_itens(self) -> int:
        return len(self.produtos)


# =============================================================================
# PARÂMETROS E RESULTADOS DE PRECIFICAÇÃO
# =============================================================================

@dataclass(frozen=True)
class PricingParameters:
    """
    Parâmetros de uma requisição de precificação.

    Attributes:
        imposto_entrada: Percentual do imposto de entrada (ex.: 12 = 12%).
        markup_xapuri: Preço de venda Xapuri como % do custo líquido
            (160 = 160% do custo, não uma margem somada).
        markup_epita: Idem para o canal Epita.
        arredondamento: Política aplicada aos dois preços de venda.
        frete_item: Parcela fixa de frete por unidade (opcional).

    Raises:
        ValueError: Se algum percentual ou o frete for negativo ou não
            for um número finito.
    """

    imposto_entrada: Decimal = Decimal("12")
    markup_xapuri: Decimal = Decimal("160")
    markup_epita: Decimal = Decimal("130")
    arredondamento: Arredondamento = Arredondamento.NENHUM
    frete_item: Optional[Decimal] = None

    @staticmethod
    def _validar(nome: str, valor) -> Decimal:
        try:
            numero = como_decimal(valor)
        except (InvalidOperation, TypeError):
            raise ValueError(f"{nome} não é um número: {valor!r}") from None
        if not numero.is_finite():
            raise ValueError(f"{nome} não é um número: {valor!r}")
        if numero < 0:
            raise ValueError(f"{nome} não pode ser negativo: {numero}")
        return numero

    def __post_init__(self):
        for nome in ("imposto_entrada", "markup_xapuri", "markup_epita"):
            object.__setattr__(self, nome, self._validar(nome, getattr(self, nome)))

        if self.frete_item is not None:
            object.__setattr__(self, "frete_item", self._validar("frete_item", self.frete_item))

        if not isinstance(self.arredondamento, Arredondamento):
            object.__setattr__(
                self, "arredondamento", Arredondamento.from_config(self.arredondamento)
            )

    def markup(self, canal: Canal) -> Decimal:
        """Retorna o markup do canal informado."""
        if canal is Canal.XAPURI:
            return self.markup_xapuri
        return self.markup_epita


@dataclass(frozen=True)
class PricedProduct:
    """
    RawProduct acompanhado dos valores derivados.

    O produto original fica intacto em ``produto``; todos os números
    calculados ficam nos campos abaixo.
    """

    produto: RawProduct
    custo_com_desconto: Decimal
    frete_unitario: Decimal
    custo_liquido: Decimal
    preco_xapuri: Decimal
    preco_epita: Decimal
    arredondamento: Arredondamento

    def preco(self, canal: Canal) -> Decimal:
        if canal is Canal.XAPURI:
            return self.preco_xapuri
        return self.preco_epita
