"""
================================================================================
MÓDULO: pricing.py - Motor de Precificação
================================================================================

Calcula, para cada produto da nota, o custo líquido e os preços de venda dos
dois canais (Xapuri e Epita), aplicando a política de arredondamento.

FÓRMULAS:
---------
    Custo c/ desconto = valor unitário − (desconto do item / quantidade)

    Custo líquido     = custo c/ desconto × (1 + imposto de entrada / 100)
                        + frete unitário

    Preço do canal    = custo líquido × (markup do canal / 100)

O markup representa o preço de venda inteiro como percentual do custo:
markup 160 significa vender a 160% do custo (não custo + 160%).

Exemplo (sem desconto e sem frete):

    valor unitário   R$ 10,00
    imposto entrada  12%      -> custo líquido  R$ 11,20
    markup Xapuri    160%     -> preço Xapuri   R$ 17,92

ARREDONDAMENTO:
---------------
Conjunto fechado (models.Arredondamento), uma função por política:

    NENHUM     preço inalterado
    NOVENTA    menor valor terminado em ,90 que seja >= preço
    CINQUENTA  menor valor terminado em ,50 que seja >= preço

    17,92 -> ,90 -> 18,90        17,90 -> ,90 -> 17,90
    17,92 -> ,50 -> 18,50        17,30 -> ,50 -> 17,50

O resultado nunca é menor que o preço original e fica sempre a menos de
R$ 1,00 dele. Aplicar a mesma política duas vezes não muda o valor.

FRETE PROPORCIONAL:
-------------------
O frete da nota é rateado entre os itens na proporção do custo líquido de
cada linha (custo líquido unitário × quantidade) e depois dividido pela
quantidade, virando uma parcela por unidade somada ao custo líquido.

Todas as funções são puras: nenhuma altera seus argumentos.

USO:
----
    from precificador.core.models import PricingParameters, Arredondamento
    from precificador.core.pricing import PricingEngine

    params = PricingParameters(arredondamento=Arredondamento.NOVENTA)
    engine = PricingEngine(params)

    precificados = engine.precificar_nota(nota)
    for item in precificados:
        print(item.produto.descricao, item.preco_xapuri, item.preco_epita)

Versão: 1.0
================================================================================
"""

# =============================================================================
# IMPORTS
# =============================================================================

from decimal import ROUND_CEILING, Decimal
from typing import Callable, Dict, List, Optional, Sequence

from .models import (
    ZERO,
    Arredondamento,
    Canal,
    Invoice,
    PricedProduct,
    PricingParameters,
    RawProduct,
    como_decimal,
)


# =============================================================================
# CONSTANTES
# =============================================================================

CEM = Decimal("100")
FINAL_NOVENTA = Decimal("0.90")
FINAL_CINQUENTA = Decimal("0.50")


# =============================================================================
# FÓRMULAS
# =============================================================================

def _valor(valor: Optional[Decimal]) -> Decimal:
    # Entradas ausentes contam como zero
    if valor is None:
        return ZERO
    return como_decimal(valor)


def calcular_custo_com_desconto(
    valor_unitario: Decimal,
    desconto: Optional[Decimal] = None,
    quantidade: Optional[Decimal] = None,
) -> Decimal:
    """
    Valor unitário menos o desconto médio por unidade.

    Se a quantidade não for positiva o desconto não pode ser rateado e o
    valor unitário é devolvido sem alteração.
    """
    valor_unitario = _valor(valor_unitario)
    desconto = _valor(desconto)
    quantidade = _valor(quantidade)

    if quantidade <= 0:
        return valor_unitario
    return valor_unitario - desconto / quantidade


def calcular_custo_liquido(
    custo: Decimal,
    imposto_entrada: Decimal,
    frete: Optional[Decimal] = None,
) -> Decimal:
    """
    Custo × (1 + imposto/100) + frete.

    O frete já vem na mesma unidade do custo (R$ por unidade).
    """
    return _valor(custo) * (1 + _valor(imposto_entrada) / CEM) + _valor(frete)


def calcular_preco_venda(custo_liquido: Decimal, markup: Decimal) -> Decimal:
    """Preço de venda = custo líquido × markup / 100."""
    return _valor(custo_liquido) * _valor(markup) / CEM


def _arredondar_terminando_em(preco: Decimal, final: Decimal) -> Decimal:
    """
    Menor valor n + final (n inteiro) que seja >= preço.

    Example:
        >>> _arredondar_terminando_em(Decimal("17.92"), Decimal("0.90"))
        Decimal('18.90')
    """
    inteiro = (preco - final).to_integral_value(rounding=ROUND_CEILING)
    return inteiro + final


def _sem_arredondamento(preco: Decimal) -> Decimal:
    return preco


def _arredondar_noventa(preco: Decimal) -> Decimal:
    return _arredondar_terminando_em(preco, FINAL_NOVENTA)


def _arredondar_cinquenta(preco: Decimal) -> Decimal:
    return _arredondar_terminando_em(preco, FINAL_CINQUENTA)


# Uma função por política; a enumeração é fechada
FUNCOES_ARREDONDAMENTO: Dict[Arredondamento, Callable[[Decimal], Decimal]] = {
    Arredondamento.NENHUM: _sem_arredondamento,
    Arredondamento.NOVENTA: _arredondar_noventa,
    Arredondamento.CINQUENTA: _arredondar_cinquenta,
}


def arredondar(preco: Decimal, arredondamento: Arredondamento) -> Decimal:
    """Aplica a política de arredondamento ao preço."""
    return FUNCOES_ARREDONDAMENTO[arredondamento](_valor(preco))


def calcular_frete_proporcional(
    produtos: Sequence[RawProduct],
    valor_frete: Decimal,
    imposto_entrada: Decimal,
) -> List[Decimal]:
    """
    Rateia o frete da nota entre os itens.

    Cada linha recebe uma fatia proporcional ao seu custo líquido total
    (sem frete); a fatia é então dividida pela quantidade da linha para
    virar frete por unidade.

    Args:
        produtos: Itens da nota, na ordem da nota.
        valor_frete: Frete total da nota (R$).
        imposto_entrada: Percentual do imposto de entrada.

    Returns:
        List[Decimal]: Frete por unidade de cada item, na mesma ordem.
        Tudo zero se o custo total for zero.

    Example:
        >>> # a e b: quantidade 1, mesmo valor unitário
        >>> calcular_frete_proporcional([a, b], Decimal("20"), Decimal("0"))
        [Decimal('10'), Decimal('10')]
    """
    valor_frete = _valor(valor_frete)

    custos_linha = []
    for produto in produtos:
        custo = calcular_custo_com_desconto(
            produto.valor_unitario, produto.desconto, produto.quantidade
        )
        unitario = calcular_custo_liquido(custo, imposto_entrada)
        custos_linha.append(unitario * max(_valor(produto.quantidade), ZERO))

    total = sum(custos_linha, ZERO)
    if total <= 0 or valor_frete <= 0:
        return [ZERO for _ in produtos]

    fretes = []
    for produto, custo_linha in zip(produtos, custos_linha):
        quantidade = _valor(produto.quantidade)
        if quantidade <= 0:
            fretes.append(ZERO)
            continue
        fretes.append(custo_linha / total * valor_frete / quantidade)
    return fretes


def calcular_totais(precificados: Sequence[PricedProduct]) -> Dict[str, Decimal]:
    """
    Totais da nota para o rodapé da tabela de revisão.

    Returns:
        Dict com total_bruto, total_desconto, total_liquido (bruto −
        desconto) e total_custo_liquido (custo líquido × quantidade).
    """
    totais = {
        "total_bruto": ZERO,
        "total_desconto": ZERO,
        "total_liquido": ZERO,
        "total_custo_liquido": ZERO,
    }
    for item in precificados:
        produto = item.produto
        totais["total_bruto"] += produto.valor_total
        totais["total_desconto"] += produto.desconto
        totais["total_liquido"] += produto.valor_total - produto.desconto
        totais["total_custo_liquido"] += item.custo_liquido * produto.quantidade
    return totais


# =============================================================================
# CLASSE PRINCIPAL
# =============================================================================

class PricingEngine:
    """
    Aplica um conjunto de PricingParameters a produtos e notas.

    Attributes:
        params (PricingParameters): Imposto, markups, arredondamento e frete.

    Example:
        >>> engine = PricingEngine(PricingParameters())
        >>> item = engine.precificar(produto)
        >>> item.custo_liquido, item.preco_xapuri
        (Decimal('11.20'), Decimal('17.92'))
    """

    def __init__(self, params: Optional[PricingParameters] = None):
        self.params = params or PricingParameters()

    def precificar(self, produto: RawProduct, frete: Optional[Decimal] = None) -> PricedProduct:
        """
        Precifica um único produto.

        Args:
            produto: Item decodificado da nota (não é alterado).
            frete: Frete por unidade deste item. Se omitido, usa
                ``params.frete_item`` (ou zero).

        Returns:
            PricedProduct: Novo registro com custos e preços.
        """
        params = self.params
        if frete is None:
            frete = params.frete_item

        custo = calcular_custo_com_desconto(
            produto.valor_unitario, produto.desconto, produto.quantidade
        )
        custo_liquido = calcular_custo_liquido(custo, params.imposto_entrada, frete)

        precos = {}
        for canal in Canal:
            bruto = calcular_preco_venda(custo_liquido, params.markup(canal))
            precos[canal] = arredondar(bruto, params.arredondamento)

        return PricedProduct(
            produto=produto,
            custo_com_desconto=custo,
            frete_unitario=_valor(frete),
            custo_liquido=custo_liquido,
            preco_xapuri=precos[Canal.XAPURI],
            preco_epita=precos[Canal.EPITA],
            arredondamento=params.arredondamento,
        )

    def precificar_nota(
        self,
        nota: Invoice,
        valor_frete: Optional[Decimal] = None,
    ) -> List[PricedProduct]:
        """
        Precifica todos os itens de uma nota, na ordem da nota.

        Com ``params.frete_item`` definido, essa parcela fixa vale para
        todos os itens. Sem ela, o frete total (``valor_frete`` ou, na
        falta dele, o vFrete da própria nota) é rateado por
        calcular_frete_proporcional().
        """
        produtos = list(nota.produtos)

        if self.params.frete_item is not None:
            return [self.precificar(p, self.params.frete_item) for p in produtos]

        if valor_frete is None:
            valor_frete = nota.valor_frete

        fretes = calcular_frete_proporcional(
            produtos, valor_frete, self.params.imposto_entrada
        )
        return [self.precificar(p, f) for p, f in zip(produtos, fretes)]
