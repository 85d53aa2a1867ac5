"""
================================================================================
MÓDULO: profit.py - Colunas de Lucro da Tabela de Revisão
================================================================================

Deriva as métricas de exibição que não ficam gravadas no produto, a partir
de um PricedProduct já calculado e dos parâmetros que o produziram.

A principal é o "Lucro Epita c/ Desc.": lucro do canal Epita se a peça for
vendida com o desconto promocional fixo do canal (10%):

    custo líquido     = mesma fórmula do PricingEngine
    preço Epita       = mesma fórmula do PricingEngine (sem arredondar)
    preço c/ desconto = preço Epita × (1 − 0,10)
    lucro             = preço c/ desconto − custo líquido

Custo e preço são recalculados pelas funções de pricing.py, nunca por uma
cópia das fórmulas, para que a coluna não divirja do preço gravado.

Versão: 1.0
================================================================================
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .descricao import gerar_descricao_produto
from .models import Canal, PricedProduct, PricingParameters
from .pricing import (
    calcular_custo_com_desconto,
    calcular_custo_liquido,
    calcular_preco_venda,
)


# Desconto promocional fixo de cada canal
DESCONTOS_PROMOCIONAIS: Dict[Canal, Decimal] = {
    Canal.XAPURI: Decimal("0.10"),
    Canal.EPITA: Decimal("0.10"),
}


class ProfitColumnEngine:
    """Cálculos somente-leitura sobre linhas já precificadas."""

    def __init__(self, params: Optional[PricingParameters] = None):
        self.params = params or PricingParameters()

    def custo_liquido(self, linha: PricedProduct) -> Decimal:
        produto = linha.produto
        custo = calcular_custo_com_desconto(
            produto.valor_unitario, produto.desconto, produto.quantidade
        )
        return calcular_custo_liquido(custo, self.params.imposto_entrada, linha.frete_unitario)

    def preco_sem_arredondamento(self, linha: PricedProduct, canal: Canal) -> Decimal:
        return calcular_preco_venda(self.custo_liquido(linha), self.params.markup(canal))

    def lucro(self, linha: PricedProduct, canal: Canal) -> Decimal:
        """Lucro unitário com o preço gravado (já arredondado)."""
        return linha.preco(canal) - self.custo_liquido(linha)

    def lucro_com_desconto(self, linha: PricedProduct, canal: Canal = Canal.EPITA) -> Decimal:
        """
        Lucro unitário vendendo com o desconto promocional do canal.

        Pode ser negativo quando o markup é baixo.
        """
        desconto = DESCONTOS_PROMOCIONAIS[canal]
        preco_com_desconto = self.preco_sem_arredondamento(linha, canal) * (1 - desconto)
        return preco_com_desconto - self.custo_liquido(linha)

    def montar_linha(self, linha: PricedProduct) -> Dict[str, Any]:
        """Dicionário com todas as colunas da tabela de revisão."""
        produto = linha.produto
        quantidade = produto.quantidade
        desconto_unitario = produto.desconto / quantidade if quantidade > 0 else Decimal("0")

        return {
            "codigo": produto.codigo,
            "descricao": produto.descricao,
            "descricao_exibicao": gerar_descricao_produto(produto),
            "tamanho": produto.tamanho,
            "referencia": produto.referencia,
            "ean": produto.ean,
            "cor": produto.cor or "",
            "ncm": produto.ncm,
            "cfop": produto.cfop,
            "unidade": produto.unidade,
            "quantidade": quantidade,
            "custo_bruto": produto.valor_unitario,
            "custo_com_desconto": linha.custo_com_desconto,
            "valor_total": produto.valor_total,
            "desconto_unitario": desconto_unitario,
            "frete_proporcional": linha.frete_unitario,
            "custo_liquido": linha.custo_liquido,
            "preco_xapuri": linha.preco_xapuri,
            "preco_epita": linha.preco_epita,
            "lucro_xapuri": self.lucro(linha, Canal.XAPURI),
            "lucro_epita": self.lucro(linha, Canal.EPITA),
            "lucro_epita_com_desconto": self.lucro_com_desconto(linha, Canal.EPITA),
            "descricao_complementar": produto.descricao_complementar,
        }

    def montar_linhas(self, linhas: Iterable[PricedProduct]) -> List[Dict[str, Any]]:
        return [self.montar_linha(linha) for linha in linhas]
