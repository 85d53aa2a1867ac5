"""
Precificador NF-e - importação de notas fiscais de compra e cálculo de
custos e preços de venda para a tabela de revisão.
"""

__version__ = "1.0.0"
