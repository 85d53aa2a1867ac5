"""
Pacote utils - Utilitários do Precificador NF-e.

Contém:
    - ReportGenerator: Exportação da tabela de revisão para Excel/CSV
"""

from .exporter import ReportGenerator

__all__ = ['ReportGenerator']
