"""
================================================================================
MÓDULO: exporter.py - Exportação da Tabela de Revisão de Preços
================================================================================

Gera a planilha (.xlsx) ou o CSV com as linhas de exibição montadas pelo
ProfitColumnEngine: um item da nota por linha, com custos, preços dos dois
canais e lucros.

ESTRUTURA DA PLANILHA:
----------------------
    | Nº Nota | Código | Descrição | Tam. | Cor | Qtd. | Custo Bruto | ... |
    |---------|--------|-----------|------|-----|------|-------------|-----|
    | 1234    | 2037-07| Camisa... | 07   | AZUL| 2    | 10.00       | ... |

Os valores continuam numéricos (arredondados a 2 casas) para permitir
somas e fórmulas no Excel.

NOMENCLATURA DOS ARQUIVOS:
--------------------------
    Tabela_Precificacao_20251229_143052.xlsx
                        │       │
                        │       └── Hora (HHMMSS)
                        └────────── Data (YYYYMMDD)

DEPENDÊNCIAS:
-------------
    - pandas: Manipulação de dados e exportação para Excel
    - openpyxl: Engine para escrita de arquivos .xlsx

USO:
----
    from precificador.utils.exporter import ReportGenerator

    exporter = ReportGenerator(output_folder="output_reports")
    exporter.gerar_excel(linhas)

Versão: 1.0
================================================================================
"""

# =============================================================================
# IMPORTS
# =============================================================================

import os  # Manipulação de caminhos e diretórios
from datetime import datetime  # Geração de timestamps
from decimal import Decimal
from typing import List, Dict, Any, Optional  # Type hints

# Pandas para manipulação de dados tabulares e exportação Excel
import pandas as pd

# Colorama para output colorido no terminal
from colorama import Fore


# =============================================================================
# CONSTANTES
# =============================================================================

# Diretório padrão para salvar as tabelas
DEFAULT_OUTPUT_FOLDER = "output_reports"

PREFIXO_ARQUIVO = "Tabela_Precificacao"

# Nome interno -> nome exibido na planilha
COLUMN_MAPPING = {
    # Dados da nota
    "numero_nota": "Nº Nota",
    "fornecedor": "Fornecedor",
    # Dados do item
    "codigo": "Código",
    "descricao": "Descrição",
    "descricao_exibicao": "Descrição Formatada",
    "tamanho": "Tam.",
    "referencia": "Referência",
    "ean": "EAN",
    "cor": "Cor",
    "ncm": "NCM",
    "cfop": "CFOP",
    "unidade": "UN",
    "quantidade": "Qtd.",
    "custo_bruto": "Custo Bruto",
    "custo_com_desconto": "Custo c/ desconto",
    "valor_total": "Total",
    "desconto_unitario": "Desc. Un.",
    "frete_proporcional": "Frete Proporcional",
    "custo_liquido": "Custo Líquido",
    "preco_xapuri": "Preço Xap.",
    "preco_epita": "Preço Epit.",
    "lucro_xapuri": "Lucro Xapuri",
    "lucro_epita": "Lucro Epita",
    "lucro_epita_com_desconto": "Lucro Epita c/ Desc.",
    "descricao_complementar": "Descrição Complementar",
}

# Ordem das colunas na planilha
COLUMN_ORDER = list(COLUMN_MAPPING.keys())

# Colunas monetárias, arredondadas a 2 casas na exportação
COLUNAS_MONETARIAS = [
    "custo_bruto",
    "custo_com_desconto",
    "valor_total",
    "desconto_unitario",
    "frete_proporcional",
    "custo_liquido",
    "preco_xapuri",
    "preco_epita",
    "lucro_xapuri",
    "lucro_epita",
    "lucro_epita_com_desconto",
]


# =============================================================================
# CLASSE PRINCIPAL
# =============================================================================

class ReportGenerator:
    """
    Gerador da tabela de revisão em Excel/CSV.

    Attributes:
        output_folder (str): Diretório onde os arquivos são salvos.

    Example:
        >>> exporter = ReportGenerator(output_folder="tabelas/2025")
        >>> exporter.gerar_excel(linhas)

    Note:
        - O diretório de output é criado automaticamente se não existir
        - Arquivos existentes NÃO são sobrescritos (usa timestamp único)
    """

    def __init__(self, output_folder: str = DEFAULT_OUTPUT_FOLDER):
        self.output_folder = output_folder

        if not os.path.exists(output_folder):
            os.makedirs(output_folder, exist_ok=True)
            print(Fore.BLUE + f"📁 Diretório criado: {output_folder}")

    def _generate_filename(self, extensao: str = "xlsx") -> str:
        """Nome único no formato Tabela_Precificacao_YYYYMMDD_HHMMSS.<ext>."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{PREFIXO_ARQUIVO}_{timestamp}.{extensao}"

    @staticmethod
    def _to_float(valor: Any) -> Any:
        if isinstance(valor, Decimal):
            return float(valor)
        return valor

    def _prepare_dataframe(self, linhas: List[Dict[str, Any]]) -> pd.DataFrame:
        """
        Prepara o DataFrame para exportação.

        Esta função:
        1. Converte Decimal em float (pandas/Excel não conhecem Decimal)
        2. Garante que todas as colunas esperadas existam
        3. Arredonda as colunas monetárias a 2 casas
        4. Reordena e renomeia as colunas
        """
        df = pd.DataFrame(
            [{k: self._to_float(v) for k, v in linha.items()} for linha in linhas]
        )

        for col in COLUMN_ORDER:
            if col not in df.columns:
                df[col] = ""

        for col in COLUNAS_MONETARIAS:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).round(2)

        df_ordered = df[COLUMN_ORDER].copy()
        df_ordered.columns = [COLUMN_MAPPING[col] for col in COLUMN_ORDER]
        return df_ordered

    def gerar_excel(self, linhas: List[Dict[str, Any]]) -> Optional[str]:
        """
        Gera a planilha Excel com as linhas de exibição.

        Args:
            linhas (List[Dict]): Linhas de ProfitColumnEngine.montar_linhas(),
                opcionalmente com "numero_nota" e "fornecedor".

        Returns:
            Optional[str]: Caminho do arquivo gerado, ou None se não houver
            linhas ou se a gravação falhar.
        """
        if not linhas:
            print(Fore.YELLOW + "⚠️  Nenhum item para exportar. Tabela não gerada.")
            return None

        df = self._prepare_dataframe(linhas)
        filepath = os.path.join(self.output_folder, self._generate_filename("xlsx"))

        try:
            df.to_excel(
                filepath,
                index=False,
                engine='openpyxl'
            )
        except PermissionError:
            print(Fore.RED + f"❌ Erro: Arquivo {filepath} está aberto em outro programa.")
            print(Fore.YELLOW + "   Feche o Excel e tente novamente.")
            return None
        except (OSError, ValueError) as e:
            print(Fore.RED + f"❌ Erro ao salvar Excel: {e}")
            return None

        print(Fore.GREEN + f"\n📊 Tabela de precificação gerada com sucesso!")
        print(Fore.WHITE + f"   📁 Arquivo: {filepath}")
        print(Fore.WHITE + f"   📋 Registros: {len(linhas)} itens")
        return filepath

    def gerar_csv(self, linhas: List[Dict[str, Any]]) -> Optional[str]:
        """
        Gera a tabela em CSV (alternativa ao Excel).

        Usa sep=';' e BOM UTF-8 para o Excel brasileiro abrir com acentos.
        """
        if not linhas:
            print(Fore.YELLOW + "⚠️  Nenhum item para exportar.")
            return None

        df = self._prepare_dataframe(linhas)
        filepath = os.path.join(self.output_folder, self._generate_filename("csv"))

        try:
            df.to_csv(
                filepath,
                index=False,
                sep=';',
                encoding='utf-8-sig'
            )
        except OSError as e:
            print(Fore.RED + f"❌ Erro ao salvar CSV: {e}")
            return None

        print(Fore.GREEN + f"📊 Tabela CSV gerada: {filepath}")
        return filepath
