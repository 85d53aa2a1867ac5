"""
================================================================================
PRECIFICADOR NF-e - Importação e Precificação de Notas de Compra
================================================================================

Este é o módulo principal (entry point) do Precificador NF-e.

O sistema lê os XMLs das notas fiscais de compra, extrai os produtos e
calcula custo líquido, preços de venda dos canais Xapuri e Epita e lucros,
gerando uma tabela de revisão em Excel.

ARQUITETURA DO SISTEMA:
-----------------------
O pipeline tem 4 etapas:

    1. CONFIGURAÇÃO: Lê imposto, markups e arredondamento do .env
    2. PARSING: Lê cada XML de forma independente (NFeParser)
    3. PRECIFICAÇÃO: Custos, preços e lucros (PricingEngine,
       ProfitColumnEngine)
    4. EXPORTAÇÃO: Gera a tabela de revisão (ReportGenerator)

Uma nota com XML inválido é reportada e ignorada; as demais seguem.

CONFIGURAÇÃO (.env):
--------------------
    PRECIFICADOR_INPUT_DIR=input_xmls
    PRECIFICADOR_OUTPUT_DIR=output_reports
    PRECIFICADOR_IMPOSTO_ENTRADA=12
    PRECIFICADOR_MARKUP_XAPURI=160
    PRECIFICADOR_MARKUP_EPITA=130
    PRECIFICADOR_ARREDONDAMENTO=none      # none | 90 | 50
    PRECIFICADOR_FRETE_ITEM=              # opcional, R$ por unidade

Versão: 1.0
Licença: MIT
================================================================================
"""

# =============================================================================
# IMPORTS
# =============================================================================
import os
import sys
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from colorama import Fore, init
from dotenv import load_dotenv

# Permite rodar tanto "python -m precificador.main" quanto "python precificador/main.py"
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Módulos Internos do Projeto
from precificador.core.models import Arredondamento, Invoice, PricingParameters
from precificador.core.parser import MalformedInvoiceError, NFeParser
from precificador.core.pricing import PricingEngine, calcular_totais
from precificador.core.profit import ProfitColumnEngine
from precificador.utils.exporter import ReportGenerator

# =============================================================================
# INICIALIZAÇÃO
# =============================================================================
init(autoreset=True)
load_dotenv()

# =============================================================================
# CONSTANTES DE CONFIGURAÇÃO
# =============================================================================

# Diretório onde o usuário deve colocar os arquivos XML
INPUT_DIR = os.getenv("PRECIFICADOR_INPUT_DIR", "input_xmls")

# Diretório para as tabelas geradas
OUTPUT_DIR = os.getenv("PRECIFICADOR_OUTPUT_DIR", "output_reports")

# Valores padrão usados quando o .env não define nada
DEFAULT_IMPOSTO_ENTRADA = "12"
DEFAULT_MARKUP_XAPURI = "160"
DEFAULT_MARKUP_EPITA = "130"
DEFAULT_ARREDONDAMENTO = "none"


# =============================================================================
# FUNÇÕES AUXILIARES
# =============================================================================

def _decimal_env(nome: str, default: Optional[str]) -> Optional[Decimal]:
    texto = (os.getenv(nome) or "").strip() or default
    if texto is None:
        return None
    try:
        valor = Decimal(texto.replace(",", "."))
    except InvalidOperation:
        raise ValueError(f"{nome} não é um número: {texto!r}") from None
    if not valor.is_finite():
        raise ValueError(f"{nome} não é um número: {texto!r}")
    return valor


def carregar_parametros() -> PricingParameters:
    """
    Monta os PricingParameters a partir das variáveis de ambiente.

    Raises:
        ValueError: Se algum valor for inválido ou negativo.
    """
    return PricingParameters(
        imposto_entrada=_decimal_env("PRECIFICADOR_IMPOSTO_ENTRADA", DEFAULT_IMPOSTO_ENTRADA),
        markup_xapuri=_decimal_env("PRECIFICADOR_MARKUP_XAPURI", DEFAULT_MARKUP_XAPURI),
        markup_epita=_decimal_env("PRECIFICADOR_MARKUP_EPITA", DEFAULT_MARKUP_EPITA),
        arredondamento=Arredondamento.from_config(
            os.getenv("PRECIFICADOR_ARREDONDAMENTO", DEFAULT_ARREDONDAMENTO)
        ),
        frete_item=_decimal_env("PRECIFICADOR_FRETE_ITEM", None),
    )


def print_header() -> None:
    """Imprime o cabeçalho visual do sistema."""
    print(Fore.CYAN + "=" * 60)
    print(Fore.CYAN + "🏷️  PRECIFICADOR NF-e - TABELA DE REVISÃO DE PREÇOS")
    print(Fore.CYAN + "=" * 60 + "\n")


def print_parametros(params: PricingParameters) -> None:
    print(Fore.CYAN + "⚙️  Parâmetros:")
    print(Fore.WHITE + f"   • Imposto de entrada: {params.imposto_entrada}%")
    print(Fore.WHITE + f"   • Markup Xapuri: {params.markup_xapuri}%")
    print(Fore.WHITE + f"   • Markup Epita: {params.markup_epita}%")
    print(Fore.WHITE + f"   • Arredondamento: {params.arredondamento.value}")
    if params.frete_item is not None:
        print(Fore.WHITE + f"   • Frete por item: R$ {params.frete_item:.2f}")
    print()


def print_summary(notas: int, falhas: int, totais: Dict[str, Decimal]) -> None:
    """Imprime o resumo final do processamento."""
    print("\n" + Fore.GREEN + "=" * 60)
    print(Fore.WHITE + f"📦 Notas processadas: {notas} | Com erro: {falhas}")
    print(Fore.WHITE + f"💰 Total bruto: R$ {totais['total_bruto']:.2f}")
    print(Fore.WHITE + f"🏷️  Total de descontos: R$ {totais['total_desconto']:.2f}")
    print(Fore.WHITE + f"💰 Total líquido: R$ {totais['total_liquido']:.2f}")
    print(Fore.WHITE + f"💰 Total custo líquido: R$ {totais['total_custo_liquido']:.2f}")
    print(Fore.GREEN + "=" * 60)


def processar_nota(
    nota: Invoice,
    engine: PricingEngine,
    colunas: ProfitColumnEngine,
) -> Tuple[List[dict], Dict[str, Decimal]]:
    """
    Precifica uma nota e devolve as linhas de exibição e os totais.

    Cada linha ganha o número da nota e o fornecedor para identificar a
    origem na tabela consolidada.
    """
    precificados = engine.precificar_nota(nota)

    linhas = []
    for linha in colunas.montar_linhas(precificados):
        linha["numero_nota"] = nota.numero
        linha["fornecedor"] = nota.fornecedor
        linhas.append(linha)

    return linhas, calcular_totais(precificados)


# =============================================================================
# FUNÇÃO PRINCIPAL - PIPELINE DE PROCESSAMENTO
# =============================================================================

def process_pipeline() -> Optional[str]:
    """
    Executa o pipeline completo de precificação.

    FLUXO:
    1. Carrega os parâmetros do ambiente
    2. Lista arquivos XML no diretório de input
    3. Processa cada arquivo de forma independente
    4. Gera a tabela de revisão em Excel

    Returns:
        Optional[str]: Caminho da planilha gerada ou None.
    """
    print_header()

    # =========================================================================
    # ETAPA 1: CONFIGURAÇÃO
    # =========================================================================
    try:
        params = carregar_parametros()
    except ValueError as e:
        print(Fore.RED + f"❌ Configuração inválida: {e}")
        return None

    print_parametros(params)

    parser = NFeParser()
    engine = PricingEngine(params)
    colunas = ProfitColumnEngine(params)

    # =========================================================================
    # ETAPA 2: COLETA DE ARQUIVOS XML
    # =========================================================================
    if not os.path.exists(INPUT_DIR):
        print(Fore.RED + f"❌ Diretório '{INPUT_DIR}' não encontrado!")
        print(Fore.YELLOW + f"   Crie a pasta e coloque os arquivos XML nela.")
        return None

    arquivos_xml = sorted(f for f in os.listdir(INPUT_DIR) if f.lower().endswith('.xml'))

    if not arquivos_xml:
        print(Fore.YELLOW + f"⚠️  Nenhum arquivo XML encontrado em '{INPUT_DIR}'.")
        return None

    print(Fore.WHITE + f"📋 {len(arquivos_xml)} arquivo(s) para processar.\n")

    # =========================================================================
    # ETAPA 3: PARSING E PRECIFICAÇÃO
    # =========================================================================
    todas_linhas = []
    notas_ok = 0
    falhas = 0
    totais_gerais = {
        "total_bruto": Decimal("0"),
        "total_desconto": Decimal("0"),
        "total_liquido": Decimal("0"),
        "total_custo_liquido": Decimal("0"),
    }

    for xml_file in arquivos_xml:
        caminho_xml = os.path.join(INPUT_DIR, xml_file)
        print(f"📂 Processando: {xml_file}...")

        try:
            nota = parser.parse_arquivo(caminho_xml)
        except MalformedInvoiceError as e:
            falhas += 1
            print(Fore.RED + f"   ❌ Nota rejeitada: {e}")
            continue
        except OSError as e:
            falhas += 1
            print(Fore.RED + f"   ❌ Erro ao ler {xml_file}: {e}")
            continue

        linhas, totais = processar_nota(nota, engine, colunas)
        todas_linhas.extend(linhas)
        for chave, valor in totais.items():
            totais_gerais[chave] += valor
        notas_ok += 1

        print(Fore.GREEN + f"   ✅ Nota {nota.numero} ({nota.fornecedor}): {nota.quantidade_itens} item(ns)")

    # =========================================================================
    # ETAPA 4: FINALIZAÇÃO E EXPORTAÇÃO
    # =========================================================================
    print_summary(notas_ok, falhas, totais_gerais)

    if not todas_linhas:
        print(Fore.YELLOW + "\n⚠️  Nenhum item precificado.")
        return None

    exporter = ReportGenerator(output_folder=OUTPUT_DIR)
    return exporter.gerar_excel(todas_linhas)


# =============================================================================
# PONTO DE ENTRADA DO PROGRAMA
# =============================================================================

if __name__ == "__main__":
    process_pipeline()
