"""
================================================================================
MÓDULO: descricao.py - Heurísticas de Cor e Tamanho
================================================================================

Infere cor e tamanho de uma peça a partir da descrição livre do produto
(xProd) e da referência do fornecedor (cProd).

As descrições de NF-e não têm campo estruturado para grade, então cada
fornecedor escreve do seu jeito:

    "CAMISETA BASICA PRETO TAM: G"       -> cor PRETO, tamanho G
    "IG FEMININA-12-2037"                -> tamanho 12 (padrão Elian)
    "SANDALIA 34/35 DOURADO"             -> cor DOURADO, tamanho 34/35
    referência "REF-2037-07"             -> tamanho 07 (padrão Kelly)

REGRAS DE TAMANHO:
------------------
As regras são uma lista ORDENADA (REGRAS_TAMANHO). A primeira que encontrar
um candidato válido vence; candidatos inválidos são descartados e a busca
continua na regra seguinte. Se nenhuma regra produzir um tamanho válido, o
resultado é "" (string vazia), nunca uma exceção.

    a. Padrão Elian:    FEMININA|MASCULINA|INFANTIL-<nn>-
    b. Infantil comum:  texto contém "INFAN" e "COMUM" -> INFANTIL
    c. Grade padrão:    PP, P, M, G, GG, XG, XXG (palavra inteira)
    d. Calçados:        nn/nn
    e. Indicador:       TAM / TAMANHO seguido de até 3 caracteres
    f. Categorias:      INFANTIL, ADULTO, JUVENIL
    g. Padrão Kelly:    -<n> ou -<nn> no fim de um token

CORES:
------
CORES_COMUNS é percorrida NA ORDEM declarada e a primeira cor contida na
descrição vence (não a mais longa). Sem cor, o retorno é None.

USO:
----
    from precificador.core.descricao import extrair_cor, extrair_tamanho

    extrair_cor("CAMISA MASCULINA-12-AZUL TAM M")       # 'AZUL'
    extrair_tamanho("REF-2037-07", "CAMISA BASICA")     # '07'

Versão: 1.0
================================================================================
"""

# =============================================================================
# IMPORTS
# =============================================================================

import re
from dataclasses import dataclass, field
from typing import Callable, List, NamedTuple, Optional


# =============================================================================
# CONSTANTES
# =============================================================================

# Ordem importa: a primeira cor encontrada vence
CORES_COMUNS = (
    "PRETO", "BRANCO", "VERMELHO", "AZUL", "VERDE", "AMARELO", "MARROM",
    "CINZA", "ROXO", "ROSA", "LARANJA", "BEGE", "DOURADO", "PRATA",
)

TAMANHOS_PADRAO = ("PP", "P", "M", "G", "GG", "XG", "XXG")
CATEGORIAS_TAMANHO = ("INFANTIL", "ADULTO", "JUVENIL")

TAMANHOS_VALIDOS = frozenset(TAMANHOS_PADRAO + CATEGORIAS_TAMANHO)

# Nomenclaturas por extenso -> sigla
PADRONIZACOES = {
    "PEQUENO": "P",
    "MEDIO": "M",
    "MÉDIO": "M",
    "GRANDE": "G",
    "EXTRA GRANDE": "XG",
    "EXTRA PEQUENO": "PP",
}

PADRAO_NUMERICO = re.compile(r"^\d{1,2}$")
PADRAO_FAIXA = re.compile(r"^\d{2}/\d{2}$")

PADRAO_ELIAN = re.compile(r"(?:FEMININA|MASCULINA|INFANTIL)-(\d{1,2})-")
PADRAO_GRADE = re.compile(r"\b(PP|P|M|G|GG|XG|XXG)\b")
PADRAO_CALCADO = re.compile(r"\b(\d{2}/\d{2})\b")
PADRAO_INDICADOR = re.compile(r"\bTAM(?:ANHO)?[\s:.]-?\s*([A-Z0-9]{1,3})\b")
PADRAO_CATEGORIA = re.compile(r"\b(INFANTIL|ADULTO|JUVENIL)\b")
PADRAO_KELLY = re.compile(r"-(\d{1,2})(?:\s|$)")

# Palavras que ficam minúsculas na descrição de exibição
PALAVRAS_PEQUENAS = frozenset(
    ["de", "da", "do", "das", "dos", "e", "com", "em", "para"]
)


# =============================================================================
# NORMALIZAÇÃO E VALIDAÇÃO
# =============================================================================

def normalizar_tamanho(tamanho: str) -> str:
    """
    Padroniza um candidato a tamanho.

    Example:
        >>> normalizar_tamanho(" medio ")
        'M'
        >>> normalizar_tamanho("gg")
        'GG'
    """
    normalizado = tamanho.strip().upper()
    return PADRONIZACOES.get(normalizado, normalizado)


def validar_tamanho(tamanho: str) -> bool:
    """
    Um tamanho é válido se for da grade padrão, uma das categorias,
    um número de 1 ou 2 dígitos ou uma faixa "nn/nn".
    """
    normalizado = normalizar_tamanho(tamanho)
    return (
        normalizado in TAMANHOS_VALIDOS
        or bool(PADRAO_NUMERICO.match(normalizado))
        or bool(PADRAO_FAIXA.match(normalizado))
    )


# =============================================================================
# REGRAS DE TAMANHO (ordenadas)
# =============================================================================

class RegraTamanho(NamedTuple):
    """Uma regra da cadeia: nome legível + extrator do candidato."""

    descricao: str
    extrair: Callable[[str], Optional[str]]


def _grupo(padrao: "re.Pattern") -> Callable[[str], Optional[str]]:
    def extrair(texto: str) -> Optional[str]:
        match = padrao.search(texto)
        return match.group(1) if match else None

    return extrair


def _infantil_comum(texto: str) -> Optional[str]:
    if "INFAN" in texto and "COMUM" in texto:
        return "INFANTIL"
    return None


REGRAS_TAMANHO: List[RegraTamanho] = [
    RegraTamanho("Padrão Elian (número entre hífens)", _grupo(PADRAO_ELIAN)),
    RegraTamanho("Infantil comum", _infantil_comum),
    RegraTamanho("Tamanhos padrão de vestuário", _grupo(PADRAO_GRADE)),
    RegraTamanho("Tamanhos de calçado com faixa", _grupo(PADRAO_CALCADO)),
    RegraTamanho("Indicador explícito de tamanho", _grupo(PADRAO_INDICADOR)),
    RegraTamanho("Categorias de tamanho", _grupo(PADRAO_CATEGORIA)),
    RegraTamanho("Número no fim da referência (padrão Kelly)", _grupo(PADRAO_KELLY)),
]


# =============================================================================
# EXTRAÇÃO
# =============================================================================

def extrair_cor(descricao: Optional[str]) -> Optional[str]:
    """
    Retorna a primeira cor de CORES_COMUNS contida na descrição.

    Example:
        >>> extrair_cor("BLUSA BRANCO/PRETO")
        'PRETO'
        >>> extrair_cor("CALCA JEANS") is None
        True
    """
    if not descricao:
        return None

    texto = descricao.upper()
    for cor in CORES_COMUNS:
        if cor in texto:
            return cor
    return None


def extrair_tamanho_da_referencia(referencia: Optional[str]) -> str:
    """
    Busca o tamanho no fim da referência ("REF-2037-07" -> "07").

    Retorna "" se não houver número ou se ele não for um tamanho válido.
    """
    if not referencia:
        return ""

    match = PADRAO_KELLY.search(referencia.upper())
    if match and validar_tamanho(match.group(1)):
        return match.group(1)
    return ""


def extrair_tamanho_da_descricao(descricao: Optional[str]) -> str:
    """Aplica REGRAS_TAMANHO em ordem; a primeira que validar vence."""
    if not descricao:
        return ""

    texto = descricao.upper()
    for regra in REGRAS_TAMANHO:
        candidato = regra.extrair(texto)
        if not candidato:
            continue
        tamanho = normalizar_tamanho(candidato)
        if validar_tamanho(tamanho):
            return tamanho
    return ""


def extrair_tamanho(referencia: Optional[str], descricao: Optional[str]) -> str:
    """Referência primeiro; se ela não indicar tamanho, usa a descrição."""
    return (
        extrair_tamanho_da_referencia(referencia)
        or extrair_tamanho_da_descricao(descricao)
    )


# =============================================================================
# DIAGNÓSTICO
# =============================================================================

@dataclass
class AnaliseTamanho:
    """Resultado detalhado de analisar_padroes_detalhados()."""

    tamanho: str = ""
    padrao_usado: Optional[str] = None
    detalhes: List[str] = field(default_factory=list)


def analisar_padroes_detalhados(descricao: Optional[str]) -> AnaliseTamanho:
    """
    Versão de depuração de extrair_tamanho_da_descricao().

    Percorre a mesma cadeia de regras e registra, para cada uma, o que
    foi encontrado e por que o candidato foi aceito ou rejeitado. Usada
    apenas por ferramentas de análise; a precificação não depende dela.

    Example:
        >>> analise = analisar_padroes_detalhados("BLUSA TAM: GG")
        >>> analise.tamanho, analise.padrao_usado
        ('GG', 'Tamanhos padrão de vestuário')
    """
    if not descricao:
        return AnaliseTamanho(detalhes=["Descrição vazia"])

    texto = descricao.upper()
    analise = AnaliseTamanho(detalhes=[f"Texto normalizado: {texto}"])

    for regra in REGRAS_TAMANHO:
        candidato = regra.extrair(texto)
        if not candidato:
            analise.detalhes.append(f"Sem correspondência: {regra.descricao}")
            continue

        tamanho = normalizar_tamanho(candidato)
        analise.detalhes.append(f"Padrão encontrado: {regra.descricao}")
        analise.detalhes.append(f"Candidato: {candidato} -> normalizado: {tamanho}")

        if validar_tamanho(tamanho):
            analise.detalhes.append(f'Tamanho "{tamanho}" aceito')
            analise.tamanho = tamanho
            analise.padrao_usado = regra.descricao
            return analise

        analise.detalhes.append(f'Tamanho "{tamanho}" falhou na validação')

    analise.detalhes.append("Nenhum tamanho válido encontrado")
    return analise


# =============================================================================
# DESCRIÇÃO DE EXIBIÇÃO
# =============================================================================

def formatar_nome_produto(descricao: str) -> str:
    """
    Remove o código final (ex.: "SCY765/02") e capitaliza cada palavra,
    mantendo preposições em minúsculas.
    """
    sem_codigo = re.sub(r"\s+\w+/\d+$", "", descricao or "")

    palavras = []
    for palavra in sem_codigo.split(" "):
        if palavra.lower() in PALAVRAS_PEQUENAS:
            palavras.append(palavra.lower())
        else:
            palavras.append(palavra[:1].upper() + palavra[1:].lower())
    return " ".join(palavras)


def gerar_descricao_produto(produto) -> str:
    """
    Monta a descrição usada na tabela de revisão:

        <Nome Formatado> COR: <cor> TAM: <tam> <referência> <código> <ean>

    O código só aparece se for diferente da referência.
    """
    partes = [formatar_nome_produto(produto.descricao)]

    atributos = []
    if produto.cor:
        atributos.append(f"COR: {produto.cor.upper()}")
    if produto.tamanho:
        atributos.append(f"TAM: {produto.tamanho}")
    if atributos:
        partes.append(" ".join(atributos))

    tecnicos = []
    if produto.referencia:
        tecnicos.append(produto.referencia)
    if produto.codigo and produto.codigo != produto.referencia:
        tecnicos.append(produto.codigo)
    if produto.ean:
        tecnicos.append(produto.ean)
    if tecnicos:
        partes.append(" ".join(tecnicos))

    return " ".join(partes)
