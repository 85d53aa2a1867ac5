"""
================================================================================
MÓDULO: parser.py - Extrator de Produtos de NF-e (Nota Fiscal Eletrônica)
================================================================================

Este módulo lê o XML de uma Nota Fiscal Eletrônica de compra e devolve uma
Invoice com a lista ordenada de RawProduct, pronta para a precificação.

ESTRUTURA DO XML DE NF-e:
-------------------------
Cada emissor gera o XML de um jeito. O corpo da nota (<infNFe>) pode chegar
em três formatos de aninhamento:

    1. Nota processada (com protocolo de autorização):
        <nfeProc><NFe><infNFe Id="NFe...">...</infNFe></NFe></nfeProc>

    2. Envelope da nota, sem protocolo:
        <NFe><infNFe Id="NFe...">...</infNFe></NFe>

    3. Apenas o corpo:
        <infNFe Id="NFe...">...</infNFe>

O parser tenta cada formato na ordem de CAMINHOS_CORPO e usa o primeiro que
encontrar um corpo não vazio. Para aceitar um quarto formato basta
acrescentar o caminho à tupla.

Dentro do corpo:

    <infNFe Id="NFe3525...">
        <ide>                    # nNF, serie, dhEmi
        <emit>                   # CNPJ, xNome (fornecedor)
        <det nItem="1">          # um <det> por item
            <prod>               # cProd, cEAN, xProd, NCM, CFOP, uCom,
                                 # qCom, vUnCom, vProd, vDesc
            <imposto>            # ICMS / IPI
            <infAdProd>          # descrição complementar
        </det>
        <total><ICMSTot>         # vNF, vFrete
    </infNFe>

Os elementos são localizados pelo nome local, então XMLs com ou sem o
namespace do portal fiscal são aceitos.

TRATAMENTO DE ERROS:
--------------------
    - Corpo não localizado, XML inválido ou nota sem nenhum <det>:
      MalformedInvoiceError (a nota inteira é rejeitada).
    - Campo numérico ausente ou inválido: vira zero (a nota segue).

O parser não grava nada: a persistência é responsabilidade de quem chama.

USO:
----
    from precificador.core.parser import NFeParser

    parser = NFeParser()
    nota = parser.parse_arquivo("nota_fiscal.xml")

    print(f"Nota {nota.numero} - {nota.fornecedor}")
    for produto in nota.produtos:
        print(f"{produto.codigo}: {produto.descricao} x {produto.quantidade}")

Versão: 1.0
================================================================================
"""

# =============================================================================
# IMPORTS
# =============================================================================

import re
import xml.etree.ElementTree as ET  # Parser XML da biblioteca padrão Python
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple, Union

from .descricao import extrair_cor, extrair_tamanho
from .models import ZERO, Invoice, RawProduct


# =============================================================================
# CONSTANTES
# =============================================================================

# Namespace padrão dos XMLs de NF-e (informativo; a busca usa o nome local)
NFE_NAMESPACE = "http://www.portalfiscal.inf.br/nfe"

# Formatos de aninhamento do corpo, em ordem de tentativa.
# O primeiro nome de cada caminho deve ser a raiz do documento.
CAMINHOS_CORPO: Tuple[Tuple[str, ...], ...] = (
    ("nfeProc", "NFe", "infNFe"),
    ("NFe", "infNFe"),
    ("infNFe",),
)

# Prefixo do atributo Id: "NFe" + 44 dígitos
PREFIXO_CHAVE = "NFe"

# Descrição complementar no formato "... - tam: 38 1.2.3.4-NP-AZUL - RSF ..."
PADRAO_COMPLEMENTAR = re.compile(
    r"(.*?tam:\s*\d+)\s+(\d+\.\d+\.\d+\.\d+)(-NP.*?)(?:\s+-\s+(?:RSF|N\.FCI).*)?$",
    re.IGNORECASE,
)


# =============================================================================
# EXCEÇÕES
# =============================================================================

class MalformedInvoiceError(ValueError):
    """O XML não contém um corpo de NF-e reconhecível."""


# =============================================================================
# FUNÇÕES AUXILIARES
# =============================================================================

def formatar_descricao_complementar(texto: str) -> str:
    """
    Reorganiza o <infAdProd> para exibição.

    No formato "partes - tam: NN código-NP-partes" cada lado do código vira
    uma lista separada por " / ", o trecho até o tamanho vai para maiúsculas
    e os sufixos " - RSF" / " - N.FCI" são descartados. Fora desse formato
    o texto só tem os espaços normalizados.

    Example:
        >>> formatar_descricao_complementar("CALCA - tam: 38 1.2.3.4-NP-AZUL")
        'CALCA / TAM: 38 1.2.3.4 NP / AZUL'
    """
    texto = " ".join((texto or "").split())
    if not texto:
        return ""

    match = PADRAO_COMPLEMENTAR.match(texto)
    if not match:
        return texto

    inicio, codigo, final = match.groups()
    parte_inicial = " / ".join(p.strip() for p in inicio.split("-")).upper()
    final = re.sub(r"^-NP", "NP", final)
    parte_final = " / ".join(p.strip() for p in final.split("-")).strip()
    return f"{parte_inicial} {codigo} {parte_final}"


# =============================================================================
# CLASSE PRINCIPAL
# =============================================================================

class NFeParser:
    """
    Parser de XML de NF-e para Invoice / RawProduct.

    O parser lida automaticamente com:
        - Os três formatos de aninhamento do corpo da nota
        - XML com ou sem namespace do portal fiscal
        - Campos opcionais (não quebra se faltar algo)
        - Conversão de números para Decimal (inválido vira zero)
        - Inferência de cor e tamanho de cada produto

    Example:
        >>> parser = NFeParser()
        >>> nota = parser.parse(xml_texto)
        >>> nota.id
        '35240112345678000199550010000012341000012345'
        >>> len(nota.produtos) == nota.quantidade_itens
        True
    """

    def __init__(self, caminhos_corpo: Tuple[Tuple[str, ...], ...] = CAMINHOS_CORPO):
        self.caminhos_corpo = caminhos_corpo

    # -------------------------------------------------------------------------
    # Navegação na árvore
    # -------------------------------------------------------------------------

    @staticmethod
    def _local_name(tag: str) -> str:
        """Remove o namespace: '{http://...}infNFe' -> 'infNFe'."""
        if "}" in tag:
            return tag.rsplit("}", 1)[1]
        return tag

    def _children(self, element: ET.Element, nome: str) -> List[ET.Element]:
        return [child for child in element if self._local_name(child.tag) == nome]

    def _find(self, element: Optional[ET.Element], path: str) -> Optional[ET.Element]:
        """
        Busca um descendente pelo caminho de nomes locais ("prod/xProd").

        Em cada nível usa o primeiro filho com o nome pedido.
        """
        atual = element
        for nome in path.split("/"):
            if atual is None:
                return None
            filhos = self._children(atual, nome)
            atual = filhos[0] if filhos else None
        return atual

    def _safe_find_text(
        self,
        element: Optional[ET.Element],
        path: str,
        default: str = "",
    ) -> str:
        """
        Busca texto de um elemento XML de forma segura (sem exceções).

        Args:
            element (ET.Element): Elemento pai onde buscar.
            path (str): Caminho de nomes locais, separados por "/".
            default (str): Valor retornado se o elemento não existir.

        Returns:
            str: Texto do elemento (sem espaços nas pontas) ou o default.
        """
        found = self._find(element, path)
        if found is not None and found.text and found.text.strip():
            return found.text.strip()
        return default

    def _safe_find_decimal(
        self,
        element: Optional[ET.Element],
        path: str,
        default: Decimal = ZERO,
    ) -> Decimal:
        """
        Busca um valor numérico de forma segura.

        Além de tratar elementos inexistentes, trata texto não numérico.
        """
        return self._parse_decimal(self._safe_find_text(element, path), default)

    @staticmethod
    def _parse_decimal(texto: str, default: Decimal = ZERO) -> Decimal:
        """
        Converte texto em Decimal.

        O padrão da NF-e é ponto decimal ("1234.56"), mas alguns emissores
        usam o formato brasileiro ("1.234,56" ou "12,5").

        Example:
            >>> NFeParser._parse_decimal("1.234,56")
            Decimal('1234.56')
            >>> NFeParser._parse_decimal("abc")
            Decimal('0')
        """
        texto = (texto or "").strip()
        if not texto:
            return default

        if "," in texto:
            # Só é formato brasileiro se a vírgula vier depois do último ponto
            if texto.rfind(",") < texto.rfind("."):
                return default
            texto = texto.replace(".", "").replace(",", ".")

        try:
            valor = Decimal(texto)
        except InvalidOperation:
            return default

        # NaN e Infinity não servem para cálculo
        if not valor.is_finite():
            return default
        return valor

    def _format_cnpj(self, cnpj: str) -> str:
        """
        Formata CNPJ de 14 dígitos para XX.XXX.XXX/XXXX-XX.

        Devolve o texto original se não tiver 14 dígitos.
        """
        if len(cnpj) == 14 and cnpj.isdigit():
            return f"{cnpj[:2]}.{cnpj[2:5]}.{cnpj[5:8]}/{cnpj[8:12]}-{cnpj[12:]}"
        return cnpj

    # -------------------------------------------------------------------------
    # Localização do corpo
    # -------------------------------------------------------------------------

    def _localizar_corpo(self, root: ET.Element) -> Optional[ET.Element]:
        """
        Tenta cada caminho de CAMINHOS_CORPO e devolve o primeiro corpo
        não vazio (com pelo menos um filho), ou None.
        """
        raiz = self._local_name(root.tag)

        for caminho in self.caminhos_corpo:
            if caminho[0] != raiz:
                continue
            corpo = self._find(root, "/".join(caminho[1:])) if len(caminho) > 1 else root
            if corpo is not None and len(corpo) > 0:
                return corpo
        return None

    # -------------------------------------------------------------------------
    # Extração
    # -------------------------------------------------------------------------

    def _extrair_chave(self, corpo: ET.Element) -> str:
        """Chave de 44 dígitos: atributo Id sem o prefixo 'NFe'."""
        nfe_id = (corpo.get("Id") or "").strip()
        if nfe_id.startswith(PREFIXO_CHAVE):
            return nfe_id[len(PREFIXO_CHAVE):]
        return nfe_id

    def _extrair_data_emissao(self, ide: Optional[ET.Element]) -> str:
        # dhEmi (NF-e 3.10+) ou dEmi (layouts antigos)
        data_str = self._safe_find_text(ide, "dhEmi") or self._safe_find_text(ide, "dEmi")
        # 2025-12-29T18:03:19-03:00 -> 2025-12-29 18:03:19
        return data_str[:19].replace("T", " ")

    def _extrair_icms(self, imposto: Optional[ET.Element]) -> Tuple[Decimal, Decimal, Decimal]:
        """
        Base, valor e alíquota de ICMS.

        O grupo varia com o CST/CSOSN (ICMS00, ICMS20, ICMSSN102...),
        então usamos o primeiro filho de <ICMS>, seja qual for.
        """
        icms = self._find(imposto, "ICMS")
        if icms is None or len(icms) == 0:
            return ZERO, ZERO, ZERO

        grupo = icms[0]
        return (
            self._safe_find_decimal(grupo, "vBC"),
            self._safe_find_decimal(grupo, "vICMS"),
            self._safe_find_decimal(grupo, "pICMS"),
        )

    def _extrair_ipi(self, imposto: Optional[ET.Element]) -> Tuple[Decimal, Decimal, Decimal]:
        ipi = self._find(imposto, "IPI/IPITrib")
        if ipi is None:
            return ZERO, ZERO, ZERO
        return (
            self._safe_find_decimal(ipi, "vBC"),
            self._safe_find_decimal(ipi, "vIPI"),
            self._safe_find_decimal(ipi, "pIPI"),
        )

    def _extrair_produto(self, det: ET.Element) -> RawProduct:
        """
        Converte um <det> em RawProduct.

        Um <det> sem <prod> ainda gera um produto (campos vazios/zero),
        para que a nota tenha exatamente um produto por item.
        """
        prod = self._find(det, "prod")
        imposto = self._find(det, "imposto")

        base_icms, valor_icms, aliquota_icms = self._extrair_icms(imposto)
        base_ipi, valor_ipi, aliquota_ipi = self._extrair_ipi(imposto)

        codigo = self._safe_find_text(prod, "cProd")
        descricao = self._safe_find_text(prod, "xProd")

        return RawProduct(
            numero_item=det.get("nItem", ""),
            codigo=codigo,
            ean=self._safe_find_text(prod, "cEAN"),
            descricao=descricao,
            ncm=self._safe_find_text(prod, "NCM"),
            cfop=self._safe_find_text(prod, "CFOP"),
            unidade=self._safe_find_text(prod, "uCom"),
            quantidade=self._safe_find_decimal(prod, "qCom"),
            valor_unitario=self._safe_find_decimal(prod, "vUnCom"),
            valor_total=self._safe_find_decimal(prod, "vProd"),
            desconto=self._safe_find_decimal(prod, "vDesc"),
            descricao_complementar=formatar_descricao_complementar(
                self._safe_find_text(det, "infAdProd")
            ),
            base_icms=base_icms,
            valor_icms=valor_icms,
            aliquota_icms=aliquota_icms,
            base_ipi=base_ipi,
            valor_ipi=valor_ipi,
            aliquota_ipi=aliquota_ipi,
            cor=extrair_cor(descricao),
            tamanho=extrair_tamanho(codigo, descricao),
        )

    # -------------------------------------------------------------------------
    # API pública
    # -------------------------------------------------------------------------

    def parse(self, xml_text: Union[str, bytes]) -> Invoice:
        """
        Decodifica o texto XML de uma NF-e.

        Esta é a função principal do parser. Ela:
        1. Faz o parsing do XML
        2. Localiza o corpo <infNFe> (três formatos possíveis)
        3. Extrai chave, número, data, fornecedor e totais
        4. Normaliza os <det> em uma lista ordenada de RawProduct

        Args:
            xml_text (str | bytes): Conteúdo do XML (UTF-8).

        Returns:
            Invoice: Nota com os produtos na ordem do documento.

        Raises:
            MalformedInvoiceError: XML inválido, corpo não localizado ou
                nota sem nenhum item.
        """
        # Bytes vão direto para o expat, que respeita o encoding declarado
        if isinstance(xml_text, str):
            xml_text = xml_text.lstrip("\ufeff")
        xml_text = xml_text.strip()

        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise MalformedInvoiceError(f"XML inválido: {e}") from e

        corpo = self._localizar_corpo(root)
        if corpo is None:
            raise MalformedInvoiceError(
                f"Estrutura de NF-e inválida: corpo <infNFe> não encontrado "
                f"(raiz <{self._local_name(root.tag)}>)"
            )

        dets = self._children(corpo, "det")
        if not dets:
            raise MalformedInvoiceError("NF-e sem itens: nenhum elemento <det>")

        ide = self._find(corpo, "ide")
        emit = self._find(corpo, "emit")

        chave = self._extrair_chave(corpo)
        numero = self._safe_find_text(ide, "nNF")

        return Invoice(
            id=chave or numero,
            chave_acesso=chave,
            numero=numero,
            serie=self._safe_find_text(ide, "serie"),
            data_emissao=self._extrair_data_emissao(ide),
            fornecedor=self._safe_find_text(emit, "xNome"),
            cnpj_emitente=self._format_cnpj(self._safe_find_text(emit, "CNPJ")),
            valor_total=self._safe_find_decimal(corpo, "total/ICMSTot/vNF"),
            valor_frete=self._safe_find_decimal(corpo, "total/ICMSTot/vFrete"),
            produtos=tuple(self._extrair_produto(det) for det in dets),
        )

    def parse_arquivo(self, xml_path: str) -> Invoice:
        """
        Lê um arquivo XML de NF-e do disco e delega para parse().

        Raises:
            MalformedInvoiceError: Ver parse().
            OSError: Se o arquivo não puder ser lido.
        """
        with open(xml_path, "rb") as f:
            return self.parse(f.read())
