"""
================================================================================
TESTES UNITÁRIOS - Parser de NF-e
================================================================================

Execute com: pytest tests/ -v
"""

import os
import sys
import xml.etree.ElementTree as ET
from decimal import Decimal

import pytest

# Adiciona a raiz do projeto ao path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from precificador.core.parser import (
    MalformedInvoiceError,
    NFeParser,
    formatar_descricao_complementar,
)


CHAVE = "35240112345678000199550010000012341000012345"

# Nota processada (nfeProc) com namespace e dois itens
XML_PROCESSADA = f"""<?xml version="1.0" encoding="UTF-8"?>
<nfeProc xmlns="http://www.portalfiscal.inf.br/nfe" versao="4.00">
  <NFe>
    <infNFe Id="NFe{CHAVE}" versao="4.00">
      <ide>
        <serie>1</serie>
        <nNF>1234</nNF>
        <dhEmi>2024-01-15T10:30:00-03:00</dhEmi>
      </ide>
      <emit>
        <CNPJ>12345678000199</CNPJ>
        <xNome>CONFECCOES ELIAN LTDA</xNome>
      </emit>
      <det nItem="1">
        <prod>
          <cProd>2037-07</cProd>
          <cEAN>7891234567895</cEAN>
          <xProd>CAMISA MASCULINA-12-AZUL TAM M</xProd>
          <NCM>61051000</NCM>
          <CFOP>6102</CFOP>
          <uCom>UN</uCom>
          <qCom>2.0000</qCom>
          <vUnCom>10.00</vUnCom>
          <vProd>20.00</vProd>
          <vDesc>1.00</vDesc>
        </prod>
        <imposto>
          <ICMS>
            <ICMS00>
              <orig>0</orig>
              <CST>00</CST>
              <vBC>20.00</vBC>
              <pICMS>12.00</pICMS>
              <vICMS>2.40</vICMS>
            </ICMS00>
          </ICMS>
          <IPI>
            <cEnq>999</cEnq>
            <IPITrib>
              <CST>50</CST>
              <vBC>20.00</vBC>
              <pIPI>5.00</pIPI>
              <vIPI>1.00</vIPI>
            </IPITrib>
          </IPI>
        </imposto>
        <infAdProd>  LINHA   VERAO  </infAdProd>
      </det>
      <det nItem="2">
        <prod>
          <cProd>ABC</cProd>
          <xProd>SANDALIA 34/35 DOURADO</xProd>
          <NCM>64029990</NCM>
          <CFOP>6102</CFOP>
          <uCom>PAR</uCom>
          <qCom>1</qCom>
          <vUnCom>30.00</vUnCom>
          <vProd>30.00</vProd>
        </prod>
      </det>
      <total>
        <ICMSTot>
          <vFrete>15.00</vFrete>
          <vNF>49.00</vNF>
        </ICMSTot>
      </total>
    </infNFe>
  </NFe>
</nfeProc>
"""

# Envelope NFe sem protocolo e sem namespace, um único item
XML_ENVELOPE = f"""<NFe>
  <infNFe Id="NFe{CHAVE}">
    <ide><nNF>77</nNF><dEmi>2023-05-02</dEmi></ide>
    <emit><xNome>FORNECEDOR X</xNome></emit>
    <det nItem="1">
      <prod>
        <cProd>X1</cProd>
        <xProd>BERMUDA PRETO</xProd>
        <qCom>abc</qCom>
        <vUnCom>1.234,56</vUnCom>
        <vProd></vProd>
      </prod>
    </det>
  </infNFe>
</NFe>
"""

# Apenas o corpo, sem Id e sem bloco de totais
XML_CORPO = """<infNFe>
  <ide><nNF>555</nNF></ide>
  <det nItem="1"><prod><xProd>MEIA</xProd><qCom>3</qCom><vUnCom>2.5</vUnCom></prod></det>
  <det nItem="2"><prod><xProd>BONE</xProd></prod></det>
  <det nItem="3"></det>
</infNFe>
"""


class TestNFeParser:
    """Testes para o parser de NF-e."""

    def setup_method(self):
        """Inicializa o parser antes de cada teste."""
        self.parser = NFeParser()

    def test_parser_initialization(self):
        """Testa se o parser inicializa com os três formatos de corpo."""
        assert self.parser is not None
        assert len(self.parser.caminhos_corpo) == 3
        assert self.parser.caminhos_corpo[0] == ("nfeProc", "NFe", "infNFe")

    def test_safe_find_text_with_default(self):
        """Quando o elemento não existe, deve retornar o default."""
        root = ET.fromstring('<root></root>')
        result = self.parser._safe_find_text(root, 'inexistente', 'DEFAULT')
        assert result == 'DEFAULT'

    def test_safe_find_decimal_with_default(self):
        """Testa a busca numérica segura."""
        root = ET.fromstring('<root></root>')
        result = self.parser._safe_find_decimal(root, 'inexistente', Decimal("99.99"))
        assert result == Decimal("99.99")

    def test_parse_decimal_formats(self):
        """Aceita ponto decimal e formato brasileiro; inválido vira zero."""
        assert NFeParser._parse_decimal("10.50") == Decimal("10.50")
        assert NFeParser._parse_decimal("1.234,56") == Decimal("1234.56")
        assert NFeParser._parse_decimal("12,5") == Decimal("12.5")
        assert NFeParser._parse_decimal("abc") == Decimal("0")
        assert NFeParser._parse_decimal("NaN") == Decimal("0")
        assert NFeParser._parse_decimal("") == Decimal("0")
        assert NFeParser._parse_decimal("1,234.56") == Decimal("0")

    def test_nota_processada(self):
        """Nota nfeProc: chave sem prefixo, emitente, data e totais."""
        nota = self.parser.parse(XML_PROCESSADA)

        assert nota.id == CHAVE
        assert nota.chave_acesso == CHAVE
        assert len(nota.chave_acesso) == 44
        assert nota.numero == "1234"
        assert nota.serie == "1"
        assert nota.data_emissao == "2024-01-15 10:30:00"
        assert nota.fornecedor == "CONFECCOES ELIAN LTDA"
        assert nota.cnpj_emitente == "12.345.678/0001-99"
        assert nota.valor_total == Decimal("49.00")
        assert nota.valor_frete == Decimal("15.00")

    def test_quantidade_de_itens(self):
        """N elementos <det> geram N produtos, na ordem da nota."""
        nota = self.parser.parse(XML_PROCESSADA)

        assert len(nota.produtos) == 2
        assert nota.quantidade_itens == 2
        assert [p.numero_item for p in nota.produtos] == ["1", "2"]

    def test_campos_do_produto(self):
        """Testa o mapeamento dos campos de <prod> e <imposto>."""
        produto = self.parser.parse(XML_PROCESSADA).produtos[0]

        assert produto.codigo == "2037-07"
        assert produto.ean == "7891234567895"
        assert produto.descricao == "CAMISA MASCULINA-12-AZUL TAM M"
        assert produto.ncm == "61051000"
        assert produto.cfop == "6102"
        assert produto.unidade == "UN"
        assert produto.quantidade == Decimal("2")
        assert produto.valor_unitario == Decimal("10.00")
        assert produto.valor_total == Decimal("20.00")
        assert produto.desconto == Decimal("1.00")
        assert produto.descricao_complementar == "LINHA VERAO"

        assert produto.base_icms == Decimal("20.00")
        assert produto.valor_icms == Decimal("2.40")
        assert produto.aliquota_icms == Decimal("12.00")
        assert produto.base_ipi == Decimal("20.00")
        assert produto.valor_ipi == Decimal("1.00")
        assert produto.aliquota_ipi == Decimal("5.00")

    def test_item_sem_impostos(self):
        """Item sem <imposto> tem ICMS/IPI zerados."""
        produto = self.parser.parse(XML_PROCESSADA).produtos[1]

        assert produto.base_icms == Decimal("0")
        assert produto.valor_ipi == Decimal("0")
        assert produto.desconto == Decimal("0")

    def test_cor_e_tamanho(self):
        """Cor vem da descrição; tamanho da referência antes da descrição."""
        nota = self.parser.parse(XML_PROCESSADA)

        assert nota.produtos[0].cor == "AZUL"
        assert nota.produtos[0].tamanho == "07"
        assert nota.produtos[1].cor == "DOURADO"
        assert nota.produtos[1].tamanho == "34/35"

    def test_envelope_com_item_unico(self):
        """Envelope NFe sem namespace, com um único <det>."""
        nota = self.parser.parse(XML_ENVELOPE)

        assert nota.id == CHAVE
        assert nota.data_emissao == "2023-05-02"
        assert len(nota.produtos) == 1
        assert nota.produtos[0].cor == "PRETO"

    def test_numeros_invalidos_viram_zero(self):
        """Campos numéricos inválidos ou vazios não derrubam a nota."""
        produto = self.parser.parse(XML_ENVELOPE).produtos[0]

        assert produto.quantidade == Decimal("0")
        assert produto.valor_unitario == Decimal("1234.56")
        assert produto.valor_total == Decimal("0")

    def test_total_ausente(self):
        """Sem bloco <total>, valor e frete da nota são zero."""
        nota = self.parser.parse(XML_ENVELOPE)

        assert nota.valor_total == Decimal("0")
        assert nota.valor_frete == Decimal("0")

    def test_corpo_sem_id_usa_numero(self):
        """Sem atributo Id, o identificador é o número da nota."""
        nota = self.parser.parse(XML_CORPO)

        assert nota.chave_acesso == ""
        assert nota.id == "555"

    def test_det_sem_prod_ainda_conta(self):
        """Um <det> sem <prod> gera produto vazio, mantendo a contagem."""
        nota = self.parser.parse(XML_CORPO)

        assert nota.quantidade_itens == 3
        vazio = nota.produtos[2]
        assert vazio.descricao == ""
        assert vazio.quantidade == Decimal("0")
        assert vazio.cor is None
        assert vazio.tamanho == ""

    def test_chave_idempotente(self):
        """Parsear o mesmo XML duas vezes produz a mesma chave."""
        assert self.parser.parse(XML_PROCESSADA).id == self.parser.parse(XML_PROCESSADA).id
        assert self.parser.parse(XML_PROCESSADA) == self.parser.parse(XML_PROCESSADA)

    def test_aceita_bytes(self):
        """O conteúdo pode chegar em bytes (UTF-8)."""
        nota = self.parser.parse(XML_PROCESSADA.encode("utf-8"))
        assert nota.id == CHAVE

    def test_aceita_bom_e_espacos(self):
        """BOM e espaços antes da declaração XML são ignorados."""
        nota = self.parser.parse("\ufeff\n  " + XML_PROCESSADA)
        assert nota.quantidade_itens == 2

    def test_sem_itens_falha(self):
        """Nota sem nenhum <det> é rejeitada."""
        xml = '<NFe><infNFe Id="NFe1"><ide><nNF>1</nNF></ide></infNFe></NFe>'
        with pytest.raises(MalformedInvoiceError):
            self.parser.parse(xml)

    def test_raiz_desconhecida_falha(self):
        """Documento sem nenhum dos formatos conhecidos é rejeitado."""
        with pytest.raises(MalformedInvoiceError):
            self.parser.parse("<resNFe><chNFe>123</chNFe></resNFe>")

    def test_nfeproc_sem_corpo_falha(self):
        """nfeProc sem NFe/infNFe não cai em outro formato."""
        with pytest.raises(MalformedInvoiceError):
            self.parser.parse("<nfeProc><protNFe><infProt/></protNFe></nfeProc>")

    def test_xml_invalido_falha(self):
        """XML sintaticamente inválido vira MalformedInvoiceError."""
        with pytest.raises(MalformedInvoiceError):
            self.parser.parse("<nfeProc><NFe>")

    def test_malformed_e_value_error(self):
        """A exceção pode ser tratada como ValueError pelo chamador."""
        assert issubclass(MalformedInvoiceError, ValueError)

    def test_parse_arquivo(self, tmp_path):
        """Lê a nota diretamente de um arquivo."""
        caminho = tmp_path / "nota.xml"
        caminho.write_text(XML_PROCESSADA, encoding="utf-8")

        nota = self.parser.parse_arquivo(str(caminho))
        assert nota.numero == "1234"

    def test_quarto_formato_configuravel(self):
        """Um novo formato de aninhamento pode ser acrescentado."""
        parser = NFeParser(caminhos_corpo=(("enviNFe", "NFe", "infNFe"),))
        xml = "<enviNFe><NFe>" + XML_CORPO + "</NFe></enviNFe>"

        assert parser.parse(xml).quantidade_itens == 3

    def test_numero_com_separadores_trocados(self):
        """Vírgula antes do ponto não é formato brasileiro: vira zero."""
        xml = (
            "<infNFe><det nItem=\"1\"><prod>"
            "<qCom>1,234.56</qCom><vUnCom>2.50</vUnCom>"
            "</prod></det></infNFe>"
        )
        produto = self.parser.parse(xml).produtos[0]

        assert produto.quantidade == Decimal("0")
        assert produto.valor_unitario == Decimal("2.50")

    def test_descricao_complementar_formatada(self):
        xml = (
            "<infNFe><det nItem=\"1\"><prod><xProd>CALCA</xProd></prod>"
            "<infAdProd>CALCA - FEMININA - tam: 38 1.2.3.4-NP-AZUL-ESCURO</infAdProd>"
            "</det></infNFe>"
        )
        produto = self.parser.parse(xml).produtos[0]

        assert produto.descricao_complementar == "CALCA / FEMININA / TAM: 38 1.2.3.4 NP / AZUL / ESCURO"


class TestDescricaoComplementar:
    """Testes para a formatação do <infAdProd>."""

    def test_formato_com_tamanho_e_codigo(self):
        texto = "CALCA  -  FEMININA - tam:  38   1.2.3.4-NP-AZUL-ESCURO"
        assert formatar_descricao_complementar(texto) == (
            "CALCA / FEMININA / TAM: 38 1.2.3.4 NP / AZUL / ESCURO"
        )

    def test_descarta_sufixo_rsf(self):
        texto = "blusa - tam: 2 10.20.30.40-NP-PRETO - RSF 0001"
        assert formatar_descricao_complementar(texto) == "BLUSA / TAM: 2 10.20.30.40 NP / PRETO"

    def test_descarta_sufixo_fci(self):
        texto = "SAIA - tam: 40 1.2.3.4-NP - N.FCI 123ABC"
        assert formatar_descricao_complementar(texto) == "SAIA / TAM: 40 1.2.3.4 NP"

    def test_fora_do_formato_so_normaliza_espacos(self):
        assert formatar_descricao_complementar("  LINHA   VERAO - tam: P ") == "LINHA VERAO - tam: P"
        assert formatar_descricao_complementar("") == ""
        assert formatar_descricao_complementar(None) == ""


# =============================================================================
# EXECUÇÃO DIRETA
# =============================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
