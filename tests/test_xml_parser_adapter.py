import pytest

from app.domain.exceptions import MalformedDocument
from app.infrastructure.external.xml_parser_adapter import (
    as_list,
    decode_xml_bytes,
    extract_document_node,
    node_text,
    parse_fiscal_xml,
    parse_xml,
)
from nfe_samples import SCENARIO_KEY, build_nfe_xml


def test_parse_xml_strips_namespaces_and_keeps_attributes():
    tree = parse_xml(build_nfe_xml())

    info = tree["nfeProc"]["NFe"]["infNFe"]
    assert info["$"]["Id"] == f"NFe{SCENARIO_KEY}"
    assert info["ide"]["nNF"] == "123"
    assert tree["nfeProc"]["$"]["versao"] == "4.00"


def test_single_item_is_not_wrapped_in_a_list():
    info = parse_fiscal_xml(build_nfe_xml(items=[("001", "Produto A", "10.00")]))

    assert isinstance(info["det"], dict)
    assert info["det"]["prod"]["xProd"] == "Produto A"


def test_repeated_items_become_a_list_in_document_order():
    info = parse_fiscal_xml(build_nfe_xml(items=[("001", "A", "1"), ("002", "B", "2"), ("003", "C", "3")]))

    assert isinstance(info["det"], list)
    assert [d["prod"]["cProd"] for d in info["det"]] == ["001", "002", "003"]


def test_element_with_attributes_and_text_keeps_both():
    tree = parse_xml('<root><vNF moeda="BRL">10.00</vNF><vazio/></root>')

    assert tree["root"]["vNF"] == {"$": {"moeda": "BRL"}, "_": "10.00"}
    assert node_text(tree["root"]["vNF"]) == "10.00"
    assert tree["root"]["vazio"] == ""
    assert node_text(tree["root"]["vazio"]) is None


@pytest.mark.parametrize("text", ["", "   ", "isto não é xml", "<nfeProc><NFe>"])
def test_invalid_xml_is_malformed(text):
    with pytest.raises(MalformedDocument):
        parse_xml(text)


@pytest.mark.parametrize("xml", [
    "<outro><NFe><infNFe><ide><nNF>1</nNF></ide></infNFe></NFe></outro>",
    "<nfeProc><NFe/></nfeProc>",
    "<nfeProc><NFe><infNFe><emit/></infNFe></NFe></nfeProc>",
])
def test_missing_envelope_structure_is_malformed(xml):
    with pytest.raises(MalformedDocument):
        extract_document_node(parse_xml(xml))


def test_as_list_resolves_single_and_repeated_nodes():
    assert as_list(None) == []
    assert as_list({"a": 1}) == [{"a": 1}]
    assert as_list([1, 2]) == [1, 2]


def test_decode_xml_bytes_handles_bom_and_latin1():
    assert decode_xml_bytes("\ufeff<a>ç</a>".encode("utf-8")) == "<a>ç</a>"
    assert decode_xml_bytes("<a>São</a>".encode("iso-8859-1")) == "<a>São</a>"


def test_latin1_declared_document_is_parsed_after_decoding():
    raw = '<?xml version="1.0" encoding="ISO-8859-1"?><a><b>João</b></a>'.encode("iso-8859-1")

    tree = parse_xml(decode_xml_bytes(raw))

    assert tree["a"]["b"] == "João"
