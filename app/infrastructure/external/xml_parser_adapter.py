# app/infrastructure/external/xml_parser_adapter.py
"""
Adaptador sobre lxml que convierte el XML de una NF-e en un árbol de dicts.

Igual que otros parsers XML→objeto, un elemento que se repite se devuelve
como lista y uno que aparece una sola vez como valor único (dict o str).
Esa ambigüedad NO se resuelve aquí: quien consume el árbol debe usar
`as_list()` en los nodos que pueden repetirse (por ejemplo `det`).
"""
from typing import Any, Dict, List, Optional, Union

from lxml import etree

from app.domain.exceptions import MalformedDocument

ATTRIBUTES_KEY = "$"
TEXT_KEY = "_"

Node = Union[str, Dict[str, Any], List[Any]]


def decode_xml_bytes(content: bytes) -> str:
    """Decodifica el archivo subido; primero UTF-8 (con BOM) y si falla ISO-8859-1."""
    try:
        return content.decode("utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        return content.decode("iso-8859-1")


def _element_to_node(element) -> Node:
    children = [child for child in element if isinstance(child.tag, str)]
    text = (element.text or "").strip()

    if not children and not element.attrib:
        return text

    node: Dict[str, Any] = {}
    if element.attrib:
        node[ATTRIBUTES_KEY] = {etree.QName(k).localname: v for k, v in element.attrib.items()}
    if text:
        node[TEXT_KEY] = text

    for child in children:
        key = etree.QName(child).localname
        value = _element_to_node(child)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]
    return node


def parse_xml(xml_text: str) -> Dict[str, Any]:
    """Parsea el texto XML y devuelve `{raiz: nodo}`. Los namespaces se descartan."""
    if not xml_text or not xml_text.strip():
        raise MalformedDocument("El XML está vacío.")

    parser = etree.XMLParser(encoding="utf-8", resolve_entities=False, no_network=True, huge_tree=True)
    try:
        root = etree.fromstring(xml_text.strip().encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        raise MalformedDocument(f"El archivo no es un XML válido: {e}") from e

    return {etree.QName(root).localname: _element_to_node(root)}


def as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def extract_document_node(tree: Dict[str, Any]) -> Dict[str, Any]:
    """Devuelve el nodo infNFe (nfeProc/NFe/infNFe) o lanza MalformedDocument."""
    envelope = tree.get("nfeProc")
    document = envelope.get("NFe") if isinstance(envelope, dict) else None
    info = document.get("infNFe") if isinstance(document, dict) else None

    if not isinstance(info, dict) or not isinstance(info.get("ide"), dict):
        raise MalformedDocument("XML no posee estructura válida de NF-e.")
    return info


def parse_fiscal_xml(xml_text: str) -> Dict[str, Any]:
    return extract_document_node(parse_xml(xml_text))


def node_text(value: Any) -> Optional[str]:
    """Texto de un nodo hoja. Cadenas vacías y nodos ausentes se devuelven como None."""
    # Un nodo con atributos llega como dict; su texto queda bajo TEXT_KEY
    if isinstance(value, dict):
        value = value.get(TEXT_KEY)
    if value is None or isinstance(value, list):
        return None
    value = str(value).strip()
    return value or None
