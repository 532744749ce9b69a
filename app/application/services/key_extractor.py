# app/application/services/key_extractor.py
from typing import Any, Dict, Optional, Tuple

import config
from app.domain.exceptions import MissingIdentity
from app.infrastructure.external.xml_parser_adapter import ATTRIBUTES_KEY, node_text


def strip_key_prefix(raw_key: Optional[str]) -> Optional[str]:
    """Quita el prefijo 'NFe' del Id una sola vez. Una chave sin prefijo se devuelve igual."""
    if raw_key and raw_key.startswith(config.NFE_KEY_PREFIX):
        return raw_key[len(config.NFE_KEY_PREFIX):]
    return raw_key


def extract_keys(document_node: Dict[str, Any]) -> Tuple[str, str]:
    """
    Obtiene (numero, chaveNFe) del nodo infNFe.

    La chave puede venir como atributo (`Id`) o, según cómo se haya generado
    el árbol, como campo directo del nodo.
    """
    header = document_node.get("ide")
    number = node_text(header.get("nNF")) if isinstance(header, dict) else None

    attributes = document_node.get(ATTRIBUTES_KEY)
    raw_key = node_text(attributes.get("Id")) if isinstance(attributes, dict) else None
    if not raw_key:
        raw_key = node_text(document_node.get("Id") or document_node.get("id"))

    document_key = strip_key_prefix(raw_key)

    if not number or not document_key:
        raise MissingIdentity("No fue posible extraer el número o la chave de la NF-e del XML.")
    if len(number) > config.NFE_NUMBER_MAX_LENGTH or len(document_key) > config.NFE_KEY_MAX_LENGTH:
        raise MissingIdentity(
            f"Número o chave de la NF-e demasiado largos (máximo {config.NFE_NUMBER_MAX_LENGTH} y "
            f"{config.NFE_KEY_MAX_LENGTH} caracteres)."
        )
    return number, document_key
