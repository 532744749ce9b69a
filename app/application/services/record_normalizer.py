# app/application/services/record_normalizer.py
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from app.domain.exceptions import InvalidAmount
from app.domain.models.fiscal_document import Address, FiscalDocument, Recipient, Sender
from app.infrastructure.external.xml_parser_adapter import as_list, node_text


def _child(node: Any, key: str) -> Optional[Dict[str, Any]]:
    if isinstance(node, dict) and isinstance(node.get(key), dict):
        return node[key]
    return None


def _field(node: Optional[Dict[str, Any]], key: str) -> Optional[str]:
    if node is None:
        return None
    return node_text(node.get(key))


def _address(node: Optional[Dict[str, Any]]) -> Address:
    return Address(
        street=_field(node, "xLgr"),
        number=_field(node, "nro"),
        district=_field(node, "xBairro"),
        city=_field(node, "xMun"),
        region=_field(node, "UF"),
        postal_code=_field(node, "CEP"),
    )


def normalize_items(det: Any) -> List[Any]:
    """
    `det` llega como lista si la nota tiene varios ítems y como dict si tiene
    uno solo. Siempre devuelve una lista con el `prod` de cada ítem, en orden.
    """
    return [entry.get("prod") if isinstance(entry, dict) else None for entry in as_list(det)]


def parse_total(value: Any) -> float:
    raw = node_text(value)
    try:
        amount = Decimal(raw) if raw is not None else None
    except InvalidOperation:
        amount = None
    if amount is None or not amount.is_finite():
        raise InvalidAmount(f"Valor total inválido en la NF-e: {raw!r}")
    return float(amount)


def normalize_record(document_node: Dict[str, Any], number: str, document_key: str, raw_xml: str) -> FiscalDocument:
    """
    Transforma el nodo infNFe en el modelo de dominio `FiscalDocument`.
    El resultado no tiene id, PDF ni fecha de creación.
    """
    header = _child(document_node, "ide")
    emit = _child(document_node, "emit")
    dest = _child(document_node, "dest")
    icms_total = _child(_child(document_node, "total"), "ICMSTot")

    carrier = document_node.get("transp")

    return FiscalDocument(
        number=number,
        document_key=document_key,
        issue_date=_field(header, "dhEmi"),
        sender=Sender(
            name=_field(emit, "xNome"),
            tax_id=_field(emit, "CNPJ"),
            address=_address(_child(emit, "enderEmit")),
        ),
        recipient=Recipient(
            name=_field(dest, "xNome"),
            tax_id=_field(dest, "CNPJ"),
            national_id=_field(dest, "CPF"),
            address=_address(_child(dest, "enderDest")),
        ),
        carrier=carrier if isinstance(carrier, dict) else None,
        items=normalize_items(document_node.get("det")),
        total_value=parse_total(icms_total.get("vNF") if icms_total else None),
        raw_xml=raw_xml,
    )
