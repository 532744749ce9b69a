# app/infrastructure/external/pymupdf_renderer_adapter.py
import io
from typing import Any, BinaryIO, List, Optional, Tuple

import fitz  # PyMuPDF

from app.application.services.key_extractor import extract_keys
from app.application.services.record_normalizer import normalize_record
from app.domain.models.fiscal_document import Address, FiscalDocument
from app.domain.ports.pdf_renderer import PdfRenderer
from .xml_parser_adapter import node_text, parse_fiscal_xml

# (encabezado, campo de `prod`, ancho en caracteres)
PRODUCT_COLUMNS: List[Tuple[str, str, int]] = [
    ("CÓDIGO", "cProd", 12),
    ("DESCRIÇÃO", "xProd", 38),
    ("NCM", "NCM", 9),
    ("UN", "uCom", 4),
    ("QTD", "qCom", 10),
    ("V. UNIT", "vUnCom", 12),
    ("V. TOTAL", "vProd", 12),
]

FREIGHT_MODES = {
    "0": "Emitente",
    "1": "Destinatário",
    "2": "Terceiros",
    "3": "Próprio por conta do remetente",
    "4": "Próprio por conta do destinatário",
    "9": "Sem frete",
}


def format_access_key(document_key: str) -> str:
    return " ".join(document_key[i:i + 4] for i in range(0, len(document_key), 4))


def format_currency(value: float) -> str:
    # 1234.5 -> 1.234,50
    return f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def _clip(value: Optional[str], width: int) -> str:
    value = value or ""
    return value if len(value) <= width else value[:width - 1] + "."


def _address_line(address: Address) -> str:
    parts = [
        ", ".join(p for p in (address.street, address.number) if p),
        address.district,
        " / ".join(p for p in (address.city, address.region) if p),
        f"CEP {address.postal_code}" if address.postal_code else None,
    ]
    return " - ".join(p for p in parts if p)


class _PageWriter:
    """Escribe líneas de texto de arriba hacia abajo y agrega páginas cuando hace falta."""

    def __init__(self, doc, margin: float = 36, line_height: float = 12):
        self.doc = doc
        self.width, self.height = fitz.paper_size("a4")
        self.margin = margin
        self.line_height = line_height
        self.page = None
        self.y = 0.0
        self._new_page()

    def _new_page(self) -> None:
        self.page = self.doc.new_page(width=self.width, height=self.height)
        self.y = self.margin

    def _ensure_space(self, height: float) -> None:
        if self.y + height > self.height - self.margin:
            self._new_page()

    def line(self, text: str, fontsize: float = 8, bold: bool = False) -> None:
        self._ensure_space(self.line_height)
        self.y += self.line_height
        fontname = "hebo" if bold else "helv"
        self.page.insert_text((self.margin, self.y), text, fontsize=fontsize, fontname=fontname)

    def monospace(self, text: str, fontsize: float = 7) -> None:
        self._ensure_space(self.line_height)
        self.y += self.line_height
        self.page.insert_text((self.margin, self.y), text, fontsize=fontsize, fontname="cour")

    def rule(self) -> None:
        self._ensure_space(6)
        self.y += 6
        self.page.draw_line((self.margin, self.y), (self.width - self.margin, self.y), width=0.5)

    def section(self, title: str) -> None:
        self.rule()
        self.line(title, fontsize=9, bold=True)


class PyMuPdfDanfeRenderer(PdfRenderer):
    """Genera un DANFE simplificado (texto) a partir del XML de la NF-e."""

    def _build(self, record: FiscalDocument) -> bytes:
        doc = fitz.open()
        try:
            doc.set_metadata({
                "title": f"DANFE NF-e {record.number}",
                "subject": record.document_key,
                "creator": "nfe-ingest",
            })
            writer = _PageWriter(doc)
            writer.line("DANFE - Documento Auxiliar da Nota Fiscal Eletrônica", fontsize=12, bold=True)
            writer.line(f"NF-e Nº {record.number}    Emissão: {record.issue_date or '-'}", fontsize=9)
            writer.line(f"Chave de acesso: {format_access_key(record.document_key)}", fontsize=9)

            writer.section("EMITENTE")
            writer.line(f"{record.sender.name or '-'}    CNPJ: {record.sender.tax_id or '-'}")
            writer.line(_address_line(record.sender.address) or "-")

            writer.section("DESTINATÁRIO / REMETENTE")
            recipient_id = (
                f"CPF: {record.recipient.national_id}" if record.recipient.national_id
                else f"CNPJ: {record.recipient.tax_id or '-'}"
            )
            writer.line(f"{record.recipient.name or '-'}    {recipient_id}")
            writer.line(_address_line(record.recipient.address) or "-")

            writer.section("TRANSPORTADOR / VOLUMES TRANSPORTADOS")
            writer.line(self._carrier_line(record.carrier))

            writer.section("DADOS DOS PRODUTOS / SERVIÇOS")
            writer.monospace(" ".join(title.ljust(width) for title, _, width in PRODUCT_COLUMNS))
            for item in record.items:
                writer.monospace(self._product_row(item))

            writer.section("CÁLCULO DO IMPOSTO")
            writer.line(f"VALOR TOTAL DA NOTA: R$ {format_currency(record.total_value)}", fontsize=10, bold=True)
            return doc.tobytes()
        finally:
            doc.close()

    def _carrier_line(self, carrier: Optional[dict]) -> str:
        if not carrier:
            return "-"
        mode = node_text(carrier.get("modFrete"))
        hauler = carrier.get("transporta") if isinstance(carrier.get("transporta"), dict) else {}
        parts = [
            f"Frete: {FREIGHT_MODES.get(mode, mode)}" if mode else None,
            node_text(hauler.get("xNome")),
            f"CNPJ: {node_text(hauler.get('CNPJ'))}" if node_text(hauler.get("CNPJ")) else None,
        ]
        return "    ".join(p for p in parts if p) or "-"

    def _product_row(self, item: Any) -> str:
        item = item if isinstance(item, dict) else {}
        return " ".join(
            _clip(node_text(item.get(field)), width).ljust(width)
            for _, field, width in PRODUCT_COLUMNS
        )

    def render(self, xml_text: str) -> BinaryIO:
        document_node = parse_fiscal_xml(xml_text)
        number, document_key = extract_keys(document_node)
        record = normalize_record(document_node, number, document_key, xml_text)
        return io.BytesIO(self._build(record))
