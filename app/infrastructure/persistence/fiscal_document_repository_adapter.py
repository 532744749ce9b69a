from sqlalchemy.orm import Session, load_only
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from typing import List, Optional, Tuple
from app.domain.exceptions import DuplicateDocument, NotFound
from app.domain.models.fiscal_document import (
    DocumentListItem,
    DocumentSummary,
    FiscalDocument,
    PartyName,
    Recipient,
    SearchFilters,
    Sender,
)
from app.domain.ports.fiscal_document_repository import FiscalDocumentRepository
from .models import NotaFiscal, _new_id, _utcnow
import logging

logger = logging.getLogger(__name__)

_LIST_COLUMNS = (
    NotaFiscal.id,
    NotaFiscal.numero,
    NotaFiscal.chave_nfe,
    NotaFiscal.fecha_emision,
    NotaFiscal.remitente_nombre,
    NotaFiscal.destinatario_nombre,
    NotaFiscal.valor_total,
    NotaFiscal.creado_en,
    NotaFiscal.pdf_file_id,
)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLAlchemyFiscalDocumentRepository(FiscalDocumentRepository):
    def __init__(self, db: Session):
        self.db = db

    def _to_domain(self, row: NotaFiscal) -> FiscalDocument:
        return FiscalDocument(
            id=row.id,
            number=row.numero,
            document_key=row.chave_nfe,
            issue_date=row.fecha_emision,
            sender=Sender.model_validate(row.remitente),
            recipient=Recipient.model_validate(row.destinatario),
            carrier=row.transportadora,
            items=row.productos,
            total_value=row.valor_total,
            raw_xml=row.xml_texto,
            pdf_file_id=row.pdf_file_id,
            created_at=row.creado_en,
        )

    def _to_summary(self, row: NotaFiscal) -> DocumentSummary:
        return DocumentSummary(id=row.id, number=row.numero, document_key=row.chave_nfe, created_at=row.creado_en)

    def find_by_id(self, document_id: str) -> Optional[FiscalDocument]:
        """Busca una nota por su ID en la tabla 'notas_fiscales'."""
        row = self.db.get(NotaFiscal, document_id)
        return self._to_domain(row) if row else None

    def find_summary_by_number(self, number: str) -> Optional[DocumentSummary]:
        row = self.db.query(NotaFiscal).filter(NotaFiscal.numero == number).first()
        return self._to_summary(row) if row else None

    def find_summary_by_key(self, document_key: str) -> Optional[DocumentSummary]:
        row = self.db.query(NotaFiscal).filter(NotaFiscal.chave_nfe == document_key).first()
        return self._to_summary(row) if row else None

    def add(self, document: FiscalDocument) -> FiscalDocument:
        """
        Inserta la nota y hace commit inmediatamente: el PDF se genera
        después, fuera de esta transacción.
        """
        row = NotaFiscal(
            id=_new_id(),
            numero=document.number,
            chave_nfe=document.document_key,
            fecha_emision=document.issue_date,
            remitente_nombre=document.sender.name,
            destinatario_nombre=document.recipient.name,
            remitente=document.sender.model_dump(by_alias=True),
            destinatario=document.recipient.model_dump(by_alias=True),
            transportadora=document.carrier,
            productos=document.items,
            valor_total=document.total_value,
            xml_texto=document.raw_xml,
            creado_en=document.created_at or _utcnow(),
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Otra importación de la misma nota ganó la carrera después de la verificación previa
            self.db.rollback()
            logger.warning(f"Violación de unicidad al insertar la NF-e {document.number}: {e.orig}")
            raise self._duplicate_error(document) from e

        return self._to_domain(row)

    def _duplicate_error(self, document: FiscalDocument) -> DuplicateDocument:
        existing = self.find_summary_by_number(document.number)
        if existing:
            return DuplicateDocument(f"Ya existe una NF-e con este número ({document.number}).", field="numero", existing=existing)
        existing = self.find_summary_by_key(document.document_key)
        if existing:
            return DuplicateDocument(f"Ya existe una NF-e con esta chave ({document.document_key}).", field="chaveNFe", existing=existing)
        return DuplicateDocument("Ya existe una NF-e con este número o chave.", field="numero")

    def attach_pdf(self, document_id: str, blob_id: str) -> FiscalDocument:
        # Solo se asocia si la nota todavía no tiene PDF
        updated = self.db.query(NotaFiscal)\
            .filter(NotaFiscal.id == document_id, NotaFiscal.pdf_file_id.is_(None))\
            .update({NotaFiscal.pdf_file_id: blob_id}, synchronize_session=False)
        self.db.commit()

        row = self.db.get(NotaFiscal, document_id, populate_existing=True)
        if row is None:
            raise NotFound(f"La nota {document_id} ya no existe.")
        if not updated:
            raise ValueError(f"La nota {document_id} ya tiene el PDF {row.pdf_file_id} asociado.")
        return self._to_domain(row)

    def search(self, filters: SearchFilters, offset: int, limit: int) -> Tuple[List[DocumentListItem], int]:
        query = self.db.query(NotaFiscal)

        if filters.number:
            query = query.filter(NotaFiscal.numero == filters.number)

        if filters.search:
            pattern = f"%{_escape_like(filters.search)}%"
            query = query.filter(or_(
                NotaFiscal.remitente_nombre.ilike(pattern, escape="\\"),
                NotaFiscal.destinatario_nombre.ilike(pattern, escape="\\"),
                NotaFiscal.numero.ilike(pattern, escape="\\"),
            ))

        if filters.min_value is not None:
            query = query.filter(NotaFiscal.valor_total >= filters.min_value)
        if filters.max_value is not None:
            query = query.filter(NotaFiscal.valor_total <= filters.max_value)

        total = query.count()
        rows = query.options(load_only(*_LIST_COLUMNS))\
            .order_by(NotaFiscal.creado_en.desc())\
            .offset(offset)\
            .limit(limit)\
            .all()

        records = [
            DocumentListItem(
                id=row.id,
                number=row.numero,
                document_key=row.chave_nfe,
                issue_date=row.fecha_emision,
                sender=PartyName(name=row.remitente_nombre),
                recipient=PartyName(name=row.destinatario_nombre),
                total_value=row.valor_total,
                created_at=row.creado_en,
                pdf_file_id=row.pdf_file_id,
            )
            for row in rows
        ]
        return records, total

    def delete(self, document_id: str) -> Optional[FiscalDocument]:
        row = self.db.get(NotaFiscal, document_id)
        if row is None:
            return None
        document = self._to_domain(row)
        self.db.delete(row)
        self.db.commit()
        return document

    def delete_all(self) -> int:
        deleted = self.db.query(NotaFiscal).delete(synchronize_session=False)
        self.db.commit()
        return deleted
