# app/application/use_cases/delete_fiscal_documents.py
import logging
from typing import Dict

from app.domain.exceptions import NotFound
from app.domain.models.fiscal_document import DocumentSummary
from app.domain.ports.blob_storage import BlobStorage
from app.domain.ports.fiscal_document_repository import FiscalDocumentRepository
from app.domain.validation import validate_document_id

logger = logging.getLogger(__name__)


class DeleteFiscalDocumentUseCase:
    def __init__(self, repository: FiscalDocumentRepository, blob_storage: BlobStorage):
        self.repository = repository
        self.blob_storage = blob_storage

    def execute(self, document_id: str) -> DocumentSummary:
        """
        Elimina la nota y, si tiene, su PDF. La eliminación de la nota es lo
        que define el éxito: un fallo al borrar el PDF solo se registra.
        """
        document_id = validate_document_id(document_id)
        document = self.repository.delete(document_id)
        if document is None:
            raise NotFound("Nota no encontrada.")

        if document.pdf_file_id:
            try:
                self.blob_storage.delete(document.pdf_file_id)
            except Exception as e:
                logger.warning(f"Error al eliminar el PDF {document.pdf_file_id} de la nota {document.number}: {e}")

        logger.info(f"Nota {document.number} (id={document.id}) eliminada.")
        return DocumentSummary(
            id=document.id,
            number=document.number,
            document_key=document.document_key,
            created_at=document.created_at,
        )


class DeleteAllFiscalDocumentsUseCase:
    """Vacía la colección de notas y el bucket de PDFs. No hay transacción entre ambos."""

    def __init__(self, repository: FiscalDocumentRepository, blob_storage: BlobStorage):
        self.repository = repository
        self.blob_storage = blob_storage

    def execute(self) -> Dict[str, int]:
        deleted_documents = self.repository.delete_all()
        deleted_blobs = self.blob_storage.delete_all()
        logger.warning(f"Eliminadas {deleted_documents} notas y {deleted_blobs} PDFs.")
        return {"documents": deleted_documents, "blobs": deleted_blobs}
