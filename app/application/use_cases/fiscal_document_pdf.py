# app/application/use_cases/fiscal_document_pdf.py
from typing import BinaryIO, Iterator, Tuple

from app.domain.exceptions import MalformedDocument, NotFound, RenderFailure
from app.domain.models.fiscal_document import FiscalDocument
from app.domain.ports.blob_storage import BlobStorage
from app.domain.ports.fiscal_document_repository import FiscalDocumentRepository
from app.domain.ports.pdf_renderer import PdfRenderer
from app.domain.validation import validate_document_id


class GetFiscalDocumentPdfUseCase:
    def __init__(self, repository: FiscalDocumentRepository, blob_storage: BlobStorage):
        self.repository = repository
        self.blob_storage = blob_storage

    def execute(self, document_id: str) -> Tuple[FiscalDocument, Iterator[bytes]]:
        """Devuelve la nota y un iterador sobre los bytes de su PDF."""
        document_id = validate_document_id(document_id)
        document = self.repository.find_by_id(document_id)
        if document is None or not document.pdf_file_id:
            raise NotFound("PDF no encontrado para esta nota.")
        return document, self.blob_storage.open_download_stream(document.pdf_file_id)


class PreviewPdfUseCase:
    """Genera el DANFE de un XML sin guardar nada."""

    def __init__(self, renderer: PdfRenderer):
        self.renderer = renderer

    def execute(self, xml_text: str) -> BinaryIO:
        if not xml_text or not xml_text.strip():
            raise MalformedDocument("XML es obligatorio.")
        try:
            return self.renderer.render(xml_text)
        except Exception as e:
            raise RenderFailure(f"Error al generar preview: {e}") from e
