# app/application/use_cases/ingest_fiscal_document.py
import logging
from enum import Enum

from app.application.services.duplicate_guard import DuplicateGuard
from app.application.services.key_extractor import extract_keys
from app.application.services.record_normalizer import normalize_record
from app.application.services.rendering_coordinator import RenderingCoordinator
from app.domain.exceptions import AttachFailure, IngestionError, PartialIngestionError
from app.domain.models.fiscal_document import FiscalDocument
from app.domain.ports.blob_storage import BlobStorage
from app.domain.ports.fiscal_document_repository import FiscalDocumentRepository
from app.domain.ports.pdf_renderer import PdfRenderer
from app.infrastructure.external.xml_parser_adapter import parse_fiscal_xml

logger = logging.getLogger(__name__)


class IngestionState(str, Enum):
    RECEIVED = "Received"
    PARSED = "Parsed"
    KEYS_EXTRACTED = "KeysExtracted"
    DUPLICATE_CHECKED = "DuplicateChecked"
    NORMALIZED = "Normalized"
    PERSISTED = "Persisted"
    RENDERED = "Rendered"
    ATTACHED = "Attached"
    DONE = "Done"
    FAILED = "Failed"


class IngestFiscalDocumentUseCase:
    """
    Importa una NF-e: parseo, extracción de claves, verificación de
    duplicados, normalización, inserción, generación del PDF y asociación
    del PDF a la nota.

    La inserción y el PDF son recursos independientes y no hay transacción
    entre ellos. Si el PDF falla después de insertar, la nota queda
    guardada sin `pdf_file_id`; si falla la asociación, el blob queda huérfano.
    """
    def __init__(
        self,
        repository: FiscalDocumentRepository,
        blob_storage: BlobStorage,
        renderer: PdfRenderer,
    ):
        self.repository = repository
        self.duplicate_guard = DuplicateGuard(repository)
        self.rendering = RenderingCoordinator(renderer, blob_storage)
        self.state = IngestionState.RECEIVED

    def _advance(self, state: IngestionState, label: str) -> None:
        self.state = state
        logger.info(f"[{label}] -> {state.value}")

    def execute(self, xml_text: str) -> FiscalDocument:
        self.state = IngestionState.RECEIVED
        label = "nfe"
        try:
            document_node = parse_fiscal_xml(xml_text)
            self._advance(IngestionState.PARSED, label)

            number, document_key = extract_keys(document_node)
            label = f"nfe {number}"
            self._advance(IngestionState.KEYS_EXTRACTED, label)

            self.duplicate_guard.check(number, document_key)
            self._advance(IngestionState.DUPLICATE_CHECKED, label)

            record = normalize_record(document_node, number, document_key, xml_text)
            self._advance(IngestionState.NORMALIZED, label)

            # A partir de aquí hay estado escrito; los fallos ya no se deshacen
            record = self.repository.add(record)
            self._advance(IngestionState.PERSISTED, label)

            try:
                blob_id = self.rendering.render_and_store(xml_text, number)
            except PartialIngestionError as e:
                e.record_id = record.id
                raise
            self._advance(IngestionState.RENDERED, label)

            try:
                record = self.repository.attach_pdf(record.id, blob_id)
            except Exception as e:
                raise AttachFailure(
                    f"El PDF {blob_id} se generó pero no se pudo asociar a la NF-e {number}: {e}",
                    record_id=record.id,
                    blob_id=blob_id,
                ) from e
            self._advance(IngestionState.ATTACHED, label)

        except IngestionError as e:
            e.failed_at = self.state.value
            failed_from = self.state
            self.state = IngestionState.FAILED
            if isinstance(e, PartialIngestionError):
                logger.error(
                    f"[{label}] Falló en {failed_from.value} con la nota ya guardada "
                    f"(id={e.record_id}, blob={e.blob_id}): {e.message}",
                    exc_info=True,
                )
            else:
                logger.warning(f"[{label}] Falló en {failed_from.value}: {e.message}")
            raise
        except Exception as e:
            # Errores de la base u otros inesperados: se propagan tal cual
            failed_from = self.state
            self.state = IngestionState.FAILED
            logger.error(f"[{label}] Error inesperado en {failed_from.value}: {e}", exc_info=True)
            raise

        self._advance(IngestionState.DONE, label)
        return record
