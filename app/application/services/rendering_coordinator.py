# app/application/services/rendering_coordinator.py
import logging

import config
from app.domain.exceptions import BlobWriteFailure, RenderFailure
from app.domain.ports.blob_storage import BlobStorage
from app.domain.ports.pdf_renderer import PdfRenderer

logger = logging.getLogger(__name__)


def pdf_filename(number: str) -> str:
    return f"pdf-{number}.pdf"


class RenderingCoordinator:
    """Genera el PDF de una nota y lo vuelca en el almacenamiento de blobs."""

    def __init__(self, renderer: PdfRenderer, blob_storage: BlobStorage, chunk_size: int = config.PDF_CHUNK_SIZE):
        self.renderer = renderer
        self.blob_storage = blob_storage
        self.chunk_size = chunk_size

    def _abort(self, upload, number: str) -> None:
        # Un fallo al abortar no debe ocultar el error original
        try:
            upload.abort()
        except Exception as e:
            logger.error(f"No se pudo abortar la subida {upload.id} del PDF de la NF-e {number}: {e}")

    def render_and_store(self, xml_text: str, number: str) -> str:
        """Devuelve el id del blob una vez que la subida terminó por completo."""
        try:
            pdf_stream = self.renderer.render(xml_text)
        except Exception as e:
            raise RenderFailure(f"Error al generar el PDF de la NF-e {number}: {e}") from e

        try:
            try:
                upload = self.blob_storage.open_upload_stream(pdf_filename(number))
            except Exception as e:
                raise BlobWriteFailure(f"No se pudo abrir el archivo del PDF de la NF-e {number}: {e}") from e

            try:
                while True:
                    try:
                        chunk = pdf_stream.read(self.chunk_size)
                    except Exception as e:
                        raise RenderFailure(f"Error al leer el PDF generado para la NF-e {number}: {e}") from e
                    if not chunk:
                        break
                    upload.write(chunk)
                blob_id = upload.close()
            except RenderFailure:
                self._abort(upload, number)
                raise
            except Exception as e:
                self._abort(upload, number)
                raise BlobWriteFailure(f"Error al guardar el PDF de la NF-e {number}: {e}") from e
        finally:
            pdf_stream.close()

        logger.info(f"PDF de la NF-e {number} guardado con id {blob_id}.")
        return blob_id
