# app/infrastructure/persistence/blob_storage_adapter.py
import logging
from typing import Callable, Iterator

from sqlalchemy.orm import Session

import config
from app.domain.exceptions import NotFound
from app.domain.ports.blob_storage import BlobStorage, BlobUploadStream
from .models import PdfChunk, PdfFile, _new_id

logger = logging.getLogger(__name__)


class SQLAlchemyUploadStream(BlobUploadStream):
    """
    Escribe el archivo por bloques de `chunk_size` bytes. Los bloques y el
    registro del archivo se confirman juntos en `close()`.
    """
    def __init__(self, session: Session, filename: str, chunk_size: int):
        self.id = _new_id()
        self.filename = filename
        self.chunk_size = chunk_size
        self._session = session
        self._buffer = bytearray()
        self._next_chunk = 0
        self._length = 0
        self._closed = False

    def _flush_chunk(self, data: bytes) -> None:
        self._session.add(PdfChunk(file_id=self.id, n=self._next_chunk, data=data))
        self._session.flush()
        self._next_chunk += 1

    def write(self, data: bytes) -> None:
        if self._closed:
            raise ValueError(f"El archivo {self.filename} ya fue cerrado.")
        self._buffer.extend(data)
        self._length += len(data)
        while len(self._buffer) >= self.chunk_size:
            self._flush_chunk(bytes(self._buffer[:self.chunk_size]))
            del self._buffer[:self.chunk_size]

    def close(self) -> str:
        if self._closed:
            return self.id
        try:
            if self._buffer:
                self._flush_chunk(bytes(self._buffer))
                self._buffer.clear()
            self._session.add(PdfFile(
                id=self.id,
                filename=self.filename,
                content_type=config.PDF_CONTENT_TYPE,
                length=self._length,
                chunk_size=self.chunk_size,
            ))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        finally:
            self._closed = True
            self._session.close()
        return self.id

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._session.rollback()
        finally:
            self._session.close()
        logger.warning(f"Subida del archivo {self.filename} ({self.id}) abortada.")


class SQLAlchemyBlobStorage(BlobStorage):
    """
    Bucket de PDFs guardado en dos tablas (`<bucket>_files` y `<bucket>_chunks`).
    Usa sus propias sesiones: es un recurso independiente de la tabla de notas.
    """
    def __init__(self, session_factory: Callable[[], Session], chunk_size: int = config.PDF_CHUNK_SIZE):
        self.session_factory = session_factory
        self.chunk_size = chunk_size

    def open_upload_stream(self, filename: str) -> SQLAlchemyUploadStream:
        return SQLAlchemyUploadStream(self.session_factory(), filename, self.chunk_size)

    def open_download_stream(self, blob_id: str) -> Iterator[bytes]:
        with self.session_factory() as session:
            if session.get(PdfFile, blob_id) is None:
                raise NotFound(f"Archivo {blob_id} no encontrado.")
        return self._iter_chunks(blob_id)

    def _iter_chunks(self, blob_id: str) -> Iterator[bytes]:
        with self.session_factory() as session:
            chunks = session.query(PdfChunk.data)\
                .filter(PdfChunk.file_id == blob_id)\
                .order_by(PdfChunk.n)\
                .yield_per(8)
            for (data,) in chunks:
                yield data

    def delete(self, blob_id: str) -> None:
        with self.session_factory() as session:
            file_row = session.get(PdfFile, blob_id)
            if file_row is None:
                raise NotFound(f"Archivo {blob_id} no encontrado.")
            session.query(PdfChunk).filter(PdfChunk.file_id == blob_id).delete(synchronize_session=False)
            session.delete(file_row)
            session.commit()

    def delete_all(self) -> int:
        with self.session_factory() as session:
            deleted = session.query(PdfFile).delete(synchronize_session=False)
            session.query(PdfChunk).delete(synchronize_session=False)
            session.commit()
        return deleted
