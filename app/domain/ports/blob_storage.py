# app/domain/ports/blob_storage.py
from abc import ABC, abstractmethod
from typing import Iterator


class BlobUploadStream(ABC):
    """Stream de escritura. El id se asigna al abrirlo y es válido tras `close()`."""

    id: str

    @abstractmethod
    def write(self, data: bytes) -> None:
        pass

    @abstractmethod
    def close(self) -> str:
        """Confirma la subida y devuelve el id del blob."""
        pass

    @abstractmethod
    def abort(self) -> None:
        """Descarta lo escrito hasta ahora."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
        else:
            self.abort()
        return False


class BlobStorage(ABC):
    """Puerto para el almacenamiento de los PDFs generados."""

    @abstractmethod
    def open_upload_stream(self, filename: str) -> BlobUploadStream:
        pass

    @abstractmethod
    def open_download_stream(self, blob_id: str) -> Iterator[bytes]:
        """
        Devuelve un iterador sobre los bloques del blob, en orden.
        Lanza NotFound si el blob no existe.
        """
        pass

    @abstractmethod
    def delete(self, blob_id: str) -> None:
        pass

    @abstractmethod
    def delete_all(self) -> int:
        """Vacía el bucket completo. Devuelve la cantidad de archivos eliminados."""
        pass
