# app/domain/exceptions.py
from typing import Any, Dict, Optional


class FiscalDocumentError(Exception):
    """Error base del dominio. Cada subclase declara su código HTTP."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class IngestionError(FiscalDocumentError):
    """Fallo del pipeline de importación. `failed_at` guarda el estado en que ocurrió."""

    failed_at: Optional[str] = None


class MalformedDocument(IngestionError):
    status_code = 400


class MissingIdentity(IngestionError):
    status_code = 400


class InvalidAmount(IngestionError):
    status_code = 400


class DuplicateDocument(IngestionError):
    status_code = 409

    def __init__(self, message: str, field: str, existing=None):
        super().__init__(message)
        self.field = field
        self.existing = existing  # DocumentSummary de la nota ya importada, si se conoce

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.existing is not None:
            payload["notaExistente"] = self.existing.model_dump(by_alias=True, mode="json")
        return payload


class PartialIngestionError(IngestionError):
    """
    Fallo posterior a la inserción: la nota queda persistida sin PDF
    (o con un PDF huérfano). No se hace rollback.
    """

    status_code = 500

    def __init__(self, message: str, record_id: Optional[str] = None, blob_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id
        self.blob_id = blob_id

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.record_id:
            payload["nota"] = {"id": self.record_id, "pdfFileId": None}
        return payload


class RenderFailure(PartialIngestionError):
    pass


class BlobWriteFailure(PartialIngestionError):
    pass


class AttachFailure(PartialIngestionError):
    pass


class NotFound(FiscalDocumentError):
    status_code = 404


class InvalidId(FiscalDocumentError):
    status_code = 400


class StoreUnavailable(FiscalDocumentError):
    status_code = 503
