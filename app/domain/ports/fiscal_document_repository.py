# app/domain/ports/fiscal_document_repository.py
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from app.domain.models.fiscal_document import (
    DocumentListItem,
    DocumentSummary,
    FiscalDocument,
    SearchFilters,
)


class FiscalDocumentRepository(ABC):
    """
    Contrato del almacén de notas fiscales. `numero` y `chaveNFe` tienen
    restricción de unicidad a nivel de base de datos.
    """

    @abstractmethod
    def find_by_id(self, document_id: str) -> Optional[FiscalDocument]:
        """Busca una nota por su ID."""
        pass

    @abstractmethod
    def find_summary_by_number(self, number: str) -> Optional[DocumentSummary]:
        pass

    @abstractmethod
    def find_summary_by_key(self, document_key: str) -> Optional[DocumentSummary]:
        pass

    @abstractmethod
    def add(self, document: FiscalDocument) -> FiscalDocument:
        """
        Inserta la nota (sin PDF) y la confirma. Devuelve la nota con id y
        created_at. Lanza DuplicateDocument si se viola una restricción única.
        """
        pass

    @abstractmethod
    def attach_pdf(self, document_id: str, blob_id: str) -> FiscalDocument:
        """Asocia el PDF generado a una nota ya persistida."""
        pass

    @abstractmethod
    def search(self, filters: SearchFilters, offset: int, limit: int) -> Tuple[List[DocumentListItem], int]:
        """Devuelve la página pedida (ordenada por created_at desc) y el total de coincidencias."""
        pass

    @abstractmethod
    def delete(self, document_id: str) -> Optional[FiscalDocument]:
        """Elimina la nota y la devuelve, o None si no existía."""
        pass

    @abstractmethod
    def delete_all(self) -> int:
        pass
