# app/application/use_cases/search_fiscal_documents.py
import math
from typing import Optional

import config
from app.domain.exceptions import NotFound
from app.domain.models.fiscal_document import DocumentPage, FiscalDocument, Pagination, SearchFilters
from app.domain.ports.fiscal_document_repository import FiscalDocumentRepository
from app.domain.validation import validate_document_id


class SearchFiscalDocumentsUseCase:
    def __init__(self, repository: FiscalDocumentRepository):
        self.repository = repository

    def execute(
        self,
        search: Optional[str] = None,
        number: Optional[str] = None,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        page: int = 1,
        limit: int = config.DEFAULT_PAGE_SIZE,
    ) -> DocumentPage:
        """
        Lista notas ordenadas por fecha de creación (más recientes primero).
        `search` busca sin distinguir mayúsculas en emisor, destinatario y número.
        """
        filters = SearchFilters(
            number=number or None,
            search=search or None,
            min_value=min_value,
            max_value=max_value,
        )
        records, total = self.repository.search(filters, offset=(page - 1) * limit, limit=limit)

        return DocumentPage(
            records=records,
            pagination=Pagination(
                current_page=page,
                total_pages=math.ceil(total / limit),
                total_items=total,
                items_per_page=limit,
            ),
        )


class GetFiscalDocumentUseCase:
    def __init__(self, repository: FiscalDocumentRepository):
        self.repository = repository

    def execute(self, document_id: str) -> FiscalDocument:
        document_id = validate_document_id(document_id)
        document = self.repository.find_by_id(document_id)
        if document is None:
            raise NotFound("Nota no encontrada.")
        return document
