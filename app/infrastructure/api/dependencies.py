# app/infrastructure/api/dependencies.py
from fastapi import Depends
from sqlalchemy.orm import Session

from app.domain.ports.blob_storage import BlobStorage
from app.domain.ports.fiscal_document_repository import FiscalDocumentRepository
from app.domain.ports.pdf_renderer import PdfRenderer
from app.infrastructure.external.pymupdf_renderer_adapter import PyMuPdfDanfeRenderer
from app.infrastructure.persistence.blob_storage_adapter import SQLAlchemyBlobStorage
from app.infrastructure.persistence.database import SessionLocal, get_db
from app.infrastructure.persistence.fiscal_document_repository_adapter import SQLAlchemyFiscalDocumentRepository


def get_repository(db: Session = Depends(get_db)) -> FiscalDocumentRepository:
    return SQLAlchemyFiscalDocumentRepository(db)


def get_blob_storage() -> BlobStorage:
    # Sesiones propias, independientes de la sesión del request
    return SQLAlchemyBlobStorage(SessionLocal)


def get_pdf_renderer() -> PdfRenderer:
    return PyMuPdfDanfeRenderer()
