# app/application/services/duplicate_guard.py
import logging

from app.domain.exceptions import DuplicateDocument
from app.domain.ports.fiscal_document_repository import FiscalDocumentRepository

logger = logging.getLogger(__name__)


class DuplicateGuard:
    """
    Verificación previa de duplicados por número y por chave. Es solo
    consultiva: la garantía real son las restricciones únicas de la tabla.
    """
    def __init__(self, repository: FiscalDocumentRepository):
        self.repository = repository

    def check(self, number: str, document_key: str) -> None:
        # El número se verifica primero: si ambos chocan, se informa el número
        existing = self.repository.find_summary_by_number(number)
        if existing:
            logger.info(f"NF-e {number} rechazada: número ya importado (id={existing.id}).")
            raise DuplicateDocument(f"NF-e con número {number} ya fue importada.", field="numero", existing=existing)

        existing = self.repository.find_summary_by_key(document_key)
        if existing:
            logger.info(f"NF-e {number} rechazada: chave {document_key} ya importada (id={existing.id}).")
            raise DuplicateDocument(f"NF-e con chave {document_key} ya fue importada.", field="chaveNFe", existing=existing)
