# app/domain/validation.py
import uuid

from app.domain.exceptions import InvalidId


def validate_document_id(value: str) -> str:
    """Valida que el id tenga formato UUID y lo devuelve normalizado (minúsculas, con guiones)."""
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise InvalidId("ID inválido.") from None
