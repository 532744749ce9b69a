# app/infrastructure/persistence/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Index, Integer, JSON, LargeBinary, String, Text

import config
from .database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotaFiscal(Base):
    __tablename__ = "notas_fiscales"

    id = Column(String(36), primary_key=True, default=_new_id)
    numero = Column(String(config.NFE_NUMBER_MAX_LENGTH), nullable=False, unique=True)
    chave_nfe = Column(String(config.NFE_KEY_MAX_LENGTH), nullable=False, unique=True)
    fecha_emision = Column(String)

    # Copia de los nombres para la búsqueda; el objeto completo va en JSON
    remitente_nombre = Column(String, index=True)
    destinatario_nombre = Column(String, index=True)
    remitente = Column(JSON, nullable=False)
    destinatario = Column(JSON, nullable=False)
    transportadora = Column(JSON, nullable=True)
    productos = Column(JSON, nullable=False)

    valor_total = Column(Float, nullable=False, index=True)
    xml_texto = Column(Text, nullable=False)
    pdf_file_id = Column(String(36), nullable=True)
    creado_en = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)


class PdfFile(Base):
    """Metadatos de un PDF guardado por bloques (similar a GridFS: <bucket>.files)."""
    __tablename__ = f"{config.PDF_BUCKET_NAME}_files"

    id = Column(String(36), primary_key=True, default=_new_id)
    filename = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False, default=config.PDF_CONTENT_TYPE)
    length = Column(Integer, nullable=False, default=0)
    chunk_size = Column(Integer, nullable=False)
    upload_date = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PdfChunk(Base):
    __tablename__ = f"{config.PDF_BUCKET_NAME}_chunks"
    __table_args__ = (Index("ix_pdfs_chunks_file_n", "file_id", "n", unique=True),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Sin FK: los bloques se escriben antes que el registro del archivo, como en GridFS
    file_id = Column(String(36), nullable=False)
    n = Column(Integer, nullable=False)
    data = Column(LargeBinary, nullable=False)
