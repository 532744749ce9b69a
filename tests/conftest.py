"""
Fixtures compartidas: base SQLite por test, repositorio, bucket de PDFs,
un renderer falso y el cliente HTTP con las dependencias sustituidas.
"""
import os

# database.py exige DATABASE_URL al importarse
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.infrastructure.api.dependencies import get_blob_storage, get_pdf_renderer
from app.infrastructure.persistence import models  # noqa: F401
from app.infrastructure.persistence.blob_storage_adapter import SQLAlchemyBlobStorage
from app.infrastructure.persistence.database import Base, build_engine, get_db
from app.infrastructure.persistence.fiscal_document_repository_adapter import SQLAlchemyFiscalDocumentRepository
from nfe_samples import FakeRenderer


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'notas.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repository(db):
    return SQLAlchemyFiscalDocumentRepository(db)


@pytest.fixture
def blob_storage(session_factory):
    # Bloques pequeños para que cada PDF ocupe varios chunks
    return SQLAlchemyBlobStorage(session_factory, chunk_size=16)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def client(session_factory, blob_storage, renderer):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: blob_storage
    app.dependency_overrides[get_pdf_renderer] = lambda: renderer
    yield TestClient(app)
    app.dependency_overrides.clear()
