import pytest
from sqlalchemy.exc import OperationalError

from app.application.use_cases.ingest_fiscal_document import IngestFiscalDocumentUseCase, IngestionState
from app.application.use_cases.search_fiscal_documents import SearchFiscalDocumentsUseCase
from app.domain.exceptions import (
    AttachFailure,
    DuplicateDocument,
    InvalidAmount,
    MalformedDocument,
    MissingIdentity,
    RenderFailure,
)
from app.infrastructure.persistence.fiscal_document_repository_adapter import SQLAlchemyFiscalDocumentRepository
from app.infrastructure.persistence.models import NotaFiscal, PdfFile
from nfe_samples import FAKE_PDF, SCENARIO_KEY, build_nfe_xml, make_key, read_blob


class _StoreDownRepository(SQLAlchemyFiscalDocumentRepository):
    def find_summary_by_number(self, number):
        raise OperationalError("SELECT notas_fiscales", {}, Exception("connection refused"))


class _AttachFailsRepository(SQLAlchemyFiscalDocumentRepository):
    def attach_pdf(self, document_id, blob_id):
        raise RuntimeError("conexión perdida")


def _use_case(repository, blob_storage, renderer):
    return IngestFiscalDocumentUseCase(repository=repository, blob_storage=blob_storage, renderer=renderer)


def test_ingest_persists_record_and_attaches_pdf(repository, blob_storage, renderer):
    use_case = _use_case(repository, blob_storage, renderer)

    record = use_case.execute(build_nfe_xml(number="123", total="150.50"))

    assert use_case.state == IngestionState.DONE
    assert record.id
    assert record.number == "123"
    assert record.document_key == SCENARIO_KEY
    assert record.total_value == pytest.approx(150.50)
    assert record.created_at is not None
    assert record.pdf_file_id
    assert read_blob(blob_storage, record.pdf_file_id) == FAKE_PDF
    assert repository.find_by_id(record.id).pdf_file_id == record.pdf_file_id


def test_same_key_twice_is_duplicate_regardless_of_number(repository, blob_storage, renderer, db):
    use_case = _use_case(repository, blob_storage, renderer)
    first = use_case.execute(build_nfe_xml(number="123"))

    with pytest.raises(DuplicateDocument) as exc_info:
        use_case.execute(build_nfe_xml(number="999"))

    assert exc_info.value.field == "chaveNFe"
    assert exc_info.value.existing.id == first.id
    assert exc_info.value.failed_at == IngestionState.KEYS_EXTRACTED.value
    assert use_case.state == IngestionState.FAILED
    assert db.query(NotaFiscal).count() == 1
    assert len(renderer.calls) == 1


def test_same_number_twice_is_duplicate_even_with_new_key(repository, blob_storage, renderer, db):
    use_case = _use_case(repository, blob_storage, renderer)
    use_case.execute(build_nfe_xml(number="123", key=make_key(1)))

    with pytest.raises(DuplicateDocument) as exc_info:
        use_case.execute(build_nfe_xml(number="123", key=make_key(2)))

    assert exc_info.value.field == "numero"
    assert db.query(NotaFiscal).count() == 1


@pytest.mark.parametrize("xml, error, failed_at", [
    ("<nfeProc><NFe/></nfeProc>", MalformedDocument, IngestionState.RECEIVED),
    (build_nfe_xml(number=""), MissingIdentity, IngestionState.PARSED),
    (build_nfe_xml(total="abc"), InvalidAmount, IngestionState.DUPLICATE_CHECKED),
])
def test_failures_before_insert_write_nothing(repository, blob_storage, renderer, db, xml, error, failed_at):
    with pytest.raises(error) as exc_info:
        _use_case(repository, blob_storage, renderer).execute(xml)

    assert exc_info.value.failed_at == failed_at.value
    assert db.query(NotaFiscal).count() == 0
    assert db.query(PdfFile).count() == 0
    assert renderer.calls == []


def test_unique_constraint_is_the_backstop_when_precheck_is_stale(repository, blob_storage, renderer, db, monkeypatch):
    use_case = _use_case(repository, blob_storage, renderer)
    first = use_case.execute(build_nfe_xml(number="123"))
    # Otra importación concurrente pasó la verificación antes de que existiera la primera
    monkeypatch.setattr(use_case.duplicate_guard, "check", lambda number, key: None)

    with pytest.raises(DuplicateDocument) as exc_info:
        use_case.execute(build_nfe_xml(number="999"))

    assert exc_info.value.failed_at == IngestionState.NORMALIZED.value
    assert exc_info.value.field == "chaveNFe"
    assert exc_info.value.existing.id == first.id
    assert db.query(NotaFiscal).count() == 1


def test_render_failure_keeps_record_without_pdf(repository, blob_storage, renderer, db):
    renderer.error = RuntimeError("fuente no disponible")

    with pytest.raises(RenderFailure) as exc_info:
        _use_case(repository, blob_storage, renderer).execute(build_nfe_xml(number="123"))

    error = exc_info.value
    assert error.failed_at == IngestionState.PERSISTED.value
    assert error.record_id
    stored = repository.find_by_id(error.record_id)
    assert stored is not None
    assert stored.pdf_file_id is None
    assert db.query(PdfFile).count() == 0

    page = SearchFiscalDocumentsUseCase(repository).execute()
    assert page.records[0].id == error.record_id
    assert page.records[0].pdf_file_id is None


def test_attach_failure_leaves_orphan_blob(db, blob_storage, renderer):
    repository = _AttachFailsRepository(db)

    with pytest.raises(AttachFailure) as exc_info:
        _use_case(repository, blob_storage, renderer).execute(build_nfe_xml(number="123"))

    error = exc_info.value
    assert error.failed_at == IngestionState.RENDERED.value
    assert repository.find_by_id(error.record_id).pdf_file_id is None
    assert read_blob(blob_storage, error.blob_id) == FAKE_PDF


def test_attach_refuses_to_replace_existing_pdf(repository, blob_storage, renderer):
    record = _use_case(repository, blob_storage, renderer).execute(build_nfe_xml(number="123"))

    with pytest.raises(ValueError):
        repository.attach_pdf(record.id, "otro-blob")

    assert repository.find_by_id(record.id).pdf_file_id == record.pdf_file_id


def test_store_error_moves_pipeline_to_failed(db, blob_storage, renderer, caplog):
    use_case = _use_case(_StoreDownRepository(db), blob_storage, renderer)

    with pytest.raises(OperationalError):
        use_case.execute(build_nfe_xml(number="123"))

    assert use_case.state == IngestionState.FAILED
    assert "Error inesperado en KeysExtracted" in caplog.text
    assert db.query(NotaFiscal).count() == 0
    assert renderer.calls == []
