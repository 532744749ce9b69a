from datetime import datetime, timedelta

import pytest

from app.application.use_cases.search_fiscal_documents import GetFiscalDocumentUseCase, SearchFiscalDocumentsUseCase
from app.domain.exceptions import InvalidId, NotFound
from nfe_samples import make_record

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def _seed(repository, count):
    for i in range(1, count + 1):
        repository.add(make_record(str(i), total=float(i * 10), created_at=BASE_TIME + timedelta(minutes=i)))


def test_second_page_of_fifteen_has_five_items(repository):
    _seed(repository, 15)

    page = SearchFiscalDocumentsUseCase(repository).execute(page=2, limit=10)

    assert len(page.records) == 5
    assert page.pagination.current_page == 2
    assert page.pagination.total_pages == 2
    assert page.pagination.total_items == 15
    assert page.pagination.items_per_page == 10


def test_results_are_sorted_by_creation_date_descending(repository):
    _seed(repository, 3)

    page = SearchFiscalDocumentsUseCase(repository).execute()

    assert [r.number for r in page.records] == ["3", "2", "1"]


def test_exact_number_filter(repository):
    _seed(repository, 12)

    page = SearchFiscalDocumentsUseCase(repository).execute(number="1")

    assert [r.number for r in page.records] == ["1"]


def test_search_is_case_insensitive_across_sender_recipient_and_number(repository):
    repository.add(make_record("100", sender_name="Metalúrgica Paulista", recipient_name="Loja A"))
    repository.add(make_record("200", sender_name="Padaria", recipient_name="PAULISTANA Comércio"))
    repository.add(make_record("300", sender_name="Outro", recipient_name="Cliente"))
    repository.add(make_record("4100", sender_name="Outro", recipient_name="Cliente"))

    by_name = SearchFiscalDocumentsUseCase(repository).execute(search="paulista")
    by_number = SearchFiscalDocumentsUseCase(repository).execute(search="100")

    assert sorted(r.number for r in by_name.records) == ["100", "200"]
    assert sorted(r.number for r in by_number.records) == ["100", "4100"]


def test_like_wildcards_in_search_are_literal(repository):
    repository.add(make_record("1", sender_name="Empresa 100% Nacional"))
    repository.add(make_record("2", sender_name="Empresa Qualquer"))

    page = SearchFiscalDocumentsUseCase(repository).execute(search="100%")
    underscore = SearchFiscalDocumentsUseCase(repository).execute(search="_")

    assert [r.number for r in page.records] == ["1"]
    assert underscore.records == []


def test_value_range_is_inclusive_and_bounds_are_independent(repository):
    _seed(repository, 5)  # totales 10..50

    both = SearchFiscalDocumentsUseCase(repository).execute(min_value=20, max_value=40)
    only_min = SearchFiscalDocumentsUseCase(repository).execute(min_value=40)
    only_max = SearchFiscalDocumentsUseCase(repository).execute(max_value=10)

    assert sorted(r.total_value for r in both.records) == [20.0, 30.0, 40.0]
    assert sorted(r.total_value for r in only_min.records) == [40.0, 50.0]
    assert [r.total_value for r in only_max.records] == [10.0]


def test_list_items_expose_names_and_missing_pdf(repository):
    repository.add(make_record("1", sender_name="Emissor", recipient_name="Destino"))

    item = SearchFiscalDocumentsUseCase(repository).execute().records[0]
    data = item.model_dump(by_alias=True)

    assert data["remetente"] == {"nome": "Emissor"}
    assert data["destinatario"] == {"nome": "Destino"}
    assert data["pdfFileId"] is None


def test_empty_result_has_zero_pages(repository):
    page = SearchFiscalDocumentsUseCase(repository).execute(search="nada")

    assert page.records == []
    assert page.pagination.total_pages == 0
    assert page.pagination.total_items == 0


def test_get_document_by_id(repository):
    stored = repository.add(make_record("1"))

    found = GetFiscalDocumentUseCase(repository).execute(stored.id.upper())

    assert found.id == stored.id
    assert found.items == [{"cProd": "001", "xProd": "Produto"}]


def test_get_document_invalid_or_unknown_id(repository):
    with pytest.raises(InvalidId):
        GetFiscalDocumentUseCase(repository).execute("no-es-un-id")
    with pytest.raises(NotFound):
        GetFiscalDocumentUseCase(repository).execute("9b2f3c1e-0000-4000-8000-000000000000")
