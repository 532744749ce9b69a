# app/infrastructure/api/routers/fiscal_documents_router.py
from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool
from typing import BinaryIO, Iterator, Optional

import config
from app.application.use_cases.delete_fiscal_documents import DeleteAllFiscalDocumentsUseCase, DeleteFiscalDocumentUseCase
from app.application.use_cases.fiscal_document_pdf import GetFiscalDocumentPdfUseCase, PreviewPdfUseCase
from app.application.use_cases.ingest_fiscal_document import IngestFiscalDocumentUseCase
from app.application.use_cases.search_fiscal_documents import GetFiscalDocumentUseCase, SearchFiscalDocumentsUseCase
from app.domain.exceptions import MalformedDocument
from app.domain.models.fiscal_document import DocumentPage, FiscalDocument
from app.domain.ports.blob_storage import BlobStorage
from app.domain.ports.fiscal_document_repository import FiscalDocumentRepository
from app.domain.ports.pdf_renderer import PdfRenderer
from app.infrastructure.api.dependencies import get_blob_storage, get_pdf_renderer, get_repository
from app.infrastructure.external.xml_parser_adapter import decode_xml_bytes

router = APIRouter(prefix="/documents", tags=["Notas Fiscales"])


def _iter_stream(stream: BinaryIO, chunk_size: int = config.PDF_CHUNK_SIZE) -> Iterator[bytes]:
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


@router.post("", status_code=201, summary="Importar una NF-e desde su XML")
def create_document(
    xml: Optional[UploadFile] = File(None, description="Archivo XML de la NF-e (nfeProc)."),
    repository: FiscalDocumentRepository = Depends(get_repository),
    blob_storage: BlobStorage = Depends(get_blob_storage),
    renderer: PdfRenderer = Depends(get_pdf_renderer),
):
    """
    Verifica duplicados por número y por chave, guarda la nota, genera el
    DANFE y lo asocia a la nota.
    """
    if xml is None:
        raise MalformedDocument("Archivo XML es obligatorio.")

    xml_text = decode_xml_bytes(xml.file.read())
    use_case = IngestFiscalDocumentUseCase(repository=repository, blob_storage=blob_storage, renderer=renderer)
    document = use_case.execute(xml_text)

    return {
        "message": "NF-e importada con éxito.",
        "nota": {
            "id": document.id,
            "numero": document.number,
            "chaveNFe": document.document_key,
            "valorTotal": document.total_value,
            "remetente": document.sender.name,
            "destinatario": document.recipient.name,
            "criadoEm": document.created_at,
            "pdfFileId": document.pdf_file_id,
        },
    }


@router.get("", response_model=DocumentPage, summary="Listar notas con búsqueda y paginación")
def list_documents(
    search: Optional[str] = Query(None, description="Texto a buscar en emisor, destinatario o número."),
    number: Optional[str] = Query(None, description="Número exacto de la NF-e."),
    min_value: Optional[float] = Query(None, alias="minValue"),
    max_value: Optional[float] = Query(None, alias="maxValue"),
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    repository: FiscalDocumentRepository = Depends(get_repository),
):
    return SearchFiscalDocumentsUseCase(repository).execute(
        search=search,
        number=number,
        min_value=min_value,
        max_value=max_value,
        page=page,
        limit=limit,
    )


@router.post("/preview-pdf", summary="Generar el DANFE de un XML sin guardarlo")
async def preview_pdf(request: Request, renderer: PdfRenderer = Depends(get_pdf_renderer)):
    body = await request.body()
    xml_text = decode_xml_bytes(body)
    pdf_stream = await run_in_threadpool(PreviewPdfUseCase(renderer).execute, xml_text)

    return StreamingResponse(
        _iter_stream(pdf_stream),
        media_type=config.PDF_CONTENT_TYPE,
        headers={
            "Content-Disposition": 'inline; filename="preview-nfe.pdf"',
            "Cache-Control": "no-cache",
        },
    )


@router.get("/{document_id}", response_model=FiscalDocument, summary="Obtener una nota por ID")
def get_document(document_id: str, repository: FiscalDocumentRepository = Depends(get_repository)):
    return GetFiscalDocumentUseCase(repository).execute(document_id)


@router.get("/{document_id}/pdf", summary="Ver o descargar el DANFE de una nota")
def get_document_pdf(
    document_id: str,
    download: bool = Query(False, description="true para forzar la descarga."),
    repository: FiscalDocumentRepository = Depends(get_repository),
    blob_storage: BlobStorage = Depends(get_blob_storage),
):
    document, chunks = GetFiscalDocumentPdfUseCase(repository, blob_storage).execute(document_id)
    disposition = "attachment" if download else "inline"

    return StreamingResponse(
        chunks,
        media_type=config.PDF_CONTENT_TYPE,
        headers={
            "Content-Disposition": f'{disposition}; filename="NFE-{document.number}.pdf"',
            "Cache-Control": "private, max-age=3600",
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.delete("/{document_id}", summary="Eliminar una nota y su PDF")
def delete_document(
    document_id: str,
    repository: FiscalDocumentRepository = Depends(get_repository),
    blob_storage: BlobStorage = Depends(get_blob_storage),
):
    summary = DeleteFiscalDocumentUseCase(repository, blob_storage).execute(document_id)
    return {
        "message": f"Nota {summary.number} eliminada con éxito.",
        "notaExcluida": summary.model_dump(by_alias=True, mode="json"),
    }


@router.delete("", summary="Eliminar todas las notas y PDFs")
def delete_all_documents(
    repository: FiscalDocumentRepository = Depends(get_repository),
    blob_storage: BlobStorage = Depends(get_blob_storage),
):
    result = DeleteAllFiscalDocumentsUseCase(repository, blob_storage).execute()
    return {
        "message": "Todas las notas y PDFs fueron eliminados.",
        "notasEliminadas": result["documents"],
        "pdfsEliminados": result["blobs"],
    }
