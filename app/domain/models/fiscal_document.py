# app/domain/models/fiscal_document.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional
from datetime import datetime


class _AliasedModel(BaseModel):
    # Los nombres en JSON siguen el contrato de la API (portugués); en Python usamos inglés.
    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
    )


class Address(_AliasedModel):
    """Dirección de emisor o destinatario. Los campos ausentes en el XML quedan en None."""
    street: Optional[str] = Field(default=None, alias="logradouro")
    number: Optional[str] = Field(default=None, alias="numero")
    district: Optional[str] = Field(default=None, alias="bairro")
    city: Optional[str] = Field(default=None, alias="municipio")
    region: Optional[str] = Field(default=None, alias="uf")
    postal_code: Optional[str] = Field(default=None, alias="cep")


class Sender(_AliasedModel):
    name: Optional[str] = Field(default=None, alias="nome")
    tax_id: Optional[str] = Field(default=None, alias="cnpj")
    address: Address = Field(default_factory=Address, alias="endereco")


class Recipient(_AliasedModel):
    name: Optional[str] = Field(default=None, alias="nome")
    tax_id: Optional[str] = Field(default=None, alias="cnpj")
    # Solo se llena cuando el destinatario es persona física (CPF en lugar de CNPJ)
    national_id: Optional[str] = Field(default=None, alias="cpf")
    address: Address = Field(default_factory=Address, alias="endereco")


class FiscalDocument(_AliasedModel):
    """
    Representa una NF-e normalizada. Antes de persistirse no tiene id,
    pdf_file_id ni created_at; el repositorio los completa.
    """
    id: Optional[str] = None
    number: str = Field(alias="numero")
    document_key: str = Field(alias="chaveNFe")
    issue_date: Optional[str] = Field(default=None, alias="dataEmissao")
    sender: Sender = Field(default_factory=Sender, alias="remetente")
    recipient: Recipient = Field(default_factory=Recipient, alias="destinatario")
    carrier: Optional[Dict[str, Any]] = Field(default=None, alias="transportadora")
    items: List[Any] = Field(default_factory=list, alias="produtos")
    total_value: float = Field(alias="valorTotal")
    raw_xml: str = Field(alias="xmlTexto")
    pdf_file_id: Optional[str] = Field(default=None, alias="pdfFileId")
    created_at: Optional[datetime] = Field(default=None, alias="criadoEm")


class DocumentSummary(_AliasedModel):
    """Resumen que se devuelve al detectar un duplicado o al eliminar."""
    id: str
    number: str = Field(alias="numero")
    document_key: str = Field(alias="chaveNFe")
    created_at: Optional[datetime] = Field(default=None, alias="criadoEm")


class PartyName(_AliasedModel):
    name: Optional[str] = Field(default=None, alias="nome")


class DocumentListItem(_AliasedModel):
    """Proyección usada en el listado. pdf_file_id en None indica nota sin PDF."""
    id: str
    number: str = Field(alias="numero")
    document_key: str = Field(alias="chaveNFe")
    issue_date: Optional[str] = Field(default=None, alias="dataEmissao")
    sender: PartyName = Field(default_factory=PartyName, alias="remetente")
    recipient: PartyName = Field(default_factory=PartyName, alias="destinatario")
    total_value: float = Field(alias="valorTotal")
    created_at: Optional[datetime] = Field(default=None, alias="criadoEm")
    pdf_file_id: Optional[str] = Field(default=None, alias="pdfFileId")


class SearchFilters(BaseModel):
    number: Optional[str] = None
    search: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None


class Pagination(_AliasedModel):
    current_page: int = Field(alias="currentPage")
    total_pages: int = Field(alias="totalPages")
    total_items: int = Field(alias="totalItems")
    items_per_page: int = Field(alias="itemsPerPage")


class DocumentPage(_AliasedModel):
    records: List[DocumentListItem]
    pagination: Pagination
