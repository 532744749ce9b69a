# app/domain/ports/pdf_renderer.py
from abc import ABC, abstractmethod
from typing import BinaryIO


class PdfRenderer(ABC):
    """Puerto para la generación del DANFE a partir del XML de la NF-e."""
    @abstractmethod
    def render(self, xml_text: str) -> BinaryIO:
        """
        Genera el PDF y devuelve un stream binario posicionado al inicio.
        Puede lanzar cualquier excepción si el XML no se puede representar.
        """
        pass
