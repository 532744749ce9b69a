# config.py
import os
from dotenv import load_dotenv

load_dotenv()

# --- CONFIGURACIÓN DE LA API ---
APP_TITLE = "API de Notas Fiscales Electrónicas"
APP_DESCRIPTION = "Importación de NF-e en XML, generación de DANFE en PDF y consulta de notas."
APP_VERSION = "1.0.0"

# Orígenes permitidos para el frontend (separados por coma en CORS_ORIGINS)
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- CONFIGURACIÓN DE NF-e ---
# El atributo Id de infNFe viene como "NFe" + 44 dígitos de la chave de acesso
NFE_KEY_PREFIX = "NFe"
# Longitudes máximas aceptadas para número y chave (también definen las columnas)
NFE_NUMBER_MAX_LENGTH = 20
NFE_KEY_MAX_LENGTH = 64

# --- CONFIGURACIÓN DEL ALMACENAMIENTO DE PDFs ---
PDF_BUCKET_NAME = "pdfs"
PDF_CHUNK_SIZE = int(os.getenv("PDF_CHUNK_SIZE", 255 * 1024))
PDF_CONTENT_TYPE = "application/pdf"

# --- PAGINACIÓN ---
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
