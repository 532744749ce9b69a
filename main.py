# main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from app.domain.exceptions import FiscalDocumentError, StoreUnavailable
# Importamos los routers de la capa de infraestructura
from app.infrastructure.api.routers import fiscal_documents_router
from app.infrastructure.persistence.database import connection_monitor, engine, init_db

logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s - %(levelname)s - [%(funcName)s] - %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Servidor iniciado.")
    yield
    engine.dispose()
    logger.info("Conexiones con la base de datos cerradas.")


app = FastAPI(
    title=config.APP_TITLE,
    description=config.APP_DESCRIPTION,
    version=config.APP_VERSION,
    lifespan=lifespan,
)

# Configuración de CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)


@app.exception_handler(FiscalDocumentError)
async def fiscal_document_error_handler(request: Request, exc: FiscalDocumentError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))


@app.exception_handler(OperationalError)
async def store_unavailable_handler(request: Request, exc: OperationalError):
    logger.error(f"Base de datos no disponible: {exc}")
    connection_monitor.mark(connection_monitor.DISCONNECTED)
    error = StoreUnavailable("Base de datos no disponible.")
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Error de base de datos en {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Error interno del servidor."})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Ruta no encontrada." if exc.status_code == 404 else exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=getattr(exc, "headers", None))


app.include_router(fiscal_documents_router.router)


@app.get("/health", tags=["Health Check"])
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": connection_monitor.check(engine),
    }
