# app/infrastructure/persistence/database.py
import os
import logging
import threading
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Leemos la URL de la base de datos desde el archivo .env
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("No se ha definido DATABASE_URL en el archivo .env")


def build_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # FastAPI atiende los endpoints síncronos desde un threadpool
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class ConnectionMonitor:
    """
    Estado observable de la conexión con la base (connected/disconnected).
    Cada transición se registra en el log.
    """
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"

    def __init__(self):
        self._state = self.DISCONNECTED
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state

    def mark(self, state: str) -> None:
        with self._lock:
            if state == self._state:
                return
            self._state = state
        if state == self.CONNECTED:
            logger.info("Base de datos conectada.")
        else:
            logger.error("Base de datos desconectada.")

    def check(self, bind: Engine) -> str:
        try:
            with bind.connect() as connection:
                connection.execute(text("SELECT 1"))
            self.mark(self.CONNECTED)
        except OperationalError as e:
            logger.error(f"Error de conexión con la base de datos: {e}")
            self.mark(self.DISCONNECTED)
        return self.state


connection_monitor = ConnectionMonitor()


def init_db(bind: Engine = engine) -> None:
    """Crea las tablas si no existen y actualiza el estado de conexión."""
    from . import models  # noqa: F401  registra los modelos en Base.metadata

    Base.metadata.create_all(bind=bind)
    connection_monitor.check(bind)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
