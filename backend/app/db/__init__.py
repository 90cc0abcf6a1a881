import importlib
import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from app.config import settings

log = logging.getLogger("db")

DATABASE_URL = settings.DATABASE_URL
engine = create_engine(DATABASE_URL, future=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

if engine.dialect.name == "sqlite":
    # pysqlite defers BEGIN until the first DML statement, which breaks
    # SAVEPOINT handling. Take over transaction control explicitly.
    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")


# every module that declares tables must be listed here so metadata is complete
MODEL_MODULES = [
    "app.models.tenant",
    "app.models.product",
    "app.models.category",
    "app.models.attribute",
    "app.models.warehouse_stock",
    "app.models.import_run",
]


def init_db(reset: bool = False):
    """
    Initialize DB schema.

    Tables are dropped and recreated when `reset` is true or the RESET_DB
    env var is set to 1/true/yes. Otherwise existing tables are left in place.
    """
    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset or env_reset:
        log.info("Resetting database schema")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.debug("Database initialized (%s tables)", len(Base.metadata.tables))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
