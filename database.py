import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base


DATABASE_URL = os.environ.get("STOREFRONT_DATABASE_URL", "sqlite:///storefront.db")


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every pooled connection sees its own empty database.
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = scoped_session(sessionmaker(bind=engine))


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


if engine.dialect.name == "sqlite":

    @event.listens_for(engine, "connect")
    def _register_sqlite_functions(dbapi_connection, connection_record):
        # Built-in lower() only folds ASCII; search compares against Python str.lower().
        dbapi_connection.create_function("lower", 1, _unicode_lower)


def ensure_column(table: str, column: str, ddl: str):
    """Add a column to the SQLite table if it is missing."""
    if engine.dialect.name != "sqlite":
        return
    with engine.begin() as connection:
        result = connection.exec_driver_sql(f'PRAGMA table_info("{table}")')
        columns = {row[1] for row in result.fetchall()}
        if column not in columns:
            connection.exec_driver_sql(f'ALTER TABLE "{table}" ADD COLUMN {column} {ddl}')


def init_db():
    """Create tables and backfill the derived search columns on older databases."""
    Base.metadata.create_all(bind=engine)
    ensure_column("products", "search_keywords", "TEXT DEFAULT ''")
    ensure_column("products", "name_ngrams", "TEXT DEFAULT ''")
    ensure_column("products", "name_phonetic", "TEXT DEFAULT ''")
    ensure_column("products", "name_phonetic_initials", "VARCHAR(255) DEFAULT ''")
    ensure_column("products", "search_tokens", "TEXT DEFAULT ''")
    ensure_column("users", "shop_name", "VARCHAR(255)")
    ensure_column("users", "shop_description", "TEXT")
    ensure_column("users", "is_admin", "BOOLEAN DEFAULT 0")


def drop_db():
    Base.metadata.drop_all(bind=engine)
