"""Database helpers for the catalog indexer."""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy import event, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import CompileError
from sqlalchemy.sql import Insert
from sqlmodel import Session, SQLModel, create_engine

from . import models  # noqa: F401  - registers the tables on SQLModel.metadata
from .models import MovieRecord, ShowRecord
from .schemas import CatalogStatistics
from .settings import IndexerSettings

SUPPORTED_BACKENDS = ("postgresql", "sqlite")


def _ensure_sqlite_path(database_url: str) -> None:
    """Create parent directories when using a SQLite URL."""

    if database_url.startswith("sqlite:///"):
        path_part = database_url.removeprefix("sqlite:///").split("?")[0]
        if path_part and path_part != ":memory:":
            db_path = Path(path_part)
            db_path.parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_from_settings(settings: IndexerSettings) -> Engine:
    """Create a SQLModel engine using indexer settings.

    Only backends that support conflict-skipping inserts are accepted.
    """

    backend = make_url(settings.database_url).get_backend_name()
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"Unsupported database backend {backend!r}; expected one of {', '.join(SUPPORTED_BACKENDS)}"
        )
    _ensure_sqlite_path(settings.database_url)
    is_sqlite = settings.database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(
        settings.database_url,
        echo=settings.database_echo,
        connect_args=connect_args,
        pool_pre_ping=not is_sqlite,
    )
    if is_sqlite:
        # SQLite ignores ON DELETE CASCADE unless asked per connection.
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_database(engine: Engine) -> None:
    """Create any missing catalog tables."""

    SQLModel.metadata.create_all(engine)


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Yield a SQLModel session that commits on success and rolls back on error."""

    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def insert_ignoring_conflicts(session: Session, model: type[SQLModel], rows: list[dict[str, Any]]) -> None:
    """Insert ``rows`` into ``model``'s table, skipping primary-key collisions."""

    if not rows:
        return
    dialect = session.get_bind().dialect.name
    statement: Insert
    if dialect == "postgresql":
        statement = postgresql.insert(model.__table__).on_conflict_do_nothing()
    elif dialect == "sqlite":
        statement = sqlite.insert(model.__table__).on_conflict_do_nothing()
    else:
        raise CompileError(f"Conflict-skip inserts are not supported on {dialect}")
    session.execute(statement, rows)


def read_statistics(engine: Engine) -> CatalogStatistics:
    """Count the movies and shows currently in the catalog."""

    with Session(engine) as session:
        movies = session.execute(select(func.count()).select_from(MovieRecord)).scalar_one()
        shows = session.execute(select(func.count()).select_from(ShowRecord)).scalar_one()
    return CatalogStatistics(movies=movies, shows=shows)
