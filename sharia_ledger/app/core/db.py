from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlmodel import Session, SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .config import get_settings
from .errors import ConflictError, LedgerError, StoreUnavailableError


def _serialize_sqlite_writers(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write, which lets two sessions
    # read the same balance before either locks it. Take the write lock up
    # front so balance read-modify-write cycles run one at a time.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for_url(database_url: str) -> Engine:
    connect_args: dict[str, Any] = {}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        connect_args = {
            "check_same_thread": False,
            "timeout": get_settings().sqlite_busy_timeout,
        }
    new_engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if is_sqlite:
        _serialize_sqlite_writers(new_engine)
    return new_engine


settings = get_settings()
engine = create_engine_for_url(settings.database_url)


def init_db() -> None:
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def get_engine() -> Engine:
    return engine


def set_engine(new_engine: Engine) -> None:
    global engine
    engine = new_engine


def _store_error(exc: DBAPIError) -> LedgerError:
    if isinstance(exc, IntegrityError):
        return ConflictError("Write conflicts with an existing record")
    return StoreUnavailableError("Ledger store is unavailable")


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run a block as one unit of work: commit on success, roll back on error.

    Uniqueness violations surface as ``ConflictError``; any other database
    failure surfaces as ``StoreUnavailableError`` so business-rule failures
    stay distinguishable from an unavailable store.
    """
    try:
        yield session
        session.commit()
    except DBAPIError as exc:
        session.rollback()
        raise _store_error(exc) from exc
    except Exception:
        session.rollback()
        raise


@contextmanager
def read_only(session: Session) -> Iterator[Session]:
    """Run lookups with the same error mapping as ``atomic``.

    The transaction the reads opened is always ended afterwards, so a lookup
    never keeps holding SQLite's write lock.
    """
    try:
        yield session
    except DBAPIError as exc:
        raise _store_error(exc) from exc
    finally:
        session.rollback()
