from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence
import logging

from sqlalchemy import Connection, create_engine, event, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .errors import StoreError
from .schema import init_db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecuteResult:
    rowcount: int
    lastrowid: int | None = None


class StoreSession:
    """Statements issued inside one store transaction.

    SQL is written with ``?`` placeholders and rewritten for drivers that use
    the ``format``/``pyformat`` paramstyle.
    """

    def __init__(self, connection: Connection, paramstyle: str) -> None:
        self._connection = connection
        self._paramstyle = paramstyle

    def _adapt(self, sql: str) -> str:
        if self._paramstyle in ("format", "pyformat"):
            return sql.replace("?", "%s")
        return sql

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        result = self._connection.exec_driver_sql(self._adapt(sql), tuple(params))
        return [dict(row._mapping) for row in result]

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None

    def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        result = self._connection.exec_driver_sql(self._adapt(sql), tuple(params))
        return ExecuteResult(rowcount=result.rowcount, lastrowid=result.lastrowid)


class SqlStore:
    """Pooled relational store shared by every request.

    Each :meth:`transaction` borrows one pooled connection. SQLite
    transactions start with ``BEGIN IMMEDIATE`` and other back-ends run at
    SERIALIZABLE isolation, so a check followed by a write inside the same
    transaction cannot interleave with another writer.
    """

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self.database_url = database_url
        url = make_url(database_url)
        self._is_sqlite = url.get_backend_name() == "sqlite"

        if self._is_sqlite:
            kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
            if url.database in (None, "", ":memory:"):
                kwargs["poolclass"] = StaticPool
            else:
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(database_url, echo=echo, **kwargs)
            self._install_sqlite_hooks()
        else:
            self.engine = create_engine(
                database_url,
                echo=echo,
                pool_pre_ping=True,
                isolation_level="SERIALIZABLE",
            )

    def _install_sqlite_hooks(self) -> None:
        @event.listens_for(self.engine, "connect")
        def _disable_driver_transactions(dbapi_connection: Any, _connection_record: Any) -> None:
            # let the "begin" hook below emit BEGIN itself
            dbapi_connection.isolation_level = None

        @event.listens_for(self.engine, "begin")
        def _begin_immediate(connection: Connection) -> None:
            connection.exec_driver_sql("BEGIN IMMEDIATE")

    @property
    def paramstyle(self) -> str:
        return self.engine.dialect.paramstyle

    def init_schema(self) -> None:
        try:
            init_db(self.engine)
        except SQLAlchemyError as error:
            logger.exception("Failed to create database schema")
            raise StoreError("Failed to create database schema") from error

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        try:
            with self.engine.begin() as connection:
                yield StoreSession(connection, self.paramstyle)
        except SQLAlchemyError as error:
            logger.exception("Store operation failed")
            raise StoreError("Store operation failed", {"error": type(error).__name__}) from error

    def ping(self) -> bool:
        with self.transaction() as session:
            session.fetch_one("SELECT 1 AS ok")
        return True

    def close(self) -> None:
        self.engine.dispose()
