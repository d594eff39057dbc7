from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Sequence, Tuple, Type
from urllib.parse import urlparse

from portfolio_api.schema import get_schema_sql


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


class StoreError(RuntimeError):
    """A database driver error (constraint violation, lost connection, ...).

    Raised by `connect()` in place of the engine-specific exception so the API layer
    can map every store failure to the same generic 500 response.
    """


def _detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'."""
    s = (dsn or "").strip()
    if not s:
        return "sqlite"
    try:
        scheme = urlparse(s).scheme.lower()
    except ValueError:
        scheme = ""
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    # Allow sqlite:///path style, but default is file path.
    return "sqlite"


def _qmark_to_pct(sql: str) -> str:
    """Convert SQLite qmark placeholders (?) to psycopg2 placeholders (%s).

    This is a lightweight conversion that avoids replacing '?' inside single/double-quoted
    string literals. Literal '%' characters are doubled so psycopg2 does not treat them as
    placeholders (LIKE patterns are always passed as parameters, never inlined).
    """
    out: List[str] = []
    in_single = False
    in_double = False
    i = 0
    while i < len(sql):
        ch = sql[i]

        if ch == "'" and not in_double:
            out.append(ch)
            if in_single:
                # Escaped single quote: ''
                if i + 1 < len(sql) and sql[i + 1] == "'":
                    out.append("'")
                    i += 2
                    continue
                in_single = False
            else:
                in_single = True
            i += 1
            continue

        if ch == '"' and not in_single:
            out.append(ch)
            if in_double:
                if i + 1 < len(sql) and sql[i + 1] == '"':
                    out.append('"')
                    i += 2
                    continue
                in_double = False
            else:
                in_double = True
            i += 1
            continue

        if ch == "?" and not in_single and not in_double:
            out.append("%s")
            i += 1
            continue

        if ch == "%":
            out.append("%%")
            i += 1
            continue

        out.append(ch)
        i += 1

    return "".join(out)


class PGCursor:
    def __init__(self, cur: Any):
        self._cur = cur

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> "PGCursor":
        self._cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        return self

    def fetchone(self) -> Any:
        return self._cur.fetchone()

    def fetchall(self) -> Any:
        return self._cur.fetchall()

    @property
    def rowcount(self) -> int:
        try:
            return int(self._cur.rowcount or 0)
        except (TypeError, ValueError):
            return 0

    def close(self) -> None:
        self._cur.close()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._cur, name)


class PGConnection:
    """A tiny adapter that makes psycopg2 connections look like sqlite3 connections."""

    dialect = "postgres"

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> PGCursor:
        wrapper = PGCursor(self._conn.cursor())
        wrapper.execute(sql, params)
        return wrapper

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


def _driver_errors() -> Tuple[Type[BaseException], ...]:
    errors: List[Type[BaseException]] = [sqlite3.Error]
    try:
        import psycopg2

        errors.append(psycopg2.Error)
    except ImportError:
        pass
    return tuple(errors)


def dialect_of(conn: Any) -> str:
    return str(getattr(conn, "dialect", "sqlite") or "sqlite").lower()


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """Connect to SQLite or Postgres with sensible defaults.

    - SQLite: uses WAL + NORMAL sync.
    - Postgres: uses psycopg2 (RealDictCursor) so rows behave like dicts.

    The block commits on success and rolls back on any exception. Driver errors are
    re-raised as StoreError.
    """
    dsn = (db_dsn or "").strip()
    dialect = _detect_dialect(dsn)
    driver_errors = _driver_errors()

    if dialect == "postgres":
        try:
            import psycopg2
            import psycopg2.extras
        except ImportError as e:
            raise RuntimeError(
                "Postgres selected but psycopg2 is not installed. "
                "Install psycopg2-binary and try again."
            ) from e

        try:
            # RealDictCursor makes fetchone()/fetchall() rows act like dicts.
            raw = psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor)
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e
        conn: Any = PGConnection(raw)
    else:
        # Support sqlite:///path style
        if dsn.lower().startswith("sqlite:///"):
            dsn = dsn[len("sqlite:///") :]

        Path(dsn).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(dsn, timeout=30, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")  # 5s
            conn.execute("PRAGMA foreign_keys = ON;")
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    try:
        yield conn
        conn.commit()
    except driver_errors as e:
        conn.rollback()
        _debug(f"Store error ({dialect}): {e}")
        raise StoreError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_dsn: str) -> None:
    """Create all tables (idempotent)."""
    dialect = _detect_dialect(db_dsn)
    _debug(f"Initializing DB ({dialect}) at {db_dsn}")
    with connect(db_dsn) as conn:
        schema_sql = get_schema_sql(dialect)
        # Ensure only one process runs schema DDL at a time.
        # - Postgres: use an advisory lock.
        # - SQLite: DDL already takes an exclusive database lock.
        if dialect == "postgres":
            conn.execute("SELECT pg_advisory_lock(2147483646);")
            try:
                _exec_schema(conn, schema_sql, dialect=dialect)
            finally:
                conn.execute("SELECT pg_advisory_unlock(2147483646);")
        else:
            _exec_schema(conn, schema_sql, dialect=dialect)


def _exec_schema(conn: Any, ddl: str, *, dialect: str) -> None:
    if dialect == "postgres":
        # Execute multi-statement DDL (naive split is OK for our schema)
        statements = [s.strip() for s in ddl.split(";") if s.strip()]
        for stmt in statements:
            conn.execute(stmt)
        return

    # SQLite can run it in one go
    conn.executescript(ddl)
