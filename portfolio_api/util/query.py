"""Helpers for building list queries: search, sort whitelists and pagination.

All helpers emit qmark (?) SQL; `db.PGConnection` rewrites placeholders for Postgres.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Mapping, Optional, Sequence, Tuple


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_clause(columns: Sequence[str], term: Optional[str]) -> Tuple[Optional[str], List[Any]]:
    """Case-insensitive substring match across `columns` (OR-ed together)."""
    t = (term or "").strip().lower()
    if not t or not columns:
        return None, []
    pattern = f"%{escape_like(t)}%"
    parts = [f"LOWER({c}) LIKE ? ESCAPE '\\'" for c in columns]
    return "(" + " OR ".join(parts) + ")", [pattern] * len(columns)


def order_by_sql(
    sort_by: str,
    sort_order: str,
    *,
    columns: Mapping[str, str],
    pk: str,
    secondary: Sequence[Tuple[str, str]] = (),
    nullable: Collection[str] = (),
) -> str:
    """Build an ORDER BY clause from a whitelisted public sort key.

    `columns` maps API sort keys (camelCase) to SQL columns. `secondary` holds
    (api_key, direction) pairs appended unless they duplicate the primary key. The table's
    primary key always comes last so the ordering is total and pages never overlap.

    Keys listed in `nullable` sort NULLs as the largest value (last ascending, first
    descending) on both SQLite and Postgres.
    """
    if sort_by not in columns:
        raise ValueError(f"invalid_sort_by: {sort_by}")
    direction = "DESC" if (sort_order or "").lower() == "desc" else "ASC"

    terms = [f"{columns[sort_by]} {direction}"]
    if sort_by in nullable:
        terms.insert(0, f"({columns[sort_by]} IS NULL) {direction}")
    for key, sec_dir in secondary:
        if key == sort_by:
            continue
        terms.append(f"{columns[key]} {sec_dir.upper()}")
    terms.append(f"{pk} {direction}")
    return "ORDER BY " + ", ".join(terms)


@dataclass
class Where:
    """Accumulates AND-ed conditions and their parameters."""

    clauses: List[str] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)

    def add(self, clause: Optional[str], *params: Any) -> "Where":
        if clause:
            self.clauses.append(clause)
            self.params.extend(params)
        return self

    def sql(self) -> str:
        if not self.clauses:
            return ""
        return "WHERE " + " AND ".join(self.clauses)


def page_meta(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total": int(total),
        "pages": int(math.ceil(int(total) / int(limit))) if limit else 0,
        "page": int(page),
        "limit": int(limit),
    }


def fetch_page(
    conn: Any,
    *,
    table: str,
    where: Where,
    order_sql: str,
    page: int,
    limit: int,
) -> Tuple[List[Any], int]:
    """Return (rows, total) for one page. Both queries share the caller's transaction."""
    where_sql = where.sql()
    total = conn.execute(
        f"SELECT COUNT(*) AS n FROM {table} {where_sql}",
        tuple(where.params),
    ).fetchone()["n"]

    offset = (max(1, int(page)) - 1) * int(limit)
    rows = conn.execute(
        f"SELECT * FROM {table} {where_sql} {order_sql} LIMIT ? OFFSET ?",
        (*where.params, int(limit), offset),
    ).fetchall()
    return list(rows), int(total)


def group_counts(conn: Any, *, table: str, column: str) -> Dict[str, int]:
    rows = conn.execute(
        f"SELECT {column} AS k, COUNT(*) AS n FROM {table} GROUP BY {column}"
    ).fetchall()
    return {str(r["k"]): int(r["n"]) for r in rows}


def daily_counts(conn: Any, *, table: str, since_iso: str) -> List[Dict[str, Any]]:
    """Per-day row counts (by created_at) since the given timestamp, oldest first."""
    rows = conn.execute(
        f"""
        SELECT SUBSTR(created_at, 1, 10) AS day, COUNT(*) AS n
        FROM {table}
        WHERE created_at >= ?
        GROUP BY SUBSTR(created_at, 1, 10)
        ORDER BY day ASC
        """,
        (since_iso,),
    ).fetchall()
    return [{"date": str(r["day"]), "count": int(r["n"])} for r in rows]
