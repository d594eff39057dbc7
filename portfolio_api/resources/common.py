"""Shared row plumbing for the showcase resources (contacts, education, projects)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from portfolio_api.util.time import utcnow_iso


class FieldValidationError(ValueError):
    """A field-level rule that can only be checked against the stored record."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


@dataclass(frozen=True)
class Column:
    """Maps one public (camelCase) field onto a SQL column.

    kind: text | int | float | bool | json | json-list
    """

    name: str
    kind: str = "text"


def encode_value(col: Column, value: Any) -> Any:
    if value is None:
        return "[]" if col.kind == "json-list" else ("{}" if col.kind == "json" else None)
    if col.kind == "bool":
        return 1 if value else 0
    if col.kind in ("json", "json-list"):
        return json.dumps(value, ensure_ascii=False)
    if col.kind == "int":
        return int(value)
    if col.kind == "float":
        return float(value)
    return value


def decode_value(col: Column, raw: Any) -> Any:
    if col.kind == "bool":
        return bool(int(raw or 0))
    if col.kind in ("json", "json-list"):
        empty: Any = [] if col.kind == "json-list" else {}
        if raw in (None, ""):
            return empty
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return empty
    if raw is None:
        return None
    if col.kind == "int":
        return int(raw)
    if col.kind == "float":
        return float(raw)
    return raw


def encode_fields(data: Mapping[str, Any], columns: Mapping[str, Column]) -> Dict[str, Any]:
    """Translate a validated request dict (camelCase keys) into {column: value}."""
    out: Dict[str, Any] = {}
    for key, value in data.items():
        col = columns.get(key)
        if col is None:
            continue
        out[col.name] = encode_value(col, value)
    return out


def decode_row(row: Any, columns: Mapping[str, Column], *, pk: str) -> Dict[str, Any]:
    d = dict(row)
    out: Dict[str, Any] = {"id": int(d[pk])}
    for key, col in columns.items():
        out[key] = decode_value(col, d.get(col.name))
    out["createdBy"] = d.get("created_by")
    out["createdAt"] = d.get("created_at")
    out["updatedAt"] = d.get("updated_at")
    return out


def insert_row(conn: Any, *, table: str, pk: str, values: Mapping[str, Any]) -> int:
    now = utcnow_iso()
    cols = dict(values)
    cols.setdefault("created_at", now)
    cols.setdefault("updated_at", now)
    names = list(cols.keys())
    placeholders = ",".join(["?"] * len(names))
    row = conn.execute(
        f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders}) RETURNING {pk}",
        [cols[n] for n in names],
    ).fetchone()
    return int(row[pk])


def update_row(conn: Any, *, table: str, pk: str, row_id: int, values: Mapping[str, Any]) -> None:
    fields = list(values.items())
    fields.append(("updated_at", utcnow_iso()))
    sets = ", ".join([f"{k}=?" for k, _ in fields])
    params = [v for _, v in fields] + [int(row_id)]
    conn.execute(f"UPDATE {table} SET {sets} WHERE {pk}=?", params)


def delete_row(conn: Any, *, table: str, pk: str, row_id: int) -> bool:
    cur = conn.execute(f"DELETE FROM {table} WHERE {pk}=?", (int(row_id),))
    return int(cur.rowcount or 0) > 0


def toggle_flag(conn: Any, *, table: str, pk: str, row_id: int, column: str) -> bool:
    """Flip a 0/1 column in a single statement. Returns False when the row is missing."""
    cur = conn.execute(
        f"UPDATE {table} SET {column} = 1 - {column}, updated_at=? WHERE {pk}=?",
        (utcnow_iso(), int(row_id)),
    )
    return int(cur.rowcount or 0) > 0


def get_row(conn: Any, *, table: str, pk: str, row_id: int, visible_only: bool = False) -> Optional[Any]:
    sql = f"SELECT * FROM {table} WHERE {pk}=?"
    if visible_only:
        sql += " AND is_visible=1"
    return conn.execute(sql, (int(row_id),)).fetchone()


def populate_creators(conn: Any, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Replace integer `createdBy` ids with {id, name, email} (or None if the user is gone)."""
    items = list(records)
    ids = sorted({int(r["createdBy"]) for r in items if r.get("createdBy") is not None})
    people: Dict[int, Dict[str, Any]] = {}
    if ids:
        placeholders = ",".join(["?"] * len(ids))
        rows = conn.execute(
            f"SELECT user_id, name, email FROM users WHERE user_id IN ({placeholders})",
            ids,
        ).fetchall()
        people = {int(r["user_id"]): {"id": int(r["user_id"]), "name": r["name"], "email": r["email"]} for r in rows}
    for r in items:
        owner = r.get("createdBy")
        r["createdBy"] = people.get(int(owner)) if owner is not None else None
    return items


def owner_id(row: Any) -> Optional[int]:
    raw = dict(row).get("created_by")
    return int(raw) if raw is not None else None


def resolve_open_ended(
    stored: Optional[Mapping[str, Any]],
    patch: Dict[str, Any],
    *,
    flag: str,
    label: str,
) -> Dict[str, Any]:
    """Apply the "ongoing flag ⇒ no end date" invariant to a create/update payload.

    `stored` holds the record's current public values (None on create). The flag wins
    when it is set in the payload: any stored end date is cleared. Setting an end date on
    a record whose stored flag is still on is rejected. Also enforces endDate >= startDate.
    """
    out = dict(patch)
    if out.get(flag) is True:
        if out.get("endDate") is not None:
            raise FieldValidationError("endDate", f"End date must be empty while {label}")
        out["endDate"] = None
    elif out.get("endDate") is not None and flag not in out:
        if stored is not None and stored.get(flag):
            raise FieldValidationError("endDate", f"End date must be empty while {label}")

    start = out.get("startDate", (stored or {}).get("startDate"))
    end = out["endDate"] if "endDate" in out else (stored or {}).get("endDate")
    if start and end and str(end) < str(start):
        raise FieldValidationError("endDate", "End date cannot be before start date")
    return out
