from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from portfolio_api.util.query import Where, daily_counts, fetch_page, group_counts, order_by_sql, search_clause
from portfolio_api.util.time import days_ago_iso

from .common import Column, decode_row, delete_row, encode_fields, get_row, insert_row, populate_creators, update_row


TABLE = "contacts"
PK = "contact_id"

STATUSES = ("new", "read", "replied", "archived")
PRIORITIES = ("low", "medium", "high")

COLUMNS: Dict[str, Column] = {
    "name": Column("name"),
    "email": Column("email"),
    "subject": Column("subject"),
    "message": Column("message"),
    "phone": Column("phone"),
    "status": Column("status"),
    "priority": Column("priority"),
    "adminNotes": Column("admin_notes"),
    "ipAddress": Column("ip_address"),
}

SORT_COLUMNS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "status": "status",
    "priority": "priority",
}

SEARCH_COLUMNS = ["name", "email", "subject", "message"]


def public_contact(row: Any) -> Dict[str, Any]:
    return decode_row(row, COLUMNS, pk=PK)


def create_contact(
    conn: Any,
    data: Dict[str, Any],
    *,
    ip_address: str | None = None,
    created_by: int | None = None,
) -> Dict[str, Any]:
    values = encode_fields(data, COLUMNS)
    values["ip_address"] = ip_address
    values["created_by"] = created_by
    contact_id = insert_row(conn, table=TABLE, pk=PK, values=values)
    created = get_contact(conn, contact_id)
    assert created is not None
    return created


def get_contact(conn: Any, contact_id: int) -> Optional[Dict[str, Any]]:
    row = get_row(conn, table=TABLE, pk=PK, row_id=contact_id)
    if row is None:
        return None
    return populate_creators(conn, [public_contact(row)])[0]


def update_contact(conn: Any, contact_id: int, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Admin triage update (status / priority / adminNotes)."""
    if get_row(conn, table=TABLE, pk=PK, row_id=contact_id) is None:
        return None
    update_row(conn, table=TABLE, pk=PK, row_id=contact_id, values=encode_fields(patch, COLUMNS))
    return get_contact(conn, contact_id)


def delete_contact(conn: Any, contact_id: int) -> bool:
    return delete_row(conn, table=TABLE, pk=PK, row_id=contact_id)


def list_contacts(
    conn: Any,
    *,
    page: int,
    limit: int,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    status: str | None = None,
    priority: str | None = None,
    search: str | None = None,
) -> Tuple[List[Dict[str, Any]], int]:
    where = Where()
    if status:
        where.add("status=?", status)
    if priority:
        where.add("priority=?", priority)
    clause, params = search_clause(SEARCH_COLUMNS, search)
    where.add(clause, *params)

    order_sql = order_by_sql(sort_by, sort_order, columns=SORT_COLUMNS, pk=PK)
    rows, total = fetch_page(conn, table=TABLE, where=where, order_sql=order_sql, page=page, limit=limit)
    return populate_creators(conn, [public_contact(r) for r in rows]), total


def status_counts(conn: Any) -> Dict[str, int]:
    counts = {s: 0 for s in STATUSES}
    counts.update(group_counts(conn, table=TABLE, column="status"))
    return counts


def contact_stats(conn: Any) -> Dict[str, Any]:
    since = days_ago_iso(30)
    total = conn.execute("SELECT COUNT(*) AS n FROM contacts").fetchone()["n"]
    new = conn.execute("SELECT COUNT(*) AS n FROM contacts WHERE status='new'").fetchone()["n"]
    recent = conn.execute(
        "SELECT COUNT(*) AS n FROM contacts WHERE created_at >= ?",
        (since,),
    ).fetchone()["n"]

    priority = {p: 0 for p in PRIORITIES}
    priority.update(group_counts(conn, table=TABLE, column="priority"))

    return {
        "totalContacts": int(total),
        "newContacts": int(new),
        "recentContacts": int(recent),
        "statusStats": status_counts(conn),
        "priorityStats": priority,
        "monthlyStats": daily_counts(conn, table=TABLE, since_iso=since),
    }
