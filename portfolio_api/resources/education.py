from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from portfolio_api.util.query import Where, fetch_page, order_by_sql, search_clause
from portfolio_api.util.time import describe_duration

from .common import (
    Column,
    decode_row,
    delete_row,
    encode_fields,
    get_row,
    insert_row,
    populate_creators,
    resolve_open_ended,
    toggle_flag,
    update_row,
)


TABLE = "education"
PK = "education_id"

TYPES = ("formal", "certification", "course", "workshop", "seminar")

COLUMNS: Dict[str, Column] = {
    "institution": Column("institution"),
    "degree": Column("degree"),
    "fieldOfStudy": Column("field_of_study"),
    "startDate": Column("start_date"),
    "endDate": Column("end_date"),
    "isCurrentlyStudying": Column("is_currently_studying", "bool"),
    "grade": Column("grade"),
    "percentage": Column("percentage", "float"),
    "cgpa": Column("cgpa", "float"),
    "description": Column("description"),
    "achievements": Column("achievements_json", "json-list"),
    "skills": Column("skills_json", "json-list"),
    "location": Column("location_json", "json"),
    "type": Column("type"),
    "isVisible": Column("is_visible", "bool"),
    "sortOrder": Column("sort_order", "int"),
    "certificate": Column("certificate_json", "json"),
}

SORT_COLUMNS = {
    "startDate": "start_date",
    "endDate": "end_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "sortOrder": "sort_order",
    "institution": "institution",
}

# Ongoing entries have no end date.
NULLABLE_SORT = frozenset({"endDate"})

# Public listing: newest first, curated order among equal dates.
SECONDARY_SORT = (("sortOrder", "asc"),)

SEARCH_COLUMNS = ["institution", "degree", "field_of_study"]

_ONGOING_LABEL = "currently studying"


def public_education(row: Any) -> Dict[str, Any]:
    out = decode_row(row, COLUMNS, pk=PK)
    out["duration"] = describe_duration(out.get("startDate"), out.get("endDate"))
    return out


def get_education_row(conn: Any, education_id: int, *, include_hidden: bool) -> Optional[Any]:
    return get_row(conn, table=TABLE, pk=PK, row_id=education_id, visible_only=not include_hidden)


def get_education(conn: Any, education_id: int, *, include_hidden: bool) -> Optional[Dict[str, Any]]:
    row = get_education_row(conn, education_id, include_hidden=include_hidden)
    if row is None:
        return None
    return populate_creators(conn, [public_education(row)])[0]


def create_education(conn: Any, data: Dict[str, Any], *, created_by: int) -> Dict[str, Any]:
    payload = resolve_open_ended(None, data, flag="isCurrentlyStudying", label=_ONGOING_LABEL)
    values = encode_fields(payload, COLUMNS)
    values["created_by"] = int(created_by)
    education_id = insert_row(conn, table=TABLE, pk=PK, values=values)
    created = get_education(conn, education_id, include_hidden=True)
    assert created is not None
    return created


def update_education(conn: Any, education_id: int, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Partial update. Only keys present in `patch` are written."""
    row = get_education_row(conn, education_id, include_hidden=True)
    if row is None:
        return None
    payload = resolve_open_ended(public_education(row), patch, flag="isCurrentlyStudying", label=_ONGOING_LABEL)
    values = encode_fields(payload, COLUMNS)
    if values:
        update_row(conn, table=TABLE, pk=PK, row_id=education_id, values=values)
    return get_education(conn, education_id, include_hidden=True)


def delete_education(conn: Any, education_id: int) -> bool:
    return delete_row(conn, table=TABLE, pk=PK, row_id=education_id)


def toggle_education_visibility(conn: Any, education_id: int) -> Optional[Dict[str, Any]]:
    if not toggle_flag(conn, table=TABLE, pk=PK, row_id=education_id, column="is_visible"):
        return None
    return get_education(conn, education_id, include_hidden=True)


def list_education(
    conn: Any,
    *,
    page: int,
    limit: int,
    include_hidden: bool,
    sort_by: str = "startDate",
    sort_order: str = "desc",
    edu_type: str | None = None,
    is_visible: bool | None = None,
    search: str | None = None,
    secondary: Tuple[Tuple[str, str], ...] = SECONDARY_SORT,
) -> Tuple[List[Dict[str, Any]], int]:
    where = Where()
    if not include_hidden:
        where.add("is_visible=1")
    elif is_visible is not None:
        where.add("is_visible=?", 1 if is_visible else 0)
    if edu_type:
        where.add("type=?", edu_type)
    clause, params = search_clause(SEARCH_COLUMNS, search)
    where.add(clause, *params)

    order_sql = order_by_sql(
        sort_by, sort_order, columns=SORT_COLUMNS, pk=PK, secondary=secondary, nullable=NULLABLE_SORT
    )
    rows, total = fetch_page(conn, table=TABLE, where=where, order_sql=order_sql, page=page, limit=limit)
    return populate_creators(conn, [public_education(r) for r in rows]), total
