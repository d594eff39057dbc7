from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from portfolio_api.db import StoreError, connect
from portfolio_api.util.query import Where, fetch_page, order_by_sql, search_clause
from portfolio_api.util.time import describe_duration, utcnow_iso

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


def _debug(msg: str) -> None:
    print(f"[projects] {msg}")


TABLE = "projects"
PK = "project_id"

CATEGORIES = {
    "web-development": "Web Development",
    "mobile-app": "Mobile App",
    "data-science": "Data Science",
    "ai-machine-learning": "AI & Machine Learning",
    "desktop-app": "Desktop App",
    "other": "Other",
}
STATUSES = ("planning", "in-progress", "completed", "on-hold", "cancelled")
DIFFICULTIES = ("beginner", "intermediate", "advanced", "expert")

COLUMNS: Dict[str, Column] = {
    "title": Column("title"),
    "description": Column("description"),
    "shortDescription": Column("short_description"),
    "category": Column("category"),
    "technologies": Column("technologies_json", "json-list"),
    "features": Column("features_json", "json-list"),
    "links": Column("links_json", "json"),
    "images": Column("images_json", "json-list"),
    "startDate": Column("start_date"),
    "endDate": Column("end_date"),
    "isOngoing": Column("is_ongoing", "bool"),
    "status": Column("status"),
    "difficulty": Column("difficulty"),
    "teamSize": Column("team_size", "int"),
    "role": Column("role"),
    "challenges": Column("challenges_json", "json-list"),
    "learnings": Column("learnings_json", "json-list"),
    "tags": Column("tags_json", "json-list"),
    "isVisible": Column("is_visible", "bool"),
    "isFeatured": Column("is_featured", "bool"),
    "sortOrder": Column("sort_order", "int"),
    "views": Column("views", "int"),
}

SORT_COLUMNS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "startDate": "start_date",
    "title": "title",
    "views": "views",
    "sortOrder": "sort_order",
    "isFeatured": "is_featured",
}

SECONDARY_SORT = (("isFeatured", "desc"), ("sortOrder", "asc"))

# technologies/tags are JSON arrays stored as text, so a substring match covers their entries.
SEARCH_COLUMNS = ["title", "description", "technologies_json", "tags_json"]

_ONGOING_LABEL = "the project is ongoing"


def category_options() -> List[Dict[str, str]]:
    return [{"value": k, "label": v} for k, v in CATEGORIES.items()]


def public_project(row: Any, *, like_count: int = 0) -> Dict[str, Any]:
    out = decode_row(row, COLUMNS, pk=PK)
    out["likeCount"] = int(like_count)
    out["duration"] = describe_duration(out.get("startDate"), out.get("endDate"))
    return out


def _like_counts(conn: Any, project_ids: List[int]) -> Dict[int, int]:
    if not project_ids:
        return {}
    placeholders = ",".join(["?"] * len(project_ids))
    rows = conn.execute(
        f"""
        SELECT project_id, COUNT(*) AS n
        FROM project_likes
        WHERE project_id IN ({placeholders})
        GROUP BY project_id
        """,
        list(project_ids),
    ).fetchall()
    return {int(r["project_id"]): int(r["n"]) for r in rows}


def _present(conn: Any, rows: List[Any]) -> List[Dict[str, Any]]:
    counts = _like_counts(conn, [int(r[PK]) for r in rows])
    items = [public_project(r, like_count=counts.get(int(r[PK]), 0)) for r in rows]
    return populate_creators(conn, items)


def get_project_row(conn: Any, project_id: int, *, include_hidden: bool) -> Optional[Any]:
    return get_row(conn, table=TABLE, pk=PK, row_id=project_id, visible_only=not include_hidden)


def get_project(conn: Any, project_id: int, *, include_hidden: bool) -> Optional[Dict[str, Any]]:
    row = get_project_row(conn, project_id, include_hidden=include_hidden)
    if row is None:
        return None
    return _present(conn, [row])[0]


def _apply_ongoing(stored: Optional[Dict[str, Any]], data: Dict[str, Any]) -> Dict[str, Any]:
    payload = resolve_open_ended(stored, data, flag="isOngoing", label=_ONGOING_LABEL)
    if payload.get("isOngoing") is True:
        payload["status"] = "in-progress"
    return payload


def create_project(conn: Any, data: Dict[str, Any], *, created_by: int) -> Dict[str, Any]:
    values = encode_fields(_apply_ongoing(None, data), COLUMNS)
    values["created_by"] = int(created_by)
    project_id = insert_row(conn, table=TABLE, pk=PK, values=values)
    created = get_project(conn, project_id, include_hidden=True)
    assert created is not None
    return created


def update_project(conn: Any, project_id: int, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    row = get_project_row(conn, project_id, include_hidden=True)
    if row is None:
        return None
    values = encode_fields(_apply_ongoing(public_project(row), patch), COLUMNS)
    if values:
        update_row(conn, table=TABLE, pk=PK, row_id=project_id, values=values)
    return get_project(conn, project_id, include_hidden=True)


def delete_project(conn: Any, project_id: int) -> bool:
    return delete_row(conn, table=TABLE, pk=PK, row_id=project_id)


def toggle_project_flag(conn: Any, project_id: int, *, field: str) -> Optional[Dict[str, Any]]:
    """Flip isVisible or isFeatured in place."""
    column = COLUMNS[field].name
    if not toggle_flag(conn, table=TABLE, pk=PK, row_id=project_id, column=column):
        return None
    return get_project(conn, project_id, include_hidden=True)


def toggle_like(conn: Any, project_id: int, user_id: int) -> Dict[str, Any]:
    """Remove the caller's like if present, otherwise add it."""
    cur = conn.execute(
        "DELETE FROM project_likes WHERE project_id=? AND user_id=?",
        (int(project_id), int(user_id)),
    )
    liked = int(cur.rowcount or 0) == 0
    if liked:
        conn.execute(
            """
            INSERT INTO project_likes (project_id, user_id, created_at)
            VALUES (?,?,?)
            ON CONFLICT (project_id, user_id) DO NOTHING
            """,
            (int(project_id), int(user_id), utcnow_iso()),
        )
    n = conn.execute(
        "SELECT COUNT(*) AS n FROM project_likes WHERE project_id=?",
        (int(project_id),),
    ).fetchone()["n"]
    return {"liked": liked, "likeCount": int(n)}


def increment_project_views(db_dsn: str, project_id: int) -> None:
    """Background side effect of a detail read. Runs on its own connection."""
    try:
        with connect(db_dsn) as conn:
            conn.execute("UPDATE projects SET views = views + 1 WHERE project_id=?", (int(project_id),))
    except StoreError as e:
        # The response has already been sent.
        _debug(f"view increment failed project_id={project_id}: {e}")


def list_projects(
    conn: Any,
    *,
    page: int,
    limit: int,
    include_hidden: bool,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    category: str | None = None,
    featured: bool | None = None,
    status: str | None = None,
    search: str | None = None,
) -> Tuple[List[Dict[str, Any]], int]:
    where = Where()
    if not include_hidden:
        where.add("is_visible=1")
    if category:
        where.add("category=?", category)
    if featured is not None:
        where.add("is_featured=?", 1 if featured else 0)
    if status:
        where.add("status=?", status)
    clause, params = search_clause(SEARCH_COLUMNS, search)
    where.add(clause, *params)

    order_sql = order_by_sql(sort_by, sort_order, columns=SORT_COLUMNS, pk=PK, secondary=SECONDARY_SORT)
    rows, total = fetch_page(conn, table=TABLE, where=where, order_sql=order_sql, page=page, limit=limit)
    return _present(conn, rows), total


def featured_projects(conn: Any, *, limit: int, include_hidden: bool) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM projects WHERE is_featured=1"
    if not include_hidden:
        sql += " AND is_visible=1"
    sql += " ORDER BY sort_order ASC, created_at DESC, project_id DESC LIMIT ?"
    rows = conn.execute(sql, (int(limit),)).fetchall()
    return _present(conn, list(rows))
