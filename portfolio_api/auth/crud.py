from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from portfolio_api.config import Config
from portfolio_api.db import connect
from portfolio_api.util.query import (
    Where,
    daily_counts,
    fetch_page,
    group_counts,
    order_by_sql,
    search_clause,
)
from portfolio_api.util.time import days_ago_iso, utcnow_iso

from .security import hash_password, verify_password


ROLES = ("user", "admin")

USER_SORT_COLUMNS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "email": "email",
    "role": "role",
    "lastLogin": "last_login_at",
}


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    return {
        "id": int(d["user_id"]),
        "name": d.get("name"),
        "email": d.get("email"),
        "phone": d.get("phone"),
        "role": d.get("role"),
        "isActive": bool(int(d.get("is_active") or 0)),
        "lastLogin": d.get("last_login_at"),
        "createdAt": d.get("created_at"),
        "updatedAt": d.get("updated_at"),
    }


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    row = get_user_by_email(conn, email)
    if row is None:
        return None
    if int(row["is_active"] or 0) != 1:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
    phone: str | None = None,
    role: str = "user",
    is_active: bool = True,
) -> Dict[str, Any]:
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")
    if role not in ROLES:
        raise ValueError("invalid_role")

    existing = conn.execute("SELECT 1 FROM users WHERE email=?", (e,)).fetchone()
    if existing is not None:
        raise ValueError("email_exists")

    now = utcnow_iso()
    row = conn.execute(
        """
        INSERT INTO users (name, email, password_hash, phone, role, is_active, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?,?)
        RETURNING user_id
        """,
        ((name or "").strip(), e, hash_password(password), phone, role, 1 if is_active else 0, now, now),
    ).fetchone()
    created = get_user_by_id(conn, int(row["user_id"]))
    assert created is not None
    return public_user(created)


def touch_last_login(conn: Any, user_id: int) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE users SET last_login_at=?, updated_at=? WHERE user_id=?",
        (now, now, int(user_id)),
    )


def update_profile(
    conn: Any,
    user_id: int,
    *,
    name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> Optional[Dict[str, Any]]:
    """Apply a partial profile update. Only provided (non-None) fields are touched."""
    fields: list[tuple[str, Any]] = []
    if name is not None:
        fields.append(("name", name.strip()))
    if email is not None:
        e = normalize_email(email)
        clash = conn.execute(
            "SELECT 1 FROM users WHERE email=? AND user_id<>?",
            (e, int(user_id)),
        ).fetchone()
        if clash is not None:
            raise ValueError("email_exists")
        fields.append(("email", e))
    if phone is not None:
        fields.append(("phone", phone))

    if fields:
        fields.append(("updated_at", utcnow_iso()))
        sets = ", ".join([f"{k}=?" for k, _ in fields])
        params = [v for _, v in fields] + [int(user_id)]
        conn.execute(f"UPDATE users SET {sets} WHERE user_id=?", params)

    row = get_user_by_id(conn, user_id)
    return public_user(row) if row is not None else None


def change_password(conn: Any, user_id: int, *, current_password: str, new_password: str) -> bool:
    """Return False when the current password does not match."""
    row = get_user_by_id(conn, user_id)
    if row is None or not verify_password(current_password, str(row["password_hash"])):
        return False
    conn.execute(
        "UPDATE users SET password_hash=?, updated_at=? WHERE user_id=?",
        (hash_password(new_password), utcnow_iso(), int(user_id)),
    )
    return True


def set_user_role(conn: Any, user_id: int, role: str) -> Optional[Dict[str, Any]]:
    if role not in ROLES:
        raise ValueError("invalid_role")
    conn.execute(
        "UPDATE users SET role=?, updated_at=? WHERE user_id=?",
        (role, utcnow_iso(), int(user_id)),
    )
    row = get_user_by_id(conn, user_id)
    return public_user(row) if row is not None else None


def set_user_active(conn: Any, user_id: int, is_active: bool) -> Optional[Dict[str, Any]]:
    conn.execute(
        "UPDATE users SET is_active=?, updated_at=? WHERE user_id=?",
        (1 if is_active else 0, utcnow_iso(), int(user_id)),
    )
    row = get_user_by_id(conn, user_id)
    return public_user(row) if row is not None else None


def delete_user(conn: Any, user_id: int) -> bool:
    cur = conn.execute("DELETE FROM users WHERE user_id=?", (int(user_id),))
    return int(cur.rowcount or 0) > 0


def list_users(
    conn: Any,
    *,
    page: int,
    limit: int,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    role: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
) -> Tuple[List[Dict[str, Any]], int]:
    where = Where()
    if role:
        where.add("role=?", role)
    if is_active is not None:
        where.add("is_active=?", 1 if is_active else 0)
    clause, params = search_clause(["name", "email"], search)
    where.add(clause, *params)

    order_sql = order_by_sql(sort_by, sort_order, columns=USER_SORT_COLUMNS, pk="user_id")
    rows, total = fetch_page(conn, table="users", where=where, order_sql=order_sql, page=page, limit=limit)
    return [public_user(r) for r in rows], total


def role_counts(conn: Any) -> Dict[str, int]:
    return group_counts(conn, table="users", column="role")


def user_stats(conn: Any) -> Dict[str, Any]:
    since = days_ago_iso(30)

    def _count(sql: str, params: tuple = ()) -> int:
        return int(conn.execute(sql, params).fetchone()["n"])

    return {
        "totalUsers": _count("SELECT COUNT(*) AS n FROM users"),
        "activeUsers": _count("SELECT COUNT(*) AS n FROM users WHERE is_active=1"),
        "adminUsers": _count("SELECT COUNT(*) AS n FROM users WHERE role='admin'"),
        "recentUsers": _count("SELECT COUNT(*) AS n FROM users WHERE created_at >= ?", (since,)),
        "roleStats": role_counts(conn),
        "monthlyRegistrations": daily_counts(conn, table="users", since_iso=since),
    }


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first admin user if the users table is empty.

    Controlled via environment variables so a fresh deployment has a deterministic way
    to log in:

    - AUTH_BOOTSTRAP_ADMIN_EMAIL
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD (nothing is created while this is blank)
    - AUTH_BOOTSTRAP_ADMIN_NAME

    This only runs when there are 0 rows in `users`.
    """

    email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD or ""
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        if int(n) > 0:
            return None

        return create_user(
            conn,
            name=cfg.AUTH_BOOTSTRAP_ADMIN_NAME or "Admin User",
            email=email,
            password=password,
            role="admin",
        )
