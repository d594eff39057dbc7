"""Admin user management.

An admin can never demote, deactivate or delete their own account through these routes,
so there is always at least one way back into the admin dashboard.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from portfolio_api.api.responses import invalid_sort, ok, paginated
from portfolio_api.api.validation import RecordId, RequestModel
from portfolio_api.auth import require_admin
from portfolio_api.auth.crud import (
    USER_SORT_COLUMNS,
    delete_user,
    get_user_by_id,
    list_users,
    public_user,
    role_counts,
    set_user_active,
    set_user_role,
    user_stats,
)
from portfolio_api.auth.deps import get_config
from portfolio_api.config import Config
from portfolio_api.db import connect


router = APIRouter()

NOT_FOUND = "User not found"


class RoleRequest(RequestModel):
    role: Literal["user", "admin"]


class StatusRequest(RequestModel):
    is_active: bool


def _is_self(admin: Dict[str, Any], user_id: int) -> bool:
    return int(admin["id"]) == int(user_id)


@router.get("/all")
def list_all_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[Literal["user", "admin"]] = None,
    isActive: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    sortBy: str = "createdAt",
    sortOrder: Literal["asc", "desc"] = "desc",
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if sortBy not in USER_SORT_COLUMNS:
        raise invalid_sort(sortBy)
    with connect(cfg.DB_DSN) as conn:
        items, total = list_users(
            conn,
            page=page,
            limit=limit,
            sort_by=sortBy,
            sort_order=sortOrder,
            role=role,
            is_active=isActive,
            search=search,
        )
        counts = role_counts(conn)
    return paginated("users", items, total=total, page=page, limit=limit, roleCounts=counts)


@router.get("/stats/dashboard")
def users_dashboard(
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        stats = user_stats(conn)
    return ok(stats)


@router.get("/{user_id}")
def get_user(
    user_id: RecordId,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, user_id)
    if row is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok({"user": public_user(row)})


@router.put("/{user_id}/role")
def update_role(
    user_id: RecordId,
    payload: RoleRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if _is_self(admin, user_id) and payload.role != "admin":
        raise HTTPException(status_code=400, detail="You cannot demote yourself from admin role")
    with connect(cfg.DB_DSN) as conn:
        user = set_user_role(conn, user_id, payload.role)
    if user is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok({"user": user}, message=f"User role updated to {payload.role}")


@router.put("/{user_id}/status")
def update_status(
    user_id: RecordId,
    payload: StatusRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if _is_self(admin, user_id) and not payload.is_active:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    with connect(cfg.DB_DSN) as conn:
        user = set_user_active(conn, user_id, payload.is_active)
    if user is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    state = "activated" if payload.is_active else "deactivated"
    return ok({"user": user}, message=f"User {state} successfully")


@router.delete("/{user_id}")
def remove_user(
    user_id: RecordId,
    admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if _is_self(admin, user_id):
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    with connect(cfg.DB_DSN) as conn:
        deleted = delete_user(conn, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok(message="User deleted successfully")
