from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import Field

from portfolio_api.api.responses import invalid_sort, ok, paginated
from portfolio_api.api.validation import Email, Phone, RecordId, RequestModel
from portfolio_api.auth import get_optional_user, require_admin
from portfolio_api.auth.deps import get_config
from portfolio_api.config import Config
from portfolio_api.db import connect
from portfolio_api.resources import contact as contacts


router = APIRouter()

NOT_FOUND = "Contact not found"


class ContactCreate(RequestModel):
    name: str = Field(min_length=3, max_length=100)
    email: Email
    subject: str = Field(min_length=5, max_length=200)
    message: str = Field(min_length=10, max_length=1000)
    phone: Optional[Phone] = None


class ContactUpdate(RequestModel):
    NULLABLE = frozenset({"adminNotes"})

    status: Optional[Literal["new", "read", "replied", "archived"]] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    admin_notes: Optional[str] = Field(default=None, max_length=500)


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


@router.post("", status_code=201)
def submit_contact(
    payload: ContactCreate,
    request: Request,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        created = contacts.create_contact(
            conn,
            payload.payload(),
            ip_address=_client_ip(request),
            created_by=int(user["id"]) if user else None,
        )
    return ok(
        {"contact": created},
        message="Your message has been sent successfully! I will get back to you soon.",
    )


@router.get("")
def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[Literal["new", "read", "replied", "archived"]] = None,
    priority: Optional[Literal["low", "medium", "high"]] = None,
    search: Optional[str] = Query(None, max_length=100),
    sortBy: str = "createdAt",
    sortOrder: Literal["asc", "desc"] = "desc",
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if sortBy not in contacts.SORT_COLUMNS:
        raise invalid_sort(sortBy)
    with connect(cfg.DB_DSN) as conn:
        items, total = contacts.list_contacts(
            conn,
            page=page,
            limit=limit,
            sort_by=sortBy,
            sort_order=sortOrder,
            status=status,
            priority=priority,
            search=search,
        )
        counts = contacts.status_counts(conn)
    return paginated("contacts", items, total=total, page=page, limit=limit, statusCounts=counts)


@router.get("/stats/dashboard")
def contact_dashboard(
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        stats = contacts.contact_stats(conn)
    return ok(stats)


@router.get("/{contact_id}")
def get_contact(
    contact_id: RecordId,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        found = contacts.get_contact(conn, contact_id)
    if found is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok({"contact": found})


@router.put("/{contact_id}")
def update_contact(
    contact_id: RecordId,
    payload: ContactUpdate,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        updated = contacts.update_contact(conn, contact_id, payload.payload())
    if updated is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok({"contact": updated}, message="Contact updated successfully")


@router.delete("/{contact_id}")
def delete_contact(
    contact_id: RecordId,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        deleted = contacts.delete_contact(conn, contact_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok(message="Contact deleted successfully")
