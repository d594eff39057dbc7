from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field, ValidationInfo, field_validator

from portfolio_api.api.responses import invalid_sort, ok, paginated
from portfolio_api.api.validation import IsoDate, RecordId, RequestModel, Url, bounded, check_open_ended
from portfolio_api.auth import ensure_admin_fields, ensure_admin_or_owner, get_current_user, get_optional_user, require_admin
from portfolio_api.auth.deps import get_config, is_admin
from portfolio_api.config import Config
from portfolio_api.db import connect
from portfolio_api.resources import education as records
from portfolio_api.resources.common import owner_id


router = APIRouter()

NOT_FOUND = "Education record not found"

ADMIN_ONLY_FIELDS = ("isVisible",)

EducationType = Literal["formal", "certification", "course", "workshop", "seminar"]
Achievement = bounded(200)
Skill = bounded(50)


class Location(RequestModel):
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)


class Certificate(RequestModel):
    url: Optional[Url] = None
    filename: Optional[str] = Field(default=None, max_length=200)


class EducationCreate(RequestModel):
    institution: str = Field(min_length=2, max_length=200)
    degree: str = Field(min_length=2, max_length=150)
    field_of_study: str = Field(min_length=2, max_length=150)
    start_date: IsoDate
    is_currently_studying: bool = False
    end_date: Optional[IsoDate] = None
    grade: Optional[str] = Field(default=None, max_length=50)
    percentage: Optional[float] = Field(default=None, ge=0, le=100)
    cgpa: Optional[float] = Field(default=None, ge=0, le=10)
    description: Optional[str] = Field(default=None, max_length=1000)
    achievements: List[Achievement] = Field(default_factory=list)
    skills: List[Skill] = Field(default_factory=list)
    location: Optional[Location] = None
    type: EducationType = "formal"
    is_visible: bool = True
    sort_order: int = 0
    certificate: Optional[Certificate] = None

    @field_validator("end_date")
    @classmethod
    def _end_date_consistent(cls, v: Any, info: ValidationInfo) -> Any:
        check_open_ended(info.data, flag="is_currently_studying", end_date=v)
        return v


class EducationUpdate(RequestModel):
    NULLABLE = frozenset({"endDate", "grade", "percentage", "cgpa", "description"})

    institution: Optional[str] = Field(default=None, min_length=2, max_length=200)
    degree: Optional[str] = Field(default=None, min_length=2, max_length=150)
    field_of_study: Optional[str] = Field(default=None, min_length=2, max_length=150)
    start_date: Optional[IsoDate] = None
    is_currently_studying: Optional[bool] = None
    end_date: Optional[IsoDate] = None
    grade: Optional[str] = Field(default=None, max_length=50)
    percentage: Optional[float] = Field(default=None, ge=0, le=100)
    cgpa: Optional[float] = Field(default=None, ge=0, le=10)
    description: Optional[str] = Field(default=None, max_length=1000)
    achievements: Optional[List[Achievement]] = None
    skills: Optional[List[Skill]] = None
    location: Optional[Location] = None
    type: Optional[EducationType] = None
    is_visible: Optional[bool] = None
    sort_order: Optional[int] = None
    certificate: Optional[Certificate] = None

    @field_validator("end_date")
    @classmethod
    def _end_date_consistent(cls, v: Any, info: ValidationInfo) -> Any:
        check_open_ended(info.data, flag="is_currently_studying", end_date=v)
        return v


@router.get("")
def list_education(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: Optional[EducationType] = None,
    search: Optional[str] = Query(None, max_length=100),
    sortBy: str = "startDate",
    sortOrder: Literal["asc", "desc"] = "desc",
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    """Public listing. Admins also see hidden records."""
    if sortBy not in records.SORT_COLUMNS:
        raise invalid_sort(sortBy)
    with connect(cfg.DB_DSN) as conn:
        items, total = records.list_education(
            conn,
            page=page,
            limit=limit,
            include_hidden=is_admin(user),
            sort_by=sortBy,
            sort_order=sortOrder,
            edu_type=type,
            search=search,
        )
    return paginated("education", items, total=total, page=page, limit=limit)


@router.get("/admin/all")
def list_education_admin(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: Optional[EducationType] = None,
    isVisible: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    sortBy: str = "createdAt",
    sortOrder: Literal["asc", "desc"] = "desc",
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if sortBy not in records.SORT_COLUMNS:
        raise invalid_sort(sortBy)
    with connect(cfg.DB_DSN) as conn:
        items, total = records.list_education(
            conn,
            page=page,
            limit=limit,
            include_hidden=True,
            sort_by=sortBy,
            sort_order=sortOrder,
            edu_type=type,
            is_visible=isVisible,
            search=search,
            secondary=(),
        )
    return paginated("education", items, total=total, page=page, limit=limit)


@router.get("/{education_id}")
def get_education(
    education_id: RecordId,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        found = records.get_education(conn, education_id, include_hidden=is_admin(user))
    if found is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok({"education": found})


@router.post("", status_code=201)
def create_education(
    payload: EducationCreate,
    admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        created = records.create_education(conn, payload.payload(), created_by=int(admin["id"]))
    return ok({"education": created}, message="Education record created successfully")


@router.put("/{education_id}")
def update_education(
    education_id: RecordId,
    payload: EducationUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = records.get_education_row(conn, education_id, include_hidden=True)
        if row is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        ensure_admin_or_owner(user, owner_id(row))
        patch = payload.payload()
        ensure_admin_fields(user, patch, ADMIN_ONLY_FIELDS)
        updated = records.update_education(conn, education_id, patch)
    return ok({"education": updated}, message="Education record updated successfully")


@router.delete("/{education_id}")
def delete_education(
    education_id: RecordId,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        deleted = records.delete_education(conn, education_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok(message="Education record deleted successfully")


@router.put("/{education_id}/visibility")
def toggle_visibility(
    education_id: RecordId,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        updated = records.toggle_education_visibility(conn, education_id)
    if updated is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    state = "shown" if updated["isVisible"] else "hidden"
    return ok({"education": updated}, message=f"Education record {state} successfully")
