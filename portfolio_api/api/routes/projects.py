from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import Field, ValidationInfo, field_validator

from portfolio_api.api.responses import invalid_sort, ok, paginated
from portfolio_api.api.validation import IsoDate, RecordId, RequestModel, Url, bounded, check_open_ended
from portfolio_api.auth import ensure_admin_fields, ensure_admin_or_owner, get_current_user, get_optional_user, require_admin
from portfolio_api.auth.deps import get_config, is_admin
from portfolio_api.config import Config
from portfolio_api.db import connect
from portfolio_api.resources import projects as showcase
from portfolio_api.resources.common import owner_id


router = APIRouter()

NOT_FOUND = "Project not found"

# Owners may edit their projects, but only admins publish or feature them.
ADMIN_ONLY_FIELDS = ("isVisible", "isFeatured")

Category = Literal["web-development", "mobile-app", "data-science", "ai-machine-learning", "desktop-app", "other"]
Status = Literal["planning", "in-progress", "completed", "on-hold", "cancelled"]
Difficulty = Literal["beginner", "intermediate", "advanced", "expert"]

Technology = bounded(50)
Feature = bounded(200)
Lesson = bounded(300)
Tag = bounded(30)


class Links(RequestModel):
    live: Optional[Url] = None
    github: Optional[Url] = None
    demo: Optional[Url] = None


class Image(RequestModel):
    url: Url
    caption: Optional[str] = Field(default=None, max_length=200)
    is_main: bool = False


class ProjectCreate(RequestModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    short_description: Optional[str] = Field(default=None, max_length=300)
    category: Category = "other"
    technologies: List[Technology] = Field(min_length=1)
    features: List[Feature] = Field(default_factory=list)
    links: Optional[Links] = None
    images: List[Image] = Field(default_factory=list)
    start_date: IsoDate
    is_ongoing: bool = False
    end_date: Optional[IsoDate] = None
    status: Status = "completed"
    difficulty: Difficulty = "intermediate"
    team_size: int = Field(default=1, ge=1, le=50)
    role: Optional[str] = Field(default=None, max_length=100)
    challenges: List[Lesson] = Field(default_factory=list)
    learnings: List[Lesson] = Field(default_factory=list)
    tags: List[Tag] = Field(default_factory=list)
    is_visible: bool = True
    is_featured: bool = False
    sort_order: int = 0

    @field_validator("end_date")
    @classmethod
    def _end_date_consistent(cls, v: Any, info: ValidationInfo) -> Any:
        check_open_ended(info.data, flag="is_ongoing", end_date=v)
        return v


class ProjectUpdate(RequestModel):
    NULLABLE = frozenset({"endDate", "shortDescription", "role"})

    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10, max_length=2000)
    short_description: Optional[str] = Field(default=None, max_length=300)
    category: Optional[Category] = None
    technologies: Optional[List[Technology]] = Field(default=None, min_length=1)
    features: Optional[List[Feature]] = None
    links: Optional[Links] = None
    images: Optional[List[Image]] = None
    start_date: Optional[IsoDate] = None
    is_ongoing: Optional[bool] = None
    end_date: Optional[IsoDate] = None
    status: Optional[Status] = None
    difficulty: Optional[Difficulty] = None
    team_size: Optional[int] = Field(default=None, ge=1, le=50)
    role: Optional[str] = Field(default=None, max_length=100)
    challenges: Optional[List[Lesson]] = None
    learnings: Optional[List[Lesson]] = None
    tags: Optional[List[Tag]] = None
    is_visible: Optional[bool] = None
    is_featured: Optional[bool] = None
    sort_order: Optional[int] = None

    @field_validator("end_date")
    @classmethod
    def _end_date_consistent(cls, v: Any, info: ValidationInfo) -> Any:
        check_open_ended(info.data, flag="is_ongoing", end_date=v)
        return v


@router.get("")
def list_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[Category] = None,
    featured: Optional[bool] = None,
    status: Optional[Status] = None,
    search: Optional[str] = Query(None, max_length=100),
    sortBy: str = "createdAt",
    sortOrder: Literal["asc", "desc"] = "desc",
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    if sortBy not in showcase.SORT_COLUMNS:
        raise invalid_sort(sortBy)
    with connect(cfg.DB_DSN) as conn:
        items, total = showcase.list_projects(
            conn,
            page=page,
            limit=limit,
            include_hidden=is_admin(user),
            sort_by=sortBy,
            sort_order=sortOrder,
            category=category,
            featured=featured,
            status=status,
            search=search,
        )
    return paginated("projects", items, total=total, page=page, limit=limit)


@router.get("/featured")
def featured_projects(
    limit: int = Query(6, ge=1, le=50),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        items = showcase.featured_projects(conn, limit=limit, include_hidden=is_admin(user))
    return ok({"projects": items})


@router.get("/categories/list")
def project_categories() -> Dict[str, Any]:
    return ok({"categories": showcase.category_options()})


@router.get("/{project_id}")
def get_project(
    project_id: RecordId,
    background_tasks: BackgroundTasks,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    """Project detail. Bumps the view counter after the response is sent."""
    with connect(cfg.DB_DSN) as conn:
        found = showcase.get_project(conn, project_id, include_hidden=is_admin(user))
    if found is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    background_tasks.add_task(showcase.increment_project_views, cfg.DB_DSN, project_id)
    return ok({"project": found})


@router.post("", status_code=201)
def create_project(
    payload: ProjectCreate,
    admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        created = showcase.create_project(conn, payload.payload(), created_by=int(admin["id"]))
    return ok({"project": created}, message="Project created successfully")


@router.put("/{project_id}")
def update_project(
    project_id: RecordId,
    payload: ProjectUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = showcase.get_project_row(conn, project_id, include_hidden=True)
        if row is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        ensure_admin_or_owner(user, owner_id(row))
        patch = payload.payload()
        ensure_admin_fields(user, patch, ADMIN_ONLY_FIELDS)
        updated = showcase.update_project(conn, project_id, patch)
    return ok({"project": updated}, message="Project updated successfully")


@router.delete("/{project_id}")
def delete_project(
    project_id: RecordId,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        deleted = showcase.delete_project(conn, project_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return ok(message="Project deleted successfully")


@router.put("/{project_id}/visibility")
def toggle_visibility(
    project_id: RecordId,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        updated = showcase.toggle_project_flag(conn, project_id, field="isVisible")
    if updated is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    state = "shown" if updated["isVisible"] else "hidden"
    return ok({"project": updated}, message=f"Project {state} successfully")


@router.put("/{project_id}/featured")
def toggle_featured(
    project_id: RecordId,
    _admin: Dict[str, Any] = Depends(require_admin),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        updated = showcase.toggle_project_flag(conn, project_id, field="isFeatured")
    if updated is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    state = "featured" if updated["isFeatured"] else "unfeatured"
    return ok({"project": updated}, message=f"Project {state} successfully")


@router.post("/{project_id}/like")
def toggle_like(
    project_id: RecordId,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        if showcase.get_project_row(conn, project_id, include_hidden=is_admin(user)) is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        result = showcase.toggle_like(conn, project_id, int(user["id"]))
    return ok(result, message="Project liked" if result["liked"] else "Project unliked")
