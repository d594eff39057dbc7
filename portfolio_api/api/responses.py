"""JSON envelope helpers shared by the routers.

Every response body is `{success, message?, data?, errors?}`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from portfolio_api.resources.common import FieldValidationError
from portfolio_api.util.query import page_meta


def ok(data: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def fail(message: str, errors: Optional[List[Dict[str, str]]] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return body


def paginated(key: str, items: List[Dict[str, Any]], *, total: int, page: int, limit: int, **extra: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {key: items, "pagination": page_meta(total, page, limit)}
    data.update(extra)
    return ok(data)


def invalid_sort(sort_by: str) -> FieldValidationError:
    return FieldValidationError("sortBy", f"Cannot sort by '{sort_by}'")
