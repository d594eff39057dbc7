"""Request-body building blocks.

Bodies are camelCase on the wire and snake_case in Python; unknown keys are rejected and
surrounding whitespace is stripped from every string.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Annotated, Any, ClassVar, Dict, FrozenSet, List

from fastapi import Path
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

from portfolio_api.util.time import parse_iso_date


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_URL_RE = re.compile(r"^https?://.+", re.IGNORECASE)


class RequestModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
    )

    # Public field names where an explicit null means "clear the stored value".
    NULLABLE: ClassVar[FrozenSet[str]] = frozenset()

    def payload(self) -> Dict[str, Any]:
        """Fields the client actually sent, keyed by their public (camelCase) names.

        An explicit null is dropped (treated as "not sent") unless the field is NULLABLE.
        """
        data = self.model_dump(by_alias=True, exclude_unset=True, mode="json")
        return {k: v for k, v in data.items() if v is not None or k in self.NULLABLE}


def _check_email(v: str) -> str:
    if not _EMAIL_RE.match(v or ""):
        raise ValueError("Please provide a valid email")
    return v.lower()


def _check_url(v: str) -> str:
    if not _URL_RE.match(v or ""):
        raise ValueError("Please provide a valid URL starting with http:// or https://")
    return v


def _coerce_date(v: Any) -> Any:
    if isinstance(v, str):
        try:
            return parse_iso_date(v)
        except ValueError:
            raise ValueError("Please provide a valid date (YYYY-MM-DD)")
    return v


Email = Annotated[str, StringConstraints(strip_whitespace=True, max_length=254), AfterValidator(_check_email)]
Url = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500), AfterValidator(_check_url)]
IsoDate = Annotated[date, BeforeValidator(_coerce_date)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, max_length=20)]

# Largest key the stores can hold (signed 64-bit).
MAX_RECORD_ID = 2**63 - 1
RecordId = Annotated[int, Path(ge=1, le=MAX_RECORD_ID)]


def bounded(max_length: int, min_length: int = 1) -> Any:
    """A stripped string type with length bounds (used for list entries)."""
    return Annotated[str, StringConstraints(strip_whitespace=True, min_length=min_length, max_length=max_length)]


def check_open_ended(values: Dict[str, Any], *, flag: str, end_date: Any) -> None:
    """Raise when a payload both sets an ongoing flag and carries an end date."""
    if values.get(flag) is True and end_date is not None:
        raise ValueError("End date must be empty for an ongoing entry")
    start = values.get("start_date")
    if start is not None and end_date is not None and end_date < start:
        raise ValueError("End date cannot be before start date")


def error_items(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic errors into [{field, message}]."""
    out: List[Dict[str, str]] = []
    for err in errors:
        loc = [str(p) for p in (err.get("loc") or ())]
        if len(loc) > 1 and loc[0] in ("body", "query", "path", "header", "cookie"):
            loc = loc[1:]
        field = ".".join(loc) or "body"

        ctx = err.get("ctx") or {}
        if err.get("type") == "value_error" and ctx.get("error") is not None:
            message = str(ctx["error"])
        else:
            message = str(err.get("msg") or "Invalid value")
        out.append({"field": field, "message": message})
    return out
