"""Authentication / authorization helpers.

Auth is intentionally lightweight:

- Users table (email/password hash + role + active flag)
- Stateless JWT access tokens (HS256, issuer-checked, 7 day default TTL)

The API accepts the token from either:

- A secure httpOnly `token` cookie (set by `/api/auth/signin` and `/api/auth/signup`)
- `Authorization: Bearer <token>` (useful for scripts / API clients)

The cookie takes precedence when both are present.
"""

from .deps import ensure_admin_fields, ensure_admin_or_owner, get_current_user, get_optional_user, require_admin
from .crud import bootstrap_admin_if_needed, create_user

__all__ = [
    "get_current_user",
    "get_optional_user",
    "require_admin",
    "ensure_admin_or_owner",
    "ensure_admin_fields",
    "bootstrap_admin_if_needed",
    "create_user",
]
