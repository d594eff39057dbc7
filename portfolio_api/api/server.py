from __future__ import annotations

import traceback
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_api import __version__
from portfolio_api.api.responses import fail
from portfolio_api.api.routes import auth, contact, education, projects, users
from portfolio_api.api.validation import error_items
from portfolio_api.auth import bootstrap_admin_if_needed
from portfolio_api.config import Config, load_config
from portfolio_api.db import StoreError, init_db
from portfolio_api.resources.common import FieldValidationError
from portfolio_api.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


def _register_error_handlers(app: FastAPI, cfg: Config) -> None:
    def _server_error(exc: Exception) -> JSONResponse:
        extra: Dict[str, Any] = {}
        if not cfg.is_production():
            extra["error"] = str(exc)
            extra["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=500, content=fail("Internal server error", **extra))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = str(exc.detail)
        if exc.status_code == 404 and message == "Not Found":
            message = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=fail("Validation failed", errors=error_items(exc.errors())))

    @app.exception_handler(FieldValidationError)
    async def _field_invalid(request: Request, exc: FieldValidationError) -> JSONResponse:
        errors = [{"field": exc.field, "message": exc.message}]
        return JSONResponse(status_code=400, content=fail("Validation failed", errors=errors))

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
        # Already logged by db.connect().
        return _server_error(exc)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        _debug(f"unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
        return _server_error(exc)


def create_app(cfg: Config | None = None) -> FastAPI:
    cfg = cfg or load_config()

    app = FastAPI(title="Portfolio API", version=__version__)
    # Auth deps and routers read the config from app state.
    app.state.cfg = cfg

    # The SPA runs on its own origin (Vite on :5173 in development) and sends the
    # session cookie, so credentials must be allowed.
    origins = cfg.cors_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def _on_startup() -> None:
        # Ensure schema exists.
        init_db(cfg.DB_DSN)

        # Bootstrap first admin if needed (only when users table is empty)
        boot = bootstrap_admin_if_needed(cfg)
        if boot:
            _debug(f"Bootstrapped initial admin user: email={boot.get('email')} role={boot.get('role')}")

    @app.get("/api/health")
    def health() -> Dict[str, Any]:
        return {
            "success": True,
            "status": "OK",
            "message": "Portfolio API is running",
            "timestamp": utcnow_iso(),
        }

    _register_error_handlers(app, cfg)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(contact.router, prefix="/api/contact", tags=["contact"])
    app.include_router(education.router, prefix="/api/education", tags=["education"])
    app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
    app.include_router(users.router, prefix="/api/user", tags=["users"])
    return app


app = create_app()
