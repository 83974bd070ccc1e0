"""
Main application module for the path planner backend.

This file sets up the FastAPI application, configures CORS so the
editor front-end can make cross-origin requests, mounts the static
front-end files when they exist, and exposes a simple health check.

Routers for plan editing and code generation are included under the
``/api`` namespace.  Planner errors raised by the core are translated
into JSON error responses by a single exception handler.
"""

from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api.routes_codegen import router as codegen_router
from .api.routes_plans import router as plans_router
from .services.errors import (
    CapacityExceeded,
    DeliveryFailed,
    IndexOutOfRange,
    MalformedDocument,
    PlaceholderNotFound,
    PlanError,
    TemplateUnavailable,
    ValidationError,
)

# init_db creates the saved-plan index tables if they do not exist.
from .services.plans_store import init_db

# Checked in order; the first matching class decides the status code.
_STATUS_BY_ERROR: list[tuple[type[PlanError], int]] = [
    (ValidationError, 422),
    (MalformedDocument, 400),
    (IndexOutOfRange, 404),
    (CapacityExceeded, 409),
    (TemplateUnavailable, 502),
    (PlaceholderNotFound, 502),
    (DeliveryFailed, 502),
]


def status_for_error(exc: PlanError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def create_app() -> FastAPI:
    """Factory to create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(title="PySplanner")

    # Create the saved-plan index before any request is served.
    @app.on_event("startup")  # type: ignore[misc]
    async def startup_event() -> None:
        init_db()

    @app.exception_handler(PlanError)
    async def plan_error_handler(request: Request, exc: PlanError) -> JSONResponse:
        content: dict[str, str] = {"detail": str(exc), "error": type(exc).__name__}
        if isinstance(exc, ValidationError):
            content["kind"] = exc.kind.value
        return JSONResponse(status_code=status_for_error(exc), content=content)

    # Allow all origins by default.  In production you should restrict
    # this to the domains that host the editor.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(plans_router, prefix="/api", tags=["plans"])
    app.include_router(codegen_router, prefix="/api", tags=["codegen"])

    # Serve the compiled editor from ./frontend when present.
    frontend_dir = Path(__file__).resolve().parents[2] / "frontend"
    if frontend_dir.exists():
        app.mount(
            "/",
            StaticFiles(directory=str(frontend_dir), html=True),
            name="frontend",
        )

    return app


# Create the application instance.  Uvicorn imports this when running
# `uvicorn backend.pysplanner.main:app` from the repository root.
app = create_app()
