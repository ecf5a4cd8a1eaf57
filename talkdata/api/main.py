"""
FastAPI application entry-point.

The database is opened once in the lifespan handler and disposed on
shutdown, along with the LLM worker pool; the wired ``QueryService``
lives on ``app.state.service``.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talkdata.api.routers import catalog, query
from talkdata.copilot.llm_handler import shutdown_pool
from talkdata.copilot.service import QueryService, build_service
from talkdata.core.config import get_settings
from talkdata.core.errors import StorageError
from talkdata.core.logging import get_logger
from talkdata.db.connection import open_database

logger = get_logger(__name__)


def create_app(service: QueryService | None = None, database_url: str | None = None) -> FastAPI:
    """Build the API.  Pass *service* to skip opening a database (tests)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            if service is not None:
                app.state.service = service
                yield
                return
            with open_database(database_url or get_settings().database_url) as db:
                app.state.service = build_service(db)
                logger.info("Query service ready")
                yield
        finally:
            shutdown_pool()

    app = FastAPI(
        title="Talk to Your Data",
        version="0.1.0",
        description="Ask natural-language questions about a banking database",
        lifespan=lifespan,
    )

    if service is not None:
        app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage unavailable: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        if request.url.path != "/query":
            return await request_validation_exception_handler(request, exc)
        errors = exc.errors()
        message = errors[0].get("msg", "invalid request") if errors else "invalid request"
        logger.warning("Rejected /query body: %s", message)
        return JSONResponse(status_code=400, content={"error": f"invalid query: {message}"})

    app.include_router(query.router, tags=["Query"])
    app.include_router(catalog.router, tags=["Schema"])

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
