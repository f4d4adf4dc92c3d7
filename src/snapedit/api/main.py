"""SnapEdit - FastAPI Application.

This module defines the FastAPI application, its REST routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :class:`~snapedit.core.config.SnapEditConfig`.
- **Image persistence** uses :class:`~snapedit.core.image_store.ImageStore`,
  a single SQLite table opened at startup and closed at shutdown.
- **Generation and editing** go through
  :class:`~snapedit.core.gateway.GenerationGateway`.  Gateway and store calls
  block, so they run in Starlette's thread pool.
- **Errors** are raised as :class:`~snapedit.core.errors.SnapEditError`
  subclasses and rendered by one exception handler as ``{"error": message}``.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/api/health``               Liveness, model name, image count
POST      ``/api/images``               Store an image, return id and link
GET       ``/api/images/{id}``          Fetch a stored image
GET       ``/share/{id}``               Stored image bytes (share link)
POST      ``/api/generate``             Text-to-image
POST      ``/api/edit``                 Image + instruction to image
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    snapedit

Direct invocation::

    python -m snapedit.api.main
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from snapedit import __version__
from snapedit.api.models import (
    EditRequest,
    ErrorResponse,
    GeneratedImageResponse,
    GenerateRequest,
    ImageRecordResponse,
    SaveImageRequest,
    SaveImageResponse,
)
from snapedit.core.config import SnapEditConfig, config
from snapedit.core.errors import SnapEditError, StorageError
from snapedit.core.gateway import GeneratedImage, GenerationGateway
from snapedit.core.image_store import ImageStore

logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


def get_gateway(request: Request) -> GenerationGateway:
    return request.app.state.gateway


def get_config(request: Request) -> SnapEditConfig:
    return request.app.state.config


def build_share_url(request: Request, cfg: SnapEditConfig, image_id: str) -> str:
    """Build the public link for a stored image.

    Uses ``public_base_url`` when configured, otherwise the origin the request
    arrived on.
    """
    base = cfg.public_base_url or str(request.base_url)
    return f"{base.rstrip('/')}/share/{image_id}"


def _generated_response(result: GeneratedImage) -> GeneratedImageResponse:
    return GeneratedImageResponse(
        data=result.data,
        mime_type=result.mime_type,
        data_url=result.data_url,
    )


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    app_config: SnapEditConfig | None = None,
    gateway: GenerationGateway | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_config: Configuration to use.  Defaults to the global ``config``.
        gateway: Pre-built gateway (tests inject one with a fake client).
            Defaults to a gateway built from ``app_config``.

    Returns:
        The configured FastAPI instance.
    """
    cfg = app_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open the image store on startup and close it on shutdown."""
        store = ImageStore(cfg.db_path)
        store.open()
        app.state.config = cfg
        app.state.image_store = store
        app.state.gateway = gateway or GenerationGateway(cfg)
        if not cfg.has_credentials:
            logger.warning("GEMINI_API_KEY is not set; generation and editing will fail.")

        try:
            yield
        finally:
            store.close()

    app = FastAPI(
        title="SnapEdit",
        description="Prompt-driven image generation and editing with shareable links.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Error handling.
    # -----------------------------------------------------------------------

    @app.exception_handler(SnapEditError)
    async def handle_snapedit_error(request: Request, exc: SnapEditError) -> JSONResponse:
        if isinstance(exc, StorageError):
            # Engine details were logged where the error was raised.
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.debug(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Malformed request body"},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Unexpected error"},
        )

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.get("/api/health")
    async def health(
        store: ImageStore = Depends(get_image_store),
        cfg: SnapEditConfig = Depends(get_config),
    ) -> dict:
        """Return service status, the configured model, and the image count."""
        image_count = await run_in_threadpool(store.count)
        return {
            "status": "ok",
            "version": __version__,
            "model": cfg.model_name,
            "configured": cfg.has_credentials,
            "imageCount": image_count,
        }

    @app.post(
        "/api/images",
        response_model=SaveImageResponse,
        status_code=status.HTTP_201_CREATED,
        responses=_ERROR_RESPONSES,
    )
    async def save_image(
        req: SaveImageRequest,
        request: Request,
        store: ImageStore = Depends(get_image_store),
        cfg: SnapEditConfig = Depends(get_config),
    ) -> SaveImageResponse:
        """Store an image and return its id and shareable link.

        Raises:
            ValidationError: 400 if ``data`` or ``mimeType`` is missing.
            StorageError: 500 if the insert fails.
        """
        image_id = await run_in_threadpool(store.create, req.data, req.mime_type)
        return SaveImageResponse(id=image_id, url=build_share_url(request, cfg, image_id))

    @app.get(
        "/api/images/{image_id}",
        response_model=ImageRecordResponse,
        responses=_ERROR_RESPONSES,
    )
    async def get_image(
        image_id: str,
        store: ImageStore = Depends(get_image_store),
    ) -> ImageRecordResponse:
        """Return a stored image record.

        Raises:
            NotFoundError: 404 if the id is unknown.
            StorageError: 500 if the query fails.
        """
        record = await run_in_threadpool(store.get, image_id)
        return ImageRecordResponse(
            id=record.id,
            data=record.data,
            mime_type=record.mime_type,
            created_at=record.created_at,
        )

    @app.get("/share/{image_id}", responses=_ERROR_RESPONSES)
    async def share_image(
        image_id: str,
        store: ImageStore = Depends(get_image_store),
    ) -> Response:
        """Serve a stored image's bytes with its own content type.

        Raises:
            NotFoundError: 404 if the id is unknown.
            StorageError: 500 if the query fails or the stored payload is
                not base64.
        """
        record = await run_in_threadpool(store.get, image_id)
        try:
            raw = base64.b64decode(record.data)
        except (binascii.Error, ValueError) as e:
            logger.error(f"Stored image {image_id} is not valid base64: {e}")
            raise StorageError("Failed to retrieve image") from e
        return Response(content=raw, media_type=record.mime_type)

    @app.post("/api/generate", response_model=GeneratedImageResponse)
    async def generate_image(
        req: GenerateRequest,
        gateway: GenerationGateway = Depends(get_gateway),
    ) -> GeneratedImageResponse:
        """Generate an image from a prompt."""
        result = await run_in_threadpool(gateway.generate, req.prompt or "")
        return _generated_response(result)

    @app.post("/api/edit", response_model=GeneratedImageResponse)
    async def edit_image(
        req: EditRequest,
        gateway: GenerationGateway = Depends(get_gateway),
    ) -> GeneratedImageResponse:
        """Edit an uploaded image according to a prompt."""
        result = await run_in_threadpool(
            gateway.edit, req.image or "", req.mime_type, req.prompt or ""
        )
        return _generated_response(result)

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port, and log level from :data:`~snapedit.core.config.config`
    (``SNAPEDIT_SERVER_HOST``, ``SNAPEDIT_SERVER_PORT``,
    ``SNAPEDIT_LOG_LEVEL``).  Defaults to ``0.0.0.0:3000``.

    This function is registered as the ``snapedit`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "snapedit.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
