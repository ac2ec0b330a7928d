"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from burnchat.app_logging import configure_logging
from burnchat.containers import AppContainer


def _get_cleanup_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.cleanup_token


async def require_cleanup_token(
    x_cleanup_token: str | None = Header(default=None),
    cleanup_token: str = Depends(_get_cleanup_token),
) -> None:
    """Ensure cleanup requests carry the shared token."""
    if not x_cleanup_token or x_cleanup_token != cleanup_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/cleanup-expired", dependencies=[Depends(require_cleanup_token)])
    async def cleanup_expired(request: Request) -> JSONResponse:
        """Delete expired messages and expired or terminated chats."""
        state_container: AppContainer = request.app.state.container
        report = state_container.reaper_service.run_cleanup()
        timestamp = report.timestamp.isoformat()
        if not report.success:
            logger.error(
                "Cleanup incomplete: messages=%s chats=%s",
                report.messages_cleaned,
                report.chats_cleaned,
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "message": "Cleanup failed",
                    "timestamp": timestamp,
                },
            )
        return JSONResponse(
            content={
                "success": True,
                "message": "Cleanup completed successfully",
                "timestamp": timestamp,
            }
        )

    return app
