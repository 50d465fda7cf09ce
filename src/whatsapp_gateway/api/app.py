"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from whatsapp_gateway.api.messages import router as messages_router
from whatsapp_gateway.app_logging import configure_logging
from whatsapp_gateway.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        state_container.event_consumer.start()
        state_container.job_scheduler.start()
        logger.info("Initializing WhatsApp client")
        initialization = asyncio.create_task(
            state_container.client_lifecycle.initialize()
        )
        yield
        if not initialization.done():
            initialization.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await initialization
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(messages_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
