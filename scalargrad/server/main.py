"""scalargrad-server: HTTP API for training and inspecting scalar networks."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scalargrad.server.config import settings

logger = logging.getLogger("scalargrad_server")


def _init_scalargrad():
    """Initialize scalargrad from server settings."""
    import scalargrad
    from scalargrad.config import ScalargradConfig

    config = ScalargradConfig(
        db_path=settings.db_path_resolved,
        seed=settings.seed,
    )
    scalargrad.init(config)
    logger.info("scalargrad initialized: db=%s, seed=%s", config.db_path, config.seed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _init_scalargrad()
    logger.info("scalargrad-server ready on %s:%d", settings.host, settings.port)
    yield
    logger.info("scalargrad-server shutting down")


app = FastAPI(
    title="scalargrad-server",
    description="HTTP API for scalar autodiff networks",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.api_key else None,
    openapi_url="/openapi.json" if not settings.api_key else None,
)


# --- Register routers ---

from scalargrad.server.routers import networks, health  # noqa: E402

app.include_router(networks.router, prefix="/v1/networks", tags=["networks"])

# Health router: /health is public, /stats is protected at the route level
app.include_router(health.router, prefix="/v1", tags=["health"])


def run():
    """Entry point for `scalargrad-server` CLI command."""
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run(
        "scalargrad.server.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    run()
