"""FastAPI entry point for the course generation engine."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_settings
from services.container import get_container, init_container
from services.middleware import RequestIdLogFilter, RequestIdMiddleware

settings = get_settings()

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Root logging with the request ID injected into every record."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdLogFilter())
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle — build, start and close the service container."""
    container = init_container(settings)
    await container.start()

    yield

    await get_container().close()


app = FastAPI(
    title="Course Generation Engine",
    description="AI course generation with rotating provider keys and resilient JSON repair",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

# ── Register routers ────────────────────────────────────────
from api.chat import router as chat_router  # noqa: E402
from api.courses import router as courses_router  # noqa: E402
from api.health import router as health_router  # noqa: E402

app.include_router(health_router)
app.include_router(courses_router)
app.include_router(chat_router)


if __name__ == "__main__":
    # Single worker: the generation queue is the process-wide admission point.
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
        timeout_keep_alive=120,
    )
