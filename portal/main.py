from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.api.assessments import router as assessments_router
from portal.api.health import router as health_router
from portal.api.metrics_endpoint import router as metrics_router
from portal.api.users import router as users_router
from portal.core.config import SETTINGS
from portal.core.logging import setup_logging
from portal.db.engine import lifespan_db
from portal.db.redis import lifespan_redis
from portal.middleware.metrics import MetricsMiddleware
from portal.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one fails.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="assessment-portal",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext -> Metrics -> CORS -> route handler,
# so every request has an id before metrics are recorded.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(assessments_router)
app.include_router(users_router)

logger.info(
    "assessment-portal started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
