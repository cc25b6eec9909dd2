"""
BetTeam FastAPI Application
Main entry point for the application
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST

from app.core.config import settings

# Sentry integration
if settings.sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    from sentry_sdk.integrations.redis import RedisIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            RedisIntegration(),
        ],
        traces_sample_rate=0.1,
        environment=settings.app_env,
    )

from app.api.errors import not_found_handler
from app.api.health import router as health_router
from app.api.v1.auth import router as auth_router
from app.api.v1.plans import router as plans_router
from app.api.v1.leagues import router as leagues_router
from app.api.v1.bets import router as bets_router
from app.api.v1.wallet import router as wallet_router
from app.api.v1.stats import router as stats_router
from app.api.v1.admin import router as admin_router
from app.api.v1.users import router as users_router
from app.api.v1.competitions import router as competitions_router
from app.core.errors import NotFoundError
from app.core.redis_client import get_rate_limit_redis
from app.middleware.rate_limit import RateLimitMiddleware

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
ACTIVE_CONNECTIONS = Gauge('http_active_connections', 'Number of active HTTP connections')

# Create FastAPI app instance
app = FastAPI(
    title="BetTeam API",
    description="Social sports prediction leagues",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_exception_handler(NotFoundError, not_found_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiting middleware
app.add_middleware(
    RateLimitMiddleware,
    redis_client=get_rate_limit_redis()
)


def _endpoint_label(request: Request) -> str:
    # Route templates keep ids out of metric labels
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


# Add metrics middleware
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    ACTIVE_CONNECTIONS.inc()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration = time.time() - start_time
        ACTIVE_CONNECTIONS.dec()
        endpoint = _endpoint_label(request)

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status=status_code
        ).inc()

        REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint
        ).observe(duration)


# Add metrics endpoint
@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Include routers
app.include_router(health_router, prefix=settings.api_v1_prefix, tags=["health"])
app.include_router(auth_router, prefix=f"{settings.api_v1_prefix}/auth", tags=["authentication"])
app.include_router(users_router, prefix=f"{settings.api_v1_prefix}/users", tags=["users"])
app.include_router(plans_router, prefix=f"{settings.api_v1_prefix}/plans", tags=["plans"])
app.include_router(competitions_router, prefix=f"{settings.api_v1_prefix}/competitions", tags=["competitions"])
app.include_router(leagues_router, prefix=f"{settings.api_v1_prefix}/leagues", tags=["leagues"])
app.include_router(bets_router, prefix=f"{settings.api_v1_prefix}/leagues", tags=["bets"])
app.include_router(wallet_router, prefix=f"{settings.api_v1_prefix}/leagues", tags=["wallet"])
app.include_router(stats_router, prefix=f"{settings.api_v1_prefix}/stats", tags=["stats"])
app.include_router(admin_router, prefix=f"{settings.api_v1_prefix}/admin", tags=["admin"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
