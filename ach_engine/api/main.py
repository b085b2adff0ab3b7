"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from ach_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from ach_engine.api.v1 import batches
from ach_engine.infrastructure.observability.logging import setup_logging
from ach_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level, service_name=settings.service_name)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="ACH Batch Engine",
        description="ACH batch validation, NACHA file generation and processing lifecycle",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(batches.router, prefix="/v1", tags=["batches"])

    return app


app = create_app()
