"""FarmLink ordering FastAPI application.

Web server for orders, payment intents and gateway webhooks. Commands are
processed synchronously inside the ordering domain context, which the
middleware pushes for every ``/api`` request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.domain import ordering
from payments.gateway import get_gateway
from shared.auth import jwt_secret
from shared.http import install_error_handlers

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay (memory providers outside production).
ordering.init()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing secrets stop startup rather than the first payment request
    jwt_secret()
    gateway = get_gateway()
    logger.info("application_started", gateway=type(gateway).__name__)
    yield


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="FarmLink Ordering API",
    description="Farmer-consumer marketplace — orders, payments and fulfillment status",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context for API requests."""
    if request.url.path.startswith("/api"):
        with ordering.domain_context():
            response = await call_next(request)
        return response
    # Health check and docs need no domain
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api.routes import farmer_router, order_router  # noqa: E402
from payments.api.routes import payment_router  # noqa: E402

app.include_router(order_router)
app.include_router(farmer_router)
app.include_router(payment_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "ordering": {"name": ordering.name},
            },
        }
    )
