"""FastAPI backend for claim questionnaire rules."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from config import CORS_ORIGINS, DB_PATH, LOG_LEVEL
from rate_limit import limiter
from routes import claims_router, rules_router
from rules import RuleStoreError, get_default_store

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Configure logging
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup."""
    get_default_store()
    logger.info(f"Rule store ready at {DB_PATH}")
    yield


app = FastAPI(
    title="Claims Rules Engine",
    description="Configurable business rules for insurance claim questionnaires",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(rules_router)
app.include_router(claims_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    try:
        rule_count = get_default_store().get_stats()["total"]
        status = "healthy"
    except RuleStoreError as e:
        logger.warning(f"Health check could not read rule store: {e}")
        rule_count = None
        status = "degraded"
    return {
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "rules": rule_count,
    }
