"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

import logging

from fastapi import APIRouter, HTTPException

from civic_api.config import collections
from civic_api.config.firebase import get_db
from civic_api.core.settings import settings
from civic_api.models.base import ok
from civic_api.utils.geo import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return ok({
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat(),
    })


@router.get("/db")
async def database_health():
    """
    Database connectivity check.
    Reads at most one user document to prove the store is reachable.
    """
    try:
        db = get_db()
        list(db.collection(collections.USERS).limit(1).stream())
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        raise HTTPException(status_code=503, detail="Database connection failed")

    return ok({
        "status": "healthy",
        "database": "firestore",
        "connected": True,
        "timestamp": utcnow().isoformat(),
    })
