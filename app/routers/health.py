# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + reclaimer.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from app.config import settings
from app.services import reclaimer
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Reclaimer schedule and last sweep
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "reclaimer": {
            "enabled": settings.RECLAIMER_ENABLED,
            "interval_seconds": settings.RECLAIM_INTERVAL_SECONDS,
            "last_run": reclaimer.last_run or None,
        },
        "return_reminders": {
            "enabled": settings.RETURN_REMINDERS_ENABLED,
            "interval_seconds": settings.RETURN_REMINDER_INTERVAL_SECONDS,
            "timezone": settings.BUSINESS_TIMEZONE,
        },
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
