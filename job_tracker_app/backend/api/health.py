"""
Liveness and readiness endpoints.

``/health`` answers without touching anything. ``/health/detailed`` also probes
the database, counts open live subscriptions, and reports configuration
problems (never secrets).
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config.settings import get_settings
from ..models.db.database import get_db
from ..services.live_feed import change_feed

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


def _database_reachable(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health probe failed: %s", e)
        return False
    return True


@router.get("/health", summary="Health Check")
def health_check() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "message": f"Welcome to {settings.app_name} v{settings.app_version}",
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/detailed", summary="Detailed Health Check")
def detailed_health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    database_ok = _database_reachable(db)
    report = {
        "status": "healthy" if database_ok else "unhealthy",
        "app_info": {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "debug": settings.debug,
        },
        "database": {
            "backend": db.get_bind().dialect.name,
            "reachable": database_ok,
        },
        "live_feed": {
            "subscriptions": change_feed.total_listeners(),
        },
        "configuration": {
            "log_level": settings.log_level,
            "board_drag_threshold_px": settings.board_drag_threshold_px,
            "default_page_size": settings.default_page_size,
        },
        "identity": {
            "password_sign_in": True,
            "federated_sign_in": settings.federated_sign_in_enabled(),
            "token_expiry_minutes": settings.access_token_expire_minutes,
        },
    }

    config_issues = settings.validate_required_settings()
    if config_issues:
        if database_ok:
            report["status"] = "degraded"
        report["configuration_issues"] = config_issues
        logger.warning("Configuration issues found: %s", config_issues)

    return report
