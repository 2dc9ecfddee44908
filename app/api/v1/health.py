import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health(request: Request, db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning("[health] database check failed: %s", e)
        database = "unavailable"

    settings = get_settings()
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "environment": settings.environment,
        "request_id": getattr(request.state, "request_id", None),
    }
