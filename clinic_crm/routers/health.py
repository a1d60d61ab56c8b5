# clinic_crm/routers/health.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..config import get_settings
from ..database import get_db, ping

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["Health Checks"],
)


@router.get("", response_model=schemas.HealthResponse)
def health_check(db: Session = Depends(get_db)):
    settings = get_settings()
    try:
        ping(db)
        database = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "database": database,
        "email": "enabled" if settings.email_enabled else "disabled",
        "whatsapp": "enabled" if settings.whatsapp_enabled else "disabled",
        "timestamp": datetime.now(timezone.utc),
    }
