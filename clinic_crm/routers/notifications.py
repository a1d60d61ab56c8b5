# clinic_crm/routers/notifications.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
)


@router.get("", response_model=List[schemas.NotificationResponse])
def read_notifications(
    appointment_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Outbound delivery attempts, newest first."""
    return crud.get_notifications(db, appointment_id=appointment_id, limit=limit)
