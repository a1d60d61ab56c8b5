# clinic_crm/routers/slots.py
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db

router = APIRouter(
    prefix="/slots",
    tags=["Slots"],
    responses={404: {"description": "Not found"}},
)


@router.get("/{target_date}", response_model=List[schemas.TimeSlotResponse])
def get_available_slots(
    target_date: date,
    duration: int = Query(15, ge=0, le=24 * 60, description="Consultation length in minutes; 0 means one step"),
    db: Session = Depends(get_db),
):
    """Bookable start times on `target_date` for a consultation of `duration` minutes."""
    try:
        slots = crud.get_available_slots(db, target_date, duration)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return [slot.to_dict() for slot in slots]
