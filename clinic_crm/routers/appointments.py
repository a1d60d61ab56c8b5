# clinic_crm/routers/appointments.py
from datetime import date
from typing import List

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..limiter import limiter
from ..services.notification_service import NotificationService, build_confirmation, get_notification_service

logger = structlog.get_logger(__name__)

router = APIRouter(
    tags=["Appointments"],
    responses={404: {"description": "Not found"}},
)


def raise_for_crud_error(e: crud.CRUDError):
    if isinstance(e, crud.NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, crud.ConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/appointments", response_model=schemas.AppointmentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def create_new_appointment(
    appointment: schemas.AppointmentCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
):
    """Book a slot, then queue the confirmation email/WhatsApp without waiting on it."""
    try:
        db_appointment = crud.create_appointment(db, appointment)
    except crud.CRUDError as e:
        logger.warning("appointment_create_rejected", day=str(appointment.day), time=appointment.time, error=str(e))
        raise_for_crud_error(e)

    background_tasks.add_task(notifications.dispatch_confirmation, build_confirmation(db_appointment))
    logger.info("appointment_created", appointment_id=db_appointment.id, start=db_appointment.start_time.isoformat())
    return db_appointment


@router.get("/appointments", response_model=List[schemas.AppointmentResponse])
def read_appointments(
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
):
    """Retrieve non-cancelled appointments within a date range."""
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be before start_date")
    return crud.get_appointments_by_date_range(db, start_date=start_date, end_date=end_date)


@router.get("/appointments/cancelled", response_model=List[schemas.AppointmentResponse])
def read_cancelled_appointments(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return crud.get_cancelled_appointments(db, skip=skip, limit=limit)


@router.get("/appointments/{appointment_id}", response_model=schemas.AppointmentResponse)
def read_appointment(appointment_id: int, db: Session = Depends(get_db)):
    db_appointment = crud.get_appointment(db, appointment_id)
    if db_appointment is None:
        raise HTTPException(status_code=404, detail="The requested appointment could not be found.")
    return db_appointment


@router.put("/appointments/{appointment_id}", response_model=schemas.AppointmentResponse)
def update_appointment_endpoint(
    appointment_id: int,
    appointment_update: schemas.AppointmentUpdate,
    db: Session = Depends(get_db),
):
    """Edit an appointment: status, location, booking status, or a move to another day/time."""
    try:
        db_appointment = crud.update_appointment(db, appointment_id, appointment_update)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_appointment is None:
        raise HTTPException(status_code=404, detail="The requested appointment could not be found.")
    logger.info("appointment_updated", appointment_id=appointment_id, fields=sorted(appointment_update.model_fields_set))
    return db_appointment


@router.patch("/appointments/{appointment_id}/status", response_model=schemas.AppointmentResponse)
def update_appointment_status_endpoint(
    appointment_id: int,
    status_update: schemas.AppointmentStatusUpdate,
    db: Session = Depends(get_db),
):
    """Status transitions, including cancellation (appointments are never deleted)."""
    try:
        db_appointment = crud.set_appointment_status(db, appointment_id, status_update.status)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_appointment is None:
        raise HTTPException(status_code=404, detail="The requested appointment could not be found.")
    logger.info("appointment_status_changed", appointment_id=appointment_id, status=status_update.status.value)
    return db_appointment
