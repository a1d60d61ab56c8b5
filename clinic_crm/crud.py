# clinic_crm/crud.py - typed repository over the row store
from datetime import datetime, date, time, timedelta
from typing import Optional, List, Iterable
import logging
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from . import models, schemas
from .config import get_settings
from .scheduling import slots as slot_calc
from .scheduling.calendar import RescheduleResult, drop_datetime
from .services.pricing import PricedLine, GroupPricing, group_pricing

logger = logging.getLogger(__name__)


class CRUDError(Exception):
    pass


class NotFoundError(CRUDError):
    pass


class ConflictError(CRUDError):
    pass


def _commit(db: Session, action: str):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error while trying to {action}: {e}")
        raise ConflictError(f"Could not {action} due to a database integrity issue.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while trying to {action}: {e}")
        raise CRUDError(f"A database error occurred while trying to {action}.")


def _apply(obj, values: dict):
    for key, value in values.items():
        setattr(obj, key, value)


# ==================== PATIENTS & PROVIDERS ====================

def get_patient(db: Session, patient_id: int) -> Optional[models.Patient]:
    return db.query(models.Patient).filter(models.Patient.id == patient_id).first()


def create_patient(db: Session, patient: schemas.PatientCreate) -> models.Patient:
    db_patient = models.Patient(**patient.model_dump())
    db.add(db_patient)
    _commit(db, "create patient")
    db.refresh(db_patient)
    return db_patient


def get_provider(db: Session, provider_id: int) -> Optional[models.Provider]:
    return db.query(models.Provider).filter(models.Provider.id == provider_id).first()


def create_provider(db: Session, provider: schemas.ProviderCreate) -> models.Provider:
    db_provider = models.Provider(**provider.model_dump())
    db.add(db_provider)
    _commit(db, "create provider")
    db.refresh(db_provider)
    return db_provider


# ==================== APPOINTMENTS ====================

def _window() -> slot_calc.OperatingWindow:
    return slot_calc.OperatingWindow.from_settings(get_settings())


def get_appointment(db: Session, appointment_id: int) -> Optional[models.Appointment]:
    return db.query(models.Appointment).options(
        joinedload(models.Appointment.patient),
        joinedload(models.Appointment.provider),
    ).filter(models.Appointment.id == appointment_id).first()


def get_active_appointments_for_day(db: Session, day: date, exclude_id: Optional[int] = None) -> List[models.Appointment]:
    """
    Non-cancelled appointments around `day`.

    The query window is padded by a day on each side so rows stored in UTC are
    not missed; the slot calculator keeps only those starting on `day` locally.
    """
    range_start = datetime.combine(day - timedelta(days=1), time.min)
    range_end = datetime.combine(day + timedelta(days=2), time.min)
    query = db.query(models.Appointment).filter(
        models.Appointment.start_time >= range_start,
        models.Appointment.start_time < range_end,
        models.Appointment.status != models.AppointmentStatus.cancelled,
    )
    if exclude_id is not None:
        query = query.filter(models.Appointment.id != exclude_id)
    return query.order_by(models.Appointment.start_time).all()


def get_available_slots(db: Session, day: Optional[date], duration_minutes: Optional[int]) -> List[slot_calc.TimeSlot]:
    if day is None:
        return []
    existing = get_active_appointments_for_day(db, day)
    return slot_calc.compute_available_slots(day, duration_minutes, existing, _window())


def get_appointments_by_date_range(db: Session, start_date: date, end_date: date, include_cancelled: bool = False) -> List[models.Appointment]:
    query = db.query(models.Appointment).options(
        joinedload(models.Appointment.patient),
        joinedload(models.Appointment.provider),
    ).filter(
        models.Appointment.start_time >= datetime.combine(start_date, time.min),
        models.Appointment.start_time <= datetime.combine(end_date, time.max),
    )
    if not include_cancelled:
        query = query.filter(models.Appointment.status != models.AppointmentStatus.cancelled)
    return query.order_by(models.Appointment.start_time).all()


def get_cancelled_appointments(db: Session, skip: int = 0, limit: int = 100) -> List[models.Appointment]:
    return db.query(models.Appointment).filter(
        models.Appointment.status == models.AppointmentStatus.cancelled
    ).order_by(models.Appointment.start_time.desc()).offset(skip).limit(limit).all()


def _ensure_bookable(db: Session, day: date, start_minutes: int, duration: int, exclude_id: Optional[int] = None):
    existing = get_active_appointments_for_day(db, day, exclude_id=exclude_id)
    if not slot_calc.is_slot_available(day, start_minutes, duration, existing, _window()):
        raise ConflictError("The selected time slot is no longer available.")


def _start_end(day: date, time_value: str, duration: int):
    try:
        start_minutes = slot_calc.parse_time_value(time_value)
    except ValueError:
        raise CRUDError("Invalid date or time.")
    start = datetime.combine(day, time(start_minutes // 60, start_minutes % 60))
    return start_minutes, start, start + timedelta(minutes=duration)


def create_appointment(db: Session, appointment: schemas.AppointmentCreate) -> models.Appointment:
    """Book an appointment after re-checking the slot against the day's current bookings."""
    if get_patient(db, appointment.patient_id) is None:
        raise NotFoundError("Please select a patient.")
    if appointment.service_id is not None and get_service(db, appointment.service_id) is None:
        raise NotFoundError("Please select a service.")

    start_minutes, start, end = _start_end(appointment.day, appointment.time, appointment.duration_minutes)
    _ensure_bookable(db, appointment.day, start_minutes, appointment.duration_minutes)

    reason = appointment.reason
    if not reason and appointment.service_id is not None:
        reason = get_service(db, appointment.service_id).name
    db_appointment = models.Appointment(
        patient_id=appointment.patient_id,
        provider_id=appointment.provider_id,
        service_id=appointment.service_id,
        start_time=start,
        end_time=end,
        status=models.AppointmentStatus.scheduled,
        source=appointment.source,
        reason=reason or "Appointment",
        assigned_provider_name=appointment.assigned_provider_name,
        booking_channel_status=appointment.booking_channel_status,
        location=appointment.location,
    )
    db.add(db_appointment)
    _commit(db, "create appointment")
    db.refresh(db_appointment)
    logger.info(f"Created appointment {db_appointment.id} for patient {db_appointment.patient_id} at {start}")
    return db_appointment


def edit_duration_for(appointment: models.Appointment) -> int:
    """Duration shown in the edit form: 45 for long consultations, otherwise 15."""
    step = get_settings().slot_step_minutes
    if appointment.end_time is None:
        return step
    minutes = max((appointment.end_time - appointment.start_time).total_seconds() / 60, step)
    return 45 if minutes >= 45 else 15


def _local_start(appointment: models.Appointment) -> datetime:
    start = appointment.start_time
    if start.tzinfo is not None:
        start = start.astimezone(ZoneInfo(get_settings().clinic_timezone))
    return start


def _stored_duration(appointment: models.Appointment) -> int:
    if appointment.end_time is None or appointment.end_time <= appointment.start_time:
        return get_settings().default_appointment_minutes
    return int((appointment.end_time - appointment.start_time).total_seconds() // 60)


def _ensure_still_bookable(db: Session, appointment: models.Appointment, duration: int):
    """Re-check an appointment at its current start for `duration` minutes, ignoring itself."""
    start = _local_start(appointment)
    _ensure_bookable(db, start.date(), start.hour * 60 + start.minute, duration, exclude_id=appointment.id)


def _is_revived(appointment: models.Appointment, new_status: Optional[models.AppointmentStatus]) -> bool:
    cancelled = models.AppointmentStatus.cancelled
    return appointment.status == cancelled and new_status is not None and new_status != cancelled


def update_appointment(db: Session, appointment_id: int, appointment_update: schemas.AppointmentUpdate) -> Optional[models.Appointment]:
    db_appointment = get_appointment(db, appointment_id)
    if db_appointment is None:
        return None

    values = appointment_update.model_dump(exclude_unset=True, exclude={"day", "time", "duration_minutes"})
    new_status = values.get("status", db_appointment.status)
    active = new_status != models.AppointmentStatus.cancelled

    if appointment_update.day is not None:
        duration = appointment_update.duration_minutes or edit_duration_for(db_appointment)
        start_minutes, start, end = _start_end(appointment_update.day, appointment_update.time, duration)
        if active:
            _ensure_bookable(db, appointment_update.day, start_minutes, duration, exclude_id=appointment_id)
        values.update(start_time=start, end_time=end)
    elif appointment_update.duration_minutes is not None:
        duration = appointment_update.duration_minutes
        if active:
            _ensure_still_bookable(db, db_appointment, duration)
        values["end_time"] = db_appointment.start_time + timedelta(minutes=duration)
    elif _is_revived(db_appointment, new_status):
        _ensure_still_bookable(db, db_appointment, _stored_duration(db_appointment))

    _apply(db_appointment, values)
    _commit(db, "update appointment")
    db.refresh(db_appointment)
    return db_appointment


def set_appointment_status(db: Session, appointment_id: int, status: models.AppointmentStatus) -> Optional[models.Appointment]:
    db_appointment = get_appointment(db, appointment_id)
    if db_appointment is None:
        return None
    # the slot may have been rebooked while this one was cancelled
    if _is_revived(db_appointment, status):
        _ensure_still_bookable(db, db_appointment, _stored_duration(db_appointment))
    db_appointment.status = status
    _commit(db, "update appointment status")
    db.refresh(db_appointment)
    return db_appointment


# ==================== SERVICES CATALOG ====================

def get_categories(db: Session) -> List[models.ServiceCategory]:
    return db.query(models.ServiceCategory).order_by(models.ServiceCategory.sort_order, models.ServiceCategory.name).all()


def get_category(db: Session, category_id: int) -> Optional[models.ServiceCategory]:
    return db.query(models.ServiceCategory).filter(models.ServiceCategory.id == category_id).first()


def create_category(db: Session, category: schemas.ServiceCategoryCreate) -> models.ServiceCategory:
    db_category = models.ServiceCategory(**category.model_dump())
    db.add(db_category)
    _commit(db, "create category")
    db.refresh(db_category)
    return db_category


def update_category(db: Session, category_id: int, category_update: schemas.ServiceCategoryUpdate) -> Optional[models.ServiceCategory]:
    db_category = get_category(db, category_id)
    if db_category is None:
        return None
    _apply(db_category, category_update.model_dump(exclude_unset=True))
    _commit(db, "update category")
    db.refresh(db_category)
    return db_category


def delete_category(db: Session, category_id: int) -> bool:
    db_category = get_category(db, category_id)
    if db_category is None:
        return False
    in_use = db.query(models.Service).filter(models.Service.category_id == category_id).count()
    if in_use:
        raise ConflictError("Cannot delete category with existing services. Delete or reassign those services first.")
    db.delete(db_category)
    _commit(db, "delete category")
    return True


def get_services(db: Session, category_id: Optional[int] = None, active_only: bool = False) -> List[models.Service]:
    query = db.query(models.Service)
    if category_id is not None:
        query = query.filter(models.Service.category_id == category_id)
    if active_only:
        query = query.filter(models.Service.is_active.is_(True))
    return query.order_by(models.Service.name).all()


def get_service(db: Session, service_id: int) -> Optional[models.Service]:
    return db.query(models.Service).filter(models.Service.id == service_id).first()


def create_service(db: Session, service: schemas.ServiceCreate) -> models.Service:
    if get_category(db, service.category_id) is None:
        raise NotFoundError("Service category not found.")
    db_service = models.Service(**service.model_dump())
    db.add(db_service)
    _commit(db, "create service")
    db.refresh(db_service)
    return db_service


def update_service(db: Session, service_id: int, service_update: schemas.ServiceUpdate) -> Optional[models.Service]:
    db_service = get_service(db, service_id)
    if db_service is None:
        return None
    values = service_update.model_dump(exclude_unset=True)
    if "category_id" in values and get_category(db, values["category_id"]) is None:
        raise NotFoundError("Service category not found.")
    _apply(db_service, values)
    _commit(db, "update service")
    db.refresh(db_service)
    return db_service


def delete_service(db: Session, service_id: int) -> bool:
    db_service = get_service(db, service_id)
    if db_service is None:
        return False
    linked = db.query(models.ServiceGroupService).filter(models.ServiceGroupService.service_id == service_id).count()
    if linked:
        raise ConflictError("Cannot delete a service that belongs to a service group.")
    db.delete(db_service)
    _commit(db, "delete service")
    return True


def get_groups(db: Session) -> List[models.ServiceGroup]:
    return db.query(models.ServiceGroup).options(joinedload(models.ServiceGroup.items)).order_by(models.ServiceGroup.name).all()


def get_group(db: Session, group_id: int) -> Optional[models.ServiceGroup]:
    return db.query(models.ServiceGroup).options(
        joinedload(models.ServiceGroup.items).joinedload(models.ServiceGroupService.service)
    ).filter(models.ServiceGroup.id == group_id).first()


def _group_items(db: Session, items: Iterable[schemas.ServiceGroupItem]) -> List[models.ServiceGroupService]:
    rows = []
    for item in items:
        if get_service(db, item.service_id) is None:
            raise NotFoundError(f"Service {item.service_id} not found.")
        rows.append(models.ServiceGroupService(
            service_id=item.service_id,
            quantity=item.quantity,
            discount_percent=item.discount_percent,
        ))
    return rows


def create_group(db: Session, group: schemas.ServiceGroupCreate) -> models.ServiceGroup:
    db_group = models.ServiceGroup(**group.model_dump(exclude={"items"}))
    db_group.items = _group_items(db, group.items)
    db.add(db_group)
    _commit(db, "create service group")
    db.refresh(db_group)
    return db_group


def update_group(db: Session, group_id: int, group_update: schemas.ServiceGroupUpdate) -> Optional[models.ServiceGroup]:
    db_group = get_group(db, group_id)
    if db_group is None:
        return None
    _apply(db_group, group_update.model_dump(exclude_unset=True, exclude={"items"}))
    if group_update.items is not None:
        new_items = _group_items(db, group_update.items)
        # old links must be gone before the new ones hit the unique constraint
        db_group.items.clear()
        db.flush()
        db_group.items.extend(new_items)
    _commit(db, "update service group")
    db.refresh(db_group)
    return db_group


def delete_group(db: Session, group_id: int) -> bool:
    db_group = get_group(db, group_id)
    if db_group is None:
        return False
    db.delete(db_group)
    _commit(db, "delete service group")
    return True


def price_group(db_group: models.ServiceGroup) -> GroupPricing:
    lines = [
        PricedLine(
            service_id=item.service_id,
            unit_price=item.service.base_price if item.service else None,
            quantity=item.quantity,
            discount_percent=item.discount_percent,
        )
        for item in db_group.items
    ]
    return group_pricing(lines, db_group.discount_percent)


# ==================== COMPANIES / CONTACTS / PROJECTS ====================

def get_companies(db: Session, search: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[models.Company]:
    query = db.query(models.Company)
    if search:
        query = query.filter(models.Company.name.ilike(f"%{search}%"))
    return query.order_by(models.Company.name).offset(skip).limit(limit).all()


def get_company(db: Session, company_id: int) -> Optional[models.Company]:
    return db.query(models.Company).filter(models.Company.id == company_id).first()


def create_company(db: Session, company: schemas.CompanyCreate) -> models.Company:
    db_company = models.Company(**company.model_dump())
    db.add(db_company)
    _commit(db, "create company")
    db.refresh(db_company)
    return db_company


def update_company(db: Session, company_id: int, company_update: schemas.CompanyUpdate) -> Optional[models.Company]:
    db_company = get_company(db, company_id)
    if db_company is None:
        return None
    _apply(db_company, company_update.model_dump(exclude_unset=True))
    _commit(db, "update company")
    db.refresh(db_company)
    return db_company


def delete_company(db: Session, company_id: int) -> bool:
    db_company = get_company(db, company_id)
    if db_company is None:
        return False
    db.delete(db_company)
    _commit(db, "delete company")
    return True


def get_contacts_for_company(db: Session, company_id: int) -> List[models.Contact]:
    return db.query(models.Contact).filter(models.Contact.company_id == company_id).order_by(
        models.Contact.is_primary.desc(), models.Contact.first_name
    ).all()


def get_contact(db: Session, contact_id: int) -> Optional[models.Contact]:
    return db.query(models.Contact).filter(models.Contact.id == contact_id).first()


def _clear_other_primaries(db: Session, company_id: int, keep_id: Optional[int]):
    query = db.query(models.Contact).filter(
        models.Contact.company_id == company_id,
        models.Contact.is_primary.is_(True),
    )
    if keep_id is not None:
        query = query.filter(models.Contact.id != keep_id)
    for contact in query.all():
        contact.is_primary = False


def create_contact(db: Session, company_id: int, contact: schemas.ContactCreate) -> models.Contact:
    if get_company(db, company_id) is None:
        raise NotFoundError("Company not found.")
    db_contact = models.Contact(company_id=company_id, **contact.model_dump())
    if db_contact.is_primary:
        _clear_other_primaries(db, company_id, keep_id=None)
    db.add(db_contact)
    _commit(db, "create contact")
    db.refresh(db_contact)
    return db_contact


def update_contact(db: Session, contact_id: int, contact_update: schemas.ContactUpdate) -> Optional[models.Contact]:
    db_contact = get_contact(db, contact_id)
    if db_contact is None:
        return None
    values = contact_update.model_dump(exclude_unset=True)
    if values.get("is_primary"):
        _clear_other_primaries(db, db_contact.company_id, keep_id=contact_id)
    _apply(db_contact, values)
    _commit(db, "update contact")
    db.refresh(db_contact)
    return db_contact


def delete_contact(db: Session, contact_id: int) -> bool:
    db_contact = get_contact(db, contact_id)
    if db_contact is None:
        return False
    db.query(models.Project).filter(models.Project.primary_contact_id == contact_id).update(
        {models.Project.primary_contact_id: None}, synchronize_session=False
    )
    db.delete(db_contact)
    _commit(db, "delete contact")
    return True


def get_projects(db: Session, company_id: Optional[int] = None) -> List[models.Project]:
    query = db.query(models.Project)
    if company_id is not None:
        query = query.filter(models.Project.company_id == company_id)
    return query.order_by(models.Project.created_at.desc(), models.Project.id.desc()).all()


def get_project(db: Session, project_id: int) -> Optional[models.Project]:
    return db.query(models.Project).filter(models.Project.id == project_id).first()


def _check_primary_contact(db: Session, company_id: int, contact_id: Optional[int]):
    if contact_id is None:
        return
    contact = get_contact(db, contact_id)
    if contact is None or contact.company_id != company_id:
        raise CRUDError("Primary contact must belong to the project's company.")


def create_project(db: Session, project: schemas.ProjectCreate) -> models.Project:
    if get_company(db, project.company_id) is None:
        raise NotFoundError("Company not found.")
    _check_primary_contact(db, project.company_id, project.primary_contact_id)
    db_project = models.Project(**project.model_dump())
    db.add(db_project)
    _commit(db, "create project")
    db.refresh(db_project)
    return db_project


def update_project(db: Session, project_id: int, project_update: schemas.ProjectUpdate) -> Optional[models.Project]:
    db_project = get_project(db, project_id)
    if db_project is None:
        return None
    values = project_update.model_dump(exclude_unset=True)
    if "primary_contact_id" in values:
        _check_primary_contact(db, db_project.company_id, values["primary_contact_id"])
    _apply(db_project, values)
    _commit(db, "update project")
    db.refresh(db_project)
    return db_project


def delete_project(db: Session, project_id: int) -> bool:
    db_project = get_project(db, project_id)
    if db_project is None:
        return False
    db.delete(db_project)
    _commit(db, "delete project")
    return True


# ==================== SOCIAL CONTENT CALENDAR ====================

def get_social_projects(db: Session) -> List[models.SocialProject]:
    return db.query(models.SocialProject).order_by(models.SocialProject.name).all()


def get_social_project(db: Session, social_project_id: int) -> Optional[models.SocialProject]:
    return db.query(models.SocialProject).filter(models.SocialProject.id == social_project_id).first()


def create_social_project(db: Session, social_project: schemas.SocialProjectCreate) -> models.SocialProject:
    db_project = models.SocialProject(**social_project.model_dump())
    db.add(db_project)
    _commit(db, "create social project")
    db.refresh(db_project)
    return db_project


def get_posts(db: Session, social_project_id: int, year: Optional[int] = None, month: Optional[int] = None) -> List[models.SocialPost]:
    query = db.query(models.SocialPost).filter(models.SocialPost.project_id == social_project_id)
    if year is not None and month is not None:
        month_start = datetime(year, month, 1)
        month_end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        query = query.filter(
            models.SocialPost.scheduled_date >= month_start,
            models.SocialPost.scheduled_date < month_end,
        )
    return query.order_by(models.SocialPost.scheduled_date.asc()).all()


def get_post(db: Session, post_id: int) -> Optional[models.SocialPost]:
    return db.query(models.SocialPost).filter(models.SocialPost.id == post_id).first()


def create_post(db: Session, social_project_id: int, post: schemas.SocialPostCreate) -> models.SocialPost:
    if get_social_project(db, social_project_id) is None:
        raise NotFoundError("Social project not found.")
    db_post = models.SocialPost(project_id=social_project_id, **post.model_dump())
    db.add(db_post)
    _commit(db, "create post")
    db.refresh(db_post)
    return db_post


def update_post(db: Session, post_id: int, post_update: schemas.SocialPostUpdate) -> Optional[models.SocialPost]:
    db_post = get_post(db, post_id)
    if db_post is None:
        return None
    _apply(db_post, post_update.model_dump(exclude_unset=True))
    _commit(db, "update post")
    db.refresh(db_post)
    return db_post


def delete_post(db: Session, post_id: int) -> bool:
    db_post = get_post(db, post_id)
    if db_post is None:
        return False
    db.delete(db_post)
    _commit(db, "delete post")
    return True


def reschedule_post(db: Session, post_id: int, target: date) -> RescheduleResult:
    """Persist a calendar drop: the post moves to `target` at the configured drop hour."""
    new_date = drop_datetime(target, time(get_settings().post_drop_hour, 0))
    db_post = get_post(db, post_id)
    if db_post is None:
        return RescheduleResult(ok=False, post_id=post_id, error="Post not found.")
    db_post.scheduled_date = new_date
    try:
        _commit(db, "reschedule post")
    except CRUDError as e:
        return RescheduleResult(ok=False, post_id=post_id, error=str(e))
    return RescheduleResult(ok=True, post_id=post_id, scheduled_date=new_date)


# ==================== NOTIFICATIONS ====================

def create_notification(
    db: Session,
    channel: models.NotificationChannel,
    recipient: str,
    status: models.NotificationStatus,
    appointment_id: Optional[int] = None,
    subject: Optional[str] = None,
    error: Optional[str] = None,
    provider_message_id: Optional[str] = None,
) -> models.Notification:
    db_notification = models.Notification(
        appointment_id=appointment_id,
        channel=channel,
        recipient=recipient,
        subject=subject,
        status=status,
        error=error,
        provider_message_id=provider_message_id,
    )
    db.add(db_notification)
    _commit(db, "record notification")
    db.refresh(db_notification)
    return db_notification


def get_notifications(db: Session, appointment_id: Optional[int] = None, limit: int = 100) -> List[models.Notification]:
    query = db.query(models.Notification)
    if appointment_id is not None:
        query = query.filter(models.Notification.appointment_id == appointment_id)
    return query.order_by(models.Notification.id.desc()).limit(limit).all()
