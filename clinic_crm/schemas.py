# clinic_crm/schemas.py
from datetime import datetime, date, time
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, EmailStr, field_validator, model_validator

from .models import (
    AppointmentStatus, AppointmentSource, BookingChannelStatus, WorkflowStatus,
    ShootStatus, PostType, NotificationChannel, NotificationStatus,
)
from .services.pricing import validate_discount

CONSULTATION_DURATIONS = (15, 45)


# --- Base Schemas ---
class BaseSchema(BaseModel):
    class Config:
        from_attributes = True


# --- Patient / Provider Schemas ---
class PatientBase(BaseSchema):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)

class PatientCreate(PatientBase):
    pass

class PatientResponse(PatientBase):
    id: int
    email: Optional[str] = None


class ProviderBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    specialty: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

class ProviderCreate(ProviderBase):
    pass

class ProviderResponse(ProviderBase):
    id: int
    email: Optional[str] = None


# --- Appointment Schemas ---
class AppointmentCreate(BaseSchema):
    """Booking form payload: a day, a slot value from /slots and a duration."""
    patient_id: int
    service_id: Optional[int] = None
    provider_id: Optional[int] = None
    day: date
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="Slot value, HH:MM")
    duration_minutes: int = 15
    reason: Optional[str] = None
    assigned_provider_name: Optional[str] = Field(None, max_length=100)
    booking_channel_status: BookingChannelStatus
    location: Optional[str] = Field(None, max_length=100)
    source: AppointmentSource = AppointmentSource.manual

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v not in CONSULTATION_DURATIONS:
            raise ValueError(f"Consultation duration must be one of {CONSULTATION_DURATIONS}")
        return v


class AppointmentUpdate(BaseSchema):
    """Edit form payload; time/day/duration move the appointment, the rest are in-place edits."""
    day: Optional[date] = None
    time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    duration_minutes: Optional[int] = None
    status: Optional[AppointmentStatus] = None
    location: Optional[str] = Field(None, max_length=100)
    booking_channel_status: Optional[BookingChannelStatus] = None
    assigned_provider_name: Optional[str] = Field(None, max_length=100)

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v is not None and v not in CONSULTATION_DURATIONS:
            raise ValueError(f"Consultation duration must be one of {CONSULTATION_DURATIONS}")
        return v

    @model_validator(mode="after")
    def check_day_and_time(self):
        if (self.day is None) != (self.time is None):
            raise ValueError("Please select a date and time.")
        return self


class AppointmentStatusUpdate(BaseSchema):
    status: AppointmentStatus


class AppointmentResponse(BaseSchema):
    id: int
    patient_id: int
    provider_id: Optional[int] = None
    service_id: Optional[int] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    status: AppointmentStatus
    source: AppointmentSource
    reason: Optional[str] = None
    assigned_provider_name: Optional[str] = None
    booking_channel_status: Optional[BookingChannelStatus] = None
    location: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    patient: Optional[PatientResponse] = None
    provider: Optional[ProviderResponse] = None


# --- Slot Schemas ---
class TimeSlotResponse(BaseModel):
    value: str
    label: str


# --- Catalog Schemas ---
class ServiceCategoryBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    sort_order: int = 1

class ServiceCategoryCreate(ServiceCategoryBase):
    pass

class ServiceCategoryUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    sort_order: Optional[int] = None

class ServiceCategoryResponse(ServiceCategoryBase):
    id: int


class ServiceBase(BaseSchema):
    category_id: int
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    is_active: bool = True
    base_price: Optional[Decimal] = Field(None, ge=0, description="CHF; leave blank if variable")

class ServiceCreate(ServiceBase):
    pass

class ServiceUpdate(BaseSchema):
    category_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    base_price: Optional[Decimal] = Field(None, ge=0)

class ServiceResponse(ServiceBase):
    id: int


class ServiceGroupItem(BaseSchema):
    service_id: int
    quantity: int = Field(1, ge=1)
    discount_percent: Optional[Decimal] = None

    @field_validator("discount_percent")
    @classmethod
    def check_discount(cls, v):
        return validate_discount(v)


class ServiceGroupBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    discount_percent: Optional[Decimal] = None

    @field_validator("discount_percent")
    @classmethod
    def check_discount(cls, v):
        return validate_discount(v)

class ServiceGroupCreate(ServiceGroupBase):
    items: List[ServiceGroupItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_services(self):
        ids = [item.service_id for item in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("A service can only appear once in a group.")
        return self

class ServiceGroupUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    discount_percent: Optional[Decimal] = None
    items: Optional[List[ServiceGroupItem]] = None

    @field_validator("discount_percent")
    @classmethod
    def check_discount(cls, v):
        return validate_discount(v)

class ServiceGroupItemResponse(ServiceGroupItem):
    id: int

class ServiceGroupResponse(ServiceGroupBase):
    id: int
    items: List[ServiceGroupItemResponse] = []


class GroupPricingResponse(BaseModel):
    group_id: int
    original_total: Decimal
    total: Decimal
    total_quantity: int
    has_discount: bool


# --- Company / Contact / Project Schemas ---
class CompanyBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=200)
    industry: Optional[str] = None
    website: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

class CompanyCreate(CompanyBase):
    pass

class CompanyUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    industry: Optional[str] = None
    website: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

class CompanyResponse(CompanyBase):
    id: int
    email: Optional[str] = None


class ContactBase(BaseSchema):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    job_title: Optional[str] = None
    is_primary: bool = False

class ContactCreate(ContactBase):
    pass

class ContactUpdate(BaseSchema):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    job_title: Optional[str] = None
    is_primary: Optional[bool] = None

class ContactResponse(ContactBase):
    id: int
    company_id: int
    email: Optional[str] = None


class ProjectBase(BaseSchema):
    company_id: int
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: str = "active"
    primary_contact_id: Optional[int] = None
    social_calendar_id: Optional[int] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None

class ProjectCreate(ProjectBase):
    pass

class ProjectUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[str] = None
    primary_contact_id: Optional[int] = None
    social_calendar_id: Optional[int] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None

class ProjectResponse(ProjectBase):
    id: int


# --- Social Calendar Schemas ---
class SocialProjectBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=200)
    platforms: List[str] = Field(default_factory=list)
    brand_color: Optional[str] = None

class SocialProjectCreate(SocialProjectBase):
    pass

class SocialProjectResponse(SocialProjectBase):
    id: int


class SocialPostBase(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    caption: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    workflow_status: WorkflowStatus = WorkflowStatus.new
    shoot_status: ShootStatus = ShootStatus.pending
    shoot_date: Optional[date] = None
    shoot_time: Optional[time] = None
    post_type: PostType = PostType.organic
    content_type: Optional[str] = None
    platforms: List[str] = Field(default_factory=list)

class SocialPostCreate(SocialPostBase):
    pass

class SocialPostUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    caption: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    workflow_status: Optional[WorkflowStatus] = None
    shoot_status: Optional[ShootStatus] = None
    shoot_date: Optional[date] = None
    shoot_time: Optional[time] = None
    post_type: Optional[PostType] = None
    content_type: Optional[str] = None
    platforms: Optional[List[str]] = None

class SocialPostResponse(SocialPostBase):
    id: int
    project_id: int


class PostRescheduleRequest(BaseModel):
    target_date: date


class CalendarCell(BaseModel):
    day: Optional[int] = None
    post_ids: List[int] = Field(default_factory=list)


class CalendarMonthResponse(BaseModel):
    """Month view: Sunday-first grid cells (None = padding) and the posts placed on them."""
    year: int
    month: int
    cells: List[CalendarCell]
    posts: List[SocialPostResponse]


# --- Notification Schemas ---
class NotificationResponse(BaseSchema):
    id: int
    appointment_id: Optional[int] = None
    channel: NotificationChannel
    recipient: str
    subject: Optional[str] = None
    status: NotificationStatus
    error: Optional[str] = None
    created_at: Optional[datetime] = None


# --- Health ---
class HealthResponse(BaseModel):
    status: str
    database: str
    email: str
    whatsapp: str
    timestamp: datetime
