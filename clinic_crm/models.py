# clinic_crm/models.py
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Date, Time,
    Enum as SQLAlchemyEnum, Boolean, JSON, Numeric, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base
import enum


class AppointmentStatus(str, enum.Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class AppointmentSource(str, enum.Enum):
    manual = "manual"
    ai = "ai"


class BookingChannelStatus(str, enum.Enum):
    """Front-desk booking labels shown on the calendar card."""
    video_conference = "Video Conference"
    telephone = "Telephone"
    urgent = "Urgent"
    in_person = "In Person"
    physical_consultation = "Physical Consultation"
    paid = "Paid"
    invoice_sent = "Invoice Sent"
    cb = "CB"
    waiting_room = "Waiting Room"
    at_the_doctors = "At The Doctors"
    to_do = "To Do"
    done = "Done"
    attention = "Attention"
    canceled = "Canceled"
    didnt_come = "Didn't Come"
    late = "Late"
    to_pay = "To Pay"
    missing = "Missing"
    cash = "Cash"


class WorkflowStatus(str, enum.Enum):
    new = "new"
    creatives_approval = "creatives_approval"
    captions = "captions"
    client_approval = "client_approval"
    approved = "approved"
    posted = "posted"


class ShootStatus(str, enum.Enum):
    pending = "pending"
    scheduled = "scheduled"
    completed = "completed"
    cancelled = "cancelled"


class PostType(str, enum.Enum):
    organic = "organic"
    boosted = "boosted"


class NotificationChannel(str, enum.Enum):
    email = "email"
    whatsapp = "whatsapp"


class NotificationStatus(str, enum.Enum):
    sent = "sent"
    failed = "failed"
    skipped = "skipped"


# ==================== Patients & Providers ====================

class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(30), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    appointments = relationship("Appointment", back_populates="patient")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Provider(Base):
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    specialty = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    appointments = relationship("Appointment", back_populates="provider")


class Appointment(Base):
    """A booked consultation. Never deleted; cancellation is a status change."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index('idx_appointments_patient_date', 'patient_id', 'start_time'),
        Index('idx_appointments_provider_date', 'provider_id', 'start_time'),
        Index('idx_appointments_status_date', 'status', 'start_time'),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    provider_id = Column(Integer, ForeignKey("providers.id", ondelete="SET NULL"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="SET NULL"), nullable=True)

    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(SQLAlchemyEnum(AppointmentStatus, name='appointment_status'), default=AppointmentStatus.scheduled, nullable=False)
    source = Column(SQLAlchemyEnum(AppointmentSource, name='appointment_source'), default=AppointmentSource.manual, nullable=False)

    # Service label shown on the calendar; first-class columns replace the old bracket tags
    reason = Column(Text, nullable=True)
    assigned_provider_name = Column(String(100), nullable=True)
    booking_channel_status = Column(
        SQLAlchemyEnum(BookingChannelStatus, name='booking_channel_status', values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    location = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    patient = relationship("Patient", back_populates="appointments")
    provider = relationship("Provider", back_populates="appointments")
    service = relationship("Service")
    notifications = relationship("Notification", back_populates="appointment")


# ==================== Services Catalog ====================

class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    services = relationship("Service", back_populates="category")


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        UniqueConstraint('category_id', 'name', name='uq_services_category_name'),
    )

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("service_categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    base_price = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("ServiceCategory", back_populates="services")


class ServiceGroup(Base):
    """A bundle of services sold together, optionally at a discount."""
    __tablename__ = "service_groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    discount_percent = Column(Numeric(5, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship("ServiceGroupService", back_populates="group", cascade="all, delete-orphan")


class ServiceGroupService(Base):
    __tablename__ = "service_group_services"
    __table_args__ = (
        UniqueConstraint('group_id', 'service_id', name='uq_service_group_services_group_service'),
    )

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("service_groups.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    discount_percent = Column(Numeric(5, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    group = relationship("ServiceGroup", back_populates="items")
    service = relationship("Service")


# ==================== Companies, Contacts, Projects ====================

class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    industry = Column(String(100), nullable=True)
    website = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    contacts = relationship("Contact", back_populates="company", cascade="all, delete-orphan")
    projects = relationship("Project", back_populates="company", cascade="all, delete-orphan")


class Contact(Base):
    __tablename__ = "contacts"
    __table_args__ = (
        Index('idx_contacts_company_primary', 'company_id', 'is_primary'),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    mobile = Column(String(30), nullable=True)
    job_title = Column(String(100), nullable=True)
    # At most one per company by convention only
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    company = relationship("Company", back_populates="contacts")


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    primary_contact_id = Column(Integer, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    social_calendar_id = Column(Integer, ForeignKey("social_projects.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default="active")
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    company = relationship("Company", back_populates="projects")
    primary_contact = relationship("Contact")
    social_calendar = relationship("SocialProject")


# ==================== Social Media Content Calendar ====================

class SocialProject(Base):
    __tablename__ = "social_projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    platforms = Column(JSON, nullable=False, default=list)
    brand_color = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    posts = relationship("SocialPost", back_populates="project", cascade="all, delete-orphan")


class SocialPost(Base):
    __tablename__ = "social_posts"
    __table_args__ = (
        Index('idx_social_posts_project_date', 'project_id', 'scheduled_date'),
        Index('idx_social_posts_workflow_status', 'workflow_status'),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("social_projects.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    caption = Column(Text, nullable=True)
    scheduled_date = Column(DateTime, nullable=True)
    # Free-form stage label; any value may be set directly
    workflow_status = Column(SQLAlchemyEnum(WorkflowStatus, name='workflow_status'), nullable=False, default=WorkflowStatus.new)
    shoot_status = Column(SQLAlchemyEnum(ShootStatus, name='shoot_status'), nullable=False, default=ShootStatus.pending)
    shoot_date = Column(Date, nullable=True)
    shoot_time = Column(Time, nullable=True)
    post_type = Column(SQLAlchemyEnum(PostType, name='post_type'), nullable=False, default=PostType.organic)
    content_type = Column(String(50), nullable=True)
    platforms = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    project = relationship("SocialProject", back_populates="posts")


# ==================== Outbound Notifications ====================

class Notification(Base):
    """One outbound delivery attempt (email / WhatsApp)."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True, index=True)
    channel = Column(SQLAlchemyEnum(NotificationChannel, name='notification_channel'), nullable=False)
    recipient = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=True)
    status = Column(SQLAlchemyEnum(NotificationStatus, name='notification_status'), nullable=False)
    error = Column(Text, nullable=True)
    provider_message_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    appointment = relationship("Appointment", back_populates="notifications")
