# backend/app/models/tenant_profile.py
# Contact, location and school profile records owned by a Tenant.

import enum
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import JSON, Date, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, OwnedMixin


class SchoolType(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    CHARTER = "charter"


class SchoolCategory(str, enum.Enum):
    ELEMENTARY = "elementary"
    MIDDLE = "middle"
    HIGH = "high"


class EducationLevel(str, enum.Enum):
    PRESCHOOL = "preschool"
    KINDERGARTEN = "kindergarten"
    ELEMENTARY = "elementary"
    MIDDLE = "middle"
    HIGH = "high"


class AcademicCalendarType(str, enum.Enum):
    SEMESTER = "semester"
    TRIMESTER = "trimester"
    QUARTER = "quarter"


class AccreditationStatus(str, enum.Enum):
    ACCREDITED = "accredited"
    PENDING = "pending"
    EXPIRED = "expired"
    DENIED = "denied"


class Address(OwnedMixin, Base):
    __tablename__ = "tenant_addresses"

    street1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    street2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)


class ContactPerson(OwnedMixin, Base):
    __tablename__ = "tenant_contact_persons"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class TenantContactInfo(OwnedMixin, Base):
    __tablename__ = "tenant_contact_info"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    address_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_addresses.id", ondelete="RESTRICT"), nullable=False
    )
    primary_contact_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_contact_persons.id", ondelete="RESTRICT"), nullable=False
    )
    billing_contact_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("tenant_contact_persons.id", ondelete="SET NULL"), nullable=True
    )
    technical_contact_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("tenant_contact_persons.id", ondelete="SET NULL"), nullable=True
    )
    emergency_contact_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("tenant_contact_persons.id", ondelete="SET NULL"), nullable=True
    )

    tenant = relationship("Tenant", back_populates="contact_info")
    address = relationship("Address", foreign_keys=[address_id], lazy="selectin")
    primary_contact = relationship("ContactPerson", foreign_keys=[primary_contact_id], lazy="selectin")
    billing_contact = relationship("ContactPerson", foreign_keys=[billing_contact_id], lazy="selectin")
    technical_contact = relationship("ContactPerson", foreign_keys=[technical_contact_id], lazy="selectin")
    emergency_contact = relationship("ContactPerson", foreign_keys=[emergency_contact_id], lazy="selectin")


class TenantLocation(OwnedMixin, Base):
    __tablename__ = "tenant_locations"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    locale: Mapped[str] = mapped_column(String(20), nullable=False, default="en_US")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    region: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)

    address_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_addresses.id", ondelete="RESTRICT"), nullable=False
    )

    tenant = relationship("Tenant", back_populates="location")
    address = relationship("Address", foreign_keys=[address_id], lazy="selectin")


class SchoolInfo(OwnedMixin, Base):
    __tablename__ = "tenant_school_info"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    type: Mapped[str] = mapped_column(String(20), nullable=False, default=SchoolType.PUBLIC.value)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default=SchoolCategory.ELEMENTARY.value)
    levels: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    founded_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    principal_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    student_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_enrollment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    staff_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    academic_calendar: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AcademicCalendarType.SEMESTER.value
    )
    languages_offered: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    special_programs: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    tenant = relationship("Tenant", back_populates="school_info")
    accreditation = relationship(
        "AccreditationInfo",
        back_populates="school_info",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class AccreditationInfo(OwnedMixin, Base):
    __tablename__ = "tenant_accreditations"

    school_info_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenant_school_info.id", ondelete="CASCADE"), index=True, nullable=False
    )

    body: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AccreditationStatus.PENDING.value)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    certificate_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    school_info = relationship("SchoolInfo", back_populates="accreditation")
