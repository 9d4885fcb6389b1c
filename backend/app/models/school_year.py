# backend/app/models/school_year.py
import enum
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.dates import today
from app.db.base import AuditMixin, Base


class SchoolYearStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class EnrollmentStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"
    PENDING = "pending"


class AcademicCalendarStatus(str, enum.Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    DRAFT = "draft"


# draft -> active -> archived -> draft
NEXT_STATUS = {
    SchoolYearStatus.DRAFT.value: SchoolYearStatus.ACTIVE.value,
    SchoolYearStatus.ACTIVE.value: SchoolYearStatus.ARCHIVED.value,
    SchoolYearStatus.ARCHIVED.value: SchoolYearStatus.DRAFT.value,
}

DEFAULT_INDEX_NAME = "uq_school_years_tenant_default"
DEFAULT_INDEX_WHERE = "is_default AND deleted_at IS NULL"


def duration_days(start: date, end: date) -> int:
    return (end - start).days


class SchoolYear(AuditMixin, Base):
    __tablename__ = "school_years"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_school_years_tenant_code"),
        Index("ix_school_years_tenant_dates", "tenant_id", "start_date", "end_date"),
        # At most one live default per tenant; racing default flips fail here.
        Index(
            DEFAULT_INDEX_NAME,
            "tenant_id",
            unique=True,
            postgresql_where=text(DEFAULT_INDEX_WHERE),
            sqlite_where=text(DEFAULT_INDEX_WHERE),
        ),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), index=True, nullable=False
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SchoolYearStatus.DRAFT.value)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    enrollment_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    enrollment_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    grade_submission_deadline: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    graduation_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    student_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    staff_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    class_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    term_count: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    enrollment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EnrollmentStatus.PENDING.value
    )
    academic_calendar_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AcademicCalendarStatus.DRAFT.value
    )

    deleted_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    @property
    def duration(self) -> int:
        return duration_days(self.start_date, self.end_date)

    @property
    def is_active(self) -> bool:
        return self.status == SchoolYearStatus.ACTIVE.value

    @property
    def is_current(self) -> bool:
        return self.start_date <= today() <= self.end_date

    @property
    def has_data(self) -> bool:
        return self.student_count > 0 or self.staff_count > 0 or self.class_count > 0
