# backend/app/schemas/school_year.py
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from app.models.school_year import AcademicCalendarStatus, EnrollmentStatus, SchoolYearStatus
from app.schemas.common import BaseQuery, CamelModel

SCHOOL_YEAR_SORT_FIELDS = Literal[
    "name", "code", "startDate", "endDate", "status", "isDefault", "createdAt", "updatedAt"
]


def _strip_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = value.strip()
    if not v:
        raise ValueError("code must not be empty")
    return v


class _SchoolYearFields(CamelModel):
    description: Optional[str] = None
    enrollment_start_date: Optional[date] = None
    enrollment_end_date: Optional[date] = None
    grade_submission_deadline: Optional[date] = None
    graduation_date: Optional[date] = None
    student_count: Optional[int] = Field(default=None, ge=0)
    staff_count: Optional[int] = Field(default=None, ge=0)
    class_count: Optional[int] = Field(default=None, ge=0)
    term_count: Optional[int] = Field(default=None, ge=1, le=10)
    enrollment_status: Optional[EnrollmentStatus] = None
    academic_calendar_status: Optional[AcademicCalendarStatus] = None


class SchoolYearCreate(_SchoolYearFields):
    tenant_id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=20)
    start_date: date
    end_date: date
    status: SchoolYearStatus = SchoolYearStatus.DRAFT
    is_default: bool = False

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return _strip_code(v)


class SchoolYearUpdate(_SchoolYearFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    code: Optional[str] = Field(default=None, min_length=1, max_length=20)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[SchoolYearStatus] = None
    is_default: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: Optional[str]) -> Optional[str]:
        return _strip_code(v)


class SchoolYearQuery(BaseQuery):
    sort_by: SCHOOL_YEAR_SORT_FIELDS = "startDate"
    tenant_id: Optional[uuid.UUID] = None
    status: Optional[SchoolYearStatus] = None
    is_default: Optional[bool] = None
    start_date_from: Optional[date] = None
    start_date_to: Optional[date] = None
    end_date_from: Optional[date] = None
    end_date_to: Optional[date] = None
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None
    enrollment_status: Optional[EnrollmentStatus] = None
    academic_calendar_status: Optional[AcademicCalendarStatus] = None


class SchoolYearResponse(CamelModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    code: str
    start_date: date
    end_date: date
    status: SchoolYearStatus
    is_default: bool
    description: Optional[str] = None
    enrollment_start_date: Optional[date] = None
    enrollment_end_date: Optional[date] = None
    grade_submission_deadline: Optional[date] = None
    graduation_date: Optional[date] = None
    student_count: int
    staff_count: int
    class_count: int
    term_count: int
    enrollment_status: EnrollmentStatus
    academic_calendar_status: AcademicCalendarStatus

    duration: int
    is_active: bool
    is_current: bool

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None
    deleted_by: Optional[uuid.UUID] = None


class SchoolYearSummary(CamelModel):
    id: uuid.UUID
    name: str
    code: str
    start_date: date
    end_date: date
    status: SchoolYearStatus
    is_default: bool
    is_current: bool


class BulkStatusUpdate(CamelModel):
    ids: list[uuid.UUID] = Field(min_length=1)
    status: SchoolYearStatus


class BulkDelete(CamelModel):
    ids: list[uuid.UUID] = Field(min_length=1)


class UpcomingDeadline(CamelModel):
    school_year_id: uuid.UUID
    school_year_name: str
    type: Literal["enrollment_end", "grade_submission", "graduation"]
    deadline: date
    days_remaining: int


class SchoolYearStatistics(CamelModel):
    total: int
    active: int
    draft: int
    archived: int
    deleted: int
    current_default: Optional[SchoolYearSummary] = None
    total_students: int
    total_staff: int
    total_classes: int
    average_duration_days: float
    upcoming_deadlines: list[UpcomingDeadline]
