# app/core/roles.py

import enum


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "super_admin"  # platform operator, not bound to a tenant
    ADMIN = "admin"              # school administrator, reviews access requests
    PRINCIPAL = "principal"
    TEACHER = "teacher"
    ACCOUNTANT = "accountant"
    LIBRARIAN = "librarian"
    PARENT = "parent"
    STUDENT = "student"
    STAFF = "staff"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"


TENANT_REVIEWER_ROLES = {UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value}
