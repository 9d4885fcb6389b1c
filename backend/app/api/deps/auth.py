import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status

from app.api.v1.auth import get_current_user
from app.core.roles import UserRole
from app.models.user import User

ALLOWED_ROLES = {r.value for r in UserRole}


def is_super_admin(user: User) -> bool:
    return user.role == UserRole.SUPER_ADMIN.value


def require_roles(*allowed_roles: str):
    """
    Enforce user.role is in allowed_roles.
    """
    allowed = {getattr(r, "value", r).lower() for r in allowed_roles}
    unknown = allowed - ALLOWED_ROLES
    if unknown:
        raise ValueError(f"Unknown role(s): {sorted(unknown)}. Allowed: {sorted(ALLOWED_ROLES)}")

    async def _checker(user: User = Depends(get_current_user)) -> User:
        role = (user.role or "").lower()
        if role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient role: {role}. Allowed: {', '.join(sorted(allowed))}",
            )
        return user

    return _checker


require_super_admin = require_roles(UserRole.SUPER_ADMIN)


def ensure_tenant_access(user: User, tenant_id: uuid.UUID) -> None:
    """Non-super-admins may only touch their own tenant's records."""
    if is_super_admin(user):
        return
    if user.tenant_id is None or user.tenant_id != tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this tenant",
        )


def ensure_tenant_admin(user: User, tenant_id: uuid.UUID) -> None:
    """Super admins, or admins of the given tenant."""
    if is_super_admin(user):
        return
    if user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only tenant administrators can modify this tenant",
        )
    ensure_tenant_access(user, tenant_id)


def scoped_tenant_id(user: User, requested: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
    """
    Tenant filter to apply to a listing. Super admins see what they ask for;
    everybody else is pinned to their own tenant.
    """
    if is_super_admin(user):
        return requested
    if requested is not None:
        ensure_tenant_access(user, requested)
        return requested
    if user.tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not belong to a tenant",
        )
    return user.tenant_id
