"""Authentication context extraction and RBAC guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from worklens.core.config import get_settings
from worklens.db.dependencies import get_db_session
from worklens.models.entities import Role, User


class AppRole(str, Enum):
    """Application role names stored on the ``roles`` table."""

    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"


class Permission(str, Enum):
    REPORTS_READ = "reports.read"
    ADMIN_ACCESS = "admin.access"


ROLE_PERMISSIONS: dict[AppRole, frozenset[Permission]] = {
    AppRole.ADMIN: frozenset({Permission.REPORTS_READ, Permission.ADMIN_ACCESS}),
    AppRole.MANAGER: frozenset({Permission.REPORTS_READ}),
    AppRole.MEMBER: frozenset({Permission.REPORTS_READ}),
    AppRole.VIEWER: frozenset({Permission.REPORTS_READ}),
}


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    email: str
    full_name: str
    role: AppRole | None

    @property
    def permissions(self) -> frozenset[Permission]:
        if self.role is None:
            return frozenset()
        return ROLE_PERMISSIONS[self.role]

    @property
    def is_privileged(self) -> bool:
        """Whether dashboards show organization-wide data to this user."""

        return self.role is AppRole.ADMIN


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _resolve_user_id(x_user_id: str | None) -> UUID:
    settings = get_settings()
    if x_user_id:
        try:
            return UUID(x_user_id.strip())
        except ValueError as exc:
            raise _unauthorized("X-USER-ID header must be a UUID.") from exc

    if settings.auth_allow_dev_principal and settings.auth_dev_user_id is not None:
        return settings.auth_dev_user_id

    raise _unauthorized("Missing identity header. Expected X-USER-ID or enable development principal fallback.")


def _role_for(db: Session, user: User) -> AppRole | None:
    """Role of ``user``; users without a recognised role hold no permissions."""

    if user.role_id is None:
        return None
    role_name = db.scalar(select(Role.name).where(Role.id == user.role_id))
    try:
        return AppRole(role_name)
    except ValueError:
        return None


def get_current_user_context(
    x_user_id: str | None = Header(default=None, alias="X-USER-ID"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and role.

    Header strategy: trusted ``X-USER-ID`` header from the gateway or test
    clients. Users are never created here.
    """

    user_id = _resolve_user_id(x_user_id)
    user = db.scalar(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
    if user is None:
        raise _unauthorized("Unknown user.")

    return RequestUserContext(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=_role_for(db, user),
    )


def has_permission(context: RequestUserContext, permission: Permission) -> bool:
    return permission in context.permissions


def require_permissions(*permissions: Permission):
    """Dependency factory requiring every provided permission."""

    required = set(permissions)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not all(has_permission(context, permission) for permission in required):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this operation.",
            )
        return context

    return dependency
