"""Current user endpoint."""

from fastapi import APIRouter, Depends

from worklens.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile, role and permissions."""

    return {
        "id": str(context.user_id),
        "email": context.email,
        "full_name": context.full_name,
        "role": context.role.value if context.role is not None else None,
        "permissions": sorted(permission.value for permission in context.permissions),
        "is_privileged": context.is_privileged,
    }
