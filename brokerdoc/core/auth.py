"""Authentication dependencies for FastAPI routes.

The JWT middleware verifies the bearer token and stores the caller on
``request.state.user``; these dependencies expose it to route handlers.
"""

from typing import Optional

from fastapi import Depends, Request

from brokerdoc.core.exceptions import AuthenticationRequired, PermissionDenied
from brokerdoc.schemas.auth import CurrentUser
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


async def get_current_user_optional(request: Request) -> Optional[CurrentUser]:
    """Get the current user if the middleware authenticated one, None otherwise."""
    return getattr(request.state, "user", None)


async def get_current_user(
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
) -> CurrentUser:
    """Get the current authenticated user.

    Returns:
        CurrentUser: Authenticated user information

    Raises:
        AuthenticationRequired: If the request carries no verified identity
    """
    if not user:
        raise AuthenticationRequired("Authentication required")
    return user


def require_role(required_role: str):
    """Create a dependency that requires a specific user role.

    Args:
        required_role: The role required for access

    Returns:
        Dependency function that checks user role

    Example:
        admin_only = require_role("admin")

        @router.post("/templates")
        async def create_template(user: CurrentUser = Depends(admin_only)):
            ...
    """

    async def role_checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role != required_role:
            LOGGER.warning(
                f"Access denied for user {user.id}: insufficient role '{user.role}', required '{required_role}'"
            )
            raise PermissionDenied(f"Insufficient permissions. Required role: {required_role}")
        return user

    return role_checker


require_admin = require_role("admin")
