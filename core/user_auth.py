"""
End-user identity.

Sessions are handled by the upstream auth layer, which forwards the
authenticated user's id in the X-User-Id header.
"""

from typing import Optional

from fastapi import Header

from core.exceptions import AuthorizationError

USER_ID_HEADER = "X-User-Id"


def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """
    Read the caller's user id.

    Raises:
        AuthorizationError: Header missing or blank (unauthenticated)
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthorizationError("Authentication required", authenticated=False)
    return x_user_id.strip()
