"""Current-user resolution

Authentication itself belongs to the surrounding platform; it forwards the
authenticated user's ID in the ``X-User-Id`` header.
"""

from typing import Optional

from fastapi import Header, HTTPException, status


async def get_current_user_id(x_user_id: Optional[int] = Header(None, alias="X-User-Id")) -> int:
    """
    Resolve the authenticated user

    Raises:
        HTTPException: 401 when no user is forwarded
    """
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return x_user_id
