"""
FastAPI dependencies (DB session, current user)
"""
from fastapi import Request, HTTPException, status

from wardrobe.infrastructure.db.session import get_db as _get_db


# Re-export get_db for routers
get_db = _get_db


def get_current_user_id(request: Request) -> int:
    """
    Current user id from the signed session cookie

    Authentication itself lives outside this service; it only has to put
    user_id into the session.

    Raises:
        HTTPException(401): no user in the session
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return int(user_id)
