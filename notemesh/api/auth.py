from fastapi import HTTPException, Request, status


def verify_session(request: Request) -> str:
    """Return the id of the user authenticated on this session.

    Sessions are issued elsewhere; this only reads the signed session cookie.
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user_id
