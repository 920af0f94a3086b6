"""
FastAPI dependencies for handlers registered on a Controller.
Expose the identity that the bearer-auth middleware verified.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from core.config import Settings, get_settings

SettingsDep = Annotated[Settings, Depends(get_settings)]


async def get_identity_required(request: Request) -> str:
    """Identity set by the auth middleware; 401 if the request was not authenticated."""
    identity = getattr(request.state, "identity", None)
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


CurrentIdentity = Annotated[str, Depends(get_identity_required)]
