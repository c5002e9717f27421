from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.db.session import get_db
from app.auth.jwt_handler import decode_access_token
from app.auth.schemas import CallerIdentity
from app.users.services import ProfileService

logger = logging.getLogger(__name__)

# Bearer token issued by the identity provider
bearer = HTTPBearer(auto_error=False)


def _identity_from_token(token: Optional[str]) -> Optional[CallerIdentity]:
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload:
        return None
    return CallerIdentity(
        user_id=str(payload["sub"]),
        name=payload.get("name"),
        avatar_url=payload.get("avatar_url"),
    )


async def get_current_user(
    cred: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> CallerIdentity:
    """
    Resolve the caller from the bearer token.

    The profile row is created on first authentication.
    """
    if cred is None:
        logger.warning("Access denied: missing token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    caller = _identity_from_token(cred.credentials)
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    await ProfileService(db).ensure_profile(caller)
    return caller

