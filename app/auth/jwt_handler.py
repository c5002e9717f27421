from datetime import datetime, timedelta
from jose import jwt, JWTError
from typing import Optional
from app.config import settings
import logging

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a JWT the same way the identity provider does.

    Only used for local development and tests: production tokens come from the
    identity provider and are merely verified here.

    :param data: Claims to encode (ex: {"user_id": "3f0c...", "name": "Aida"})
    :param expires_delta: Token lifetime
    :return: Encoded JWT
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})

    if "user_id" in to_encode:
        to_encode["sub"] = str(to_encode.pop("user_id"))

    token = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.ALGORITHM)
    logger.debug(f"Token issued for sub={to_encode.get('sub')}, expires at {expire}")
    return token


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode and verify a JWT.

    Returns the payload when the signature is valid and a 'sub' claim is present,
    otherwise None.

    :param token: JWT to decode
    :return: Payload dict or None
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token decoding failed: {e}")
        return None

    sub = payload.get("sub")
    if not sub:
        logger.warning("Valid token but 'sub' claim is missing")
        return None

    return payload
