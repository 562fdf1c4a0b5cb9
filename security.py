# link-shortener/security.py
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt
from beanie import PydanticObjectId
from bson.errors import InvalidId
from passlib.context import CryptContext

from config import Settings
from errors import Unauthorized


@lru_cache
def get_password_context(rounds: int) -> CryptContext:
    # bcrypt generates a fresh salt per hash; rounds is the work factor
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, settings: Settings) -> str:
    return get_password_context(settings.BCRYPT_ROUNDS).hash(password)


def verify_password(password: str, password_hash: str, settings: Settings) -> bool:
    return get_password_context(settings.BCRYPT_ROUNDS).verify(password, password_hash)


def create_access_token(user_id: PydanticObjectId, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> PydanticObjectId:
    """
    Verifies signature and expiry and returns the user id carried in `sub`.
    Raises Unauthorized for anything that is not a valid, unexpired token.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise Unauthorized()

    try:
        return PydanticObjectId(payload["sub"])
    except (InvalidId, TypeError):
        raise Unauthorized()
