# link-shortener/auth.py
import logging
from typing import Optional

from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.errors import DuplicateKeyError
from starlette.concurrency import run_in_threadpool

from config import Settings, get_settings
from errors import InvalidCredentials, Unauthorized, UserExists
from models import User
from schemas import LoginRequest, RegisterRequest, TokenResponse
from security import create_access_token, decode_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> PydanticObjectId:
    """
    Protected-route dependency: verifies the bearer token and yields the id
    of the user it was issued to.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("No token, authorization denied")
    return decode_access_token(credentials.credentials, settings)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, settings: Settings = Depends(get_settings)):
    email = payload.email.lower()
    if await User.find_one(User.email == email):
        raise UserExists()

    user = User(
        name=payload.name,
        email=email,
        password_hash=await run_in_threadpool(hash_password, payload.password, settings),
    )
    try:
        await user.insert()
    except DuplicateKeyError:
        raise UserExists()

    logger.info("Registered user %s", email)
    return TokenResponse(token=create_access_token(user.id, settings))


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, settings: Settings = Depends(get_settings)):
    email = payload.email.lower()
    user = await User.find_one(User.email == email)
    if user is None or not await run_in_threadpool(
        verify_password, payload.password, user.password_hash, settings
    ):
        logger.info("Failed login for %s", email)
        raise InvalidCredentials()

    logger.info("User %s logged in", email)
    return TokenResponse(token=create_access_token(user.id, settings))
