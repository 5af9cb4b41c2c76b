from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from .errors import AuthError, ValidationError
from .models import UserEntity
from .schemas import LoginRequest, SignupRequest
from .settings import Settings, get_settings
from .users import UserRepository, get_user_repository

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)
_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Return a salted hash suitable for storage."""
    return _pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored hash."""
    return _pwd_context.verify(password, password_hash)


# PUBLIC_INTERFACE
def create_access_token(user_id: str, settings: Optional[Settings] = None, now: Optional[datetime] = None) -> str:
    """
    Issue a signed bearer token for user_id.

    The token carries the user id in ``sub`` and expires after
    ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    s = settings or get_settings()
    issued = now or datetime.now(timezone.utc)
    if issued.tzinfo is None:
        issued = issued.replace(tzinfo=timezone.utc)
    expires = issued + timedelta(minutes=s.access_token_expire_minutes)
    claims = {
        "sub": user_id,
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(claims, s.jwt_secret, algorithm=s.jwt_algorithm)


# PUBLIC_INTERFACE
def decode_access_token(token: str, settings: Optional[Settings] = None) -> str:
    """
    Validate a bearer token and return the user id it was issued for.

    Raises:
        AuthError if the token is malformed, has a bad signature or has expired.
    """
    s = settings or get_settings()
    try:
        claims = jwt.decode(token, s.jwt_secret, algorithms=[s.jwt_algorithm])
    except JWTError as e:
        raise AuthError("Token is not valid") from e
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthError("Token is not valid")
    return subject


# PUBLIC_INTERFACE
def signup(users: UserRepository, payload: SignupRequest) -> Tuple[str, UserEntity]:
    """
    Register a new user and return ``(token, user)``.

    Raises:
        ValidationError on the ``email`` field if the address is already registered.
    """
    user = users.create(payload.name, payload.email, hash_password(payload.password))
    if user is None:
        raise ValidationError.for_field("email", "User already exists with this email")
    logger.info("Registered user %s", user["id"])
    return create_access_token(user["id"]), user


# PUBLIC_INTERFACE
def login(users: UserRepository, payload: LoginRequest) -> Tuple[str, UserEntity]:
    """
    Exchange credentials for ``(token, user)``.

    Raises:
        AuthError if the email is unknown or the password does not match.
    """
    user = users.get_by_email(payload.email)
    if user is None or not verify_password(payload.password, user["password_hash"]):
        logger.warning("Failed login attempt")
        raise AuthError("Invalid email or password")
    return create_access_token(user["id"]), user


# PUBLIC_INTERFACE
async def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
    users: UserRepository = Depends(get_user_repository),
) -> UserEntity:
    """
    Resolve the caller from the ``Authorization: Bearer <token>`` header.

    Raises:
        AuthError(401) if the header is missing, the token is invalid, or the
        user it names no longer exists.
    """
    if creds is None or not creds.credentials:
        raise AuthError("No token provided")

    try:
        user_id = decode_access_token(creds.credentials)
    except AuthError:
        logger.warning("Rejected invalid bearer token")
        raise

    user = users.get(user_id)
    if user is None:
        logger.warning("Bearer token names unknown user %s", user_id)
        raise AuthError("Token is not valid")
    return user


# PUBLIC_INTERFACE
async def get_current_owner_id(user: UserEntity = Depends(get_current_user)) -> str:
    """The authenticated caller's id, threaded into every task repository call."""
    return user["id"]
