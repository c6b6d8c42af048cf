from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import bcrypt
import structlog
from fastapi import Depends, Header
from jose import ExpiredSignatureError, JWTError, jwt

from config import Settings
from deps import get_settings, get_store
from errors import AuthError, ConflictError, ValidationError
from model import User, UserLogin, UserRegister
from store import Store

logger = structlog.get_logger(__name__)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user: User, settings: Settings, now: Optional[datetime] = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": user.id,
        "email": user.email,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.token_ttl_days),
    }
    return jwt.encode(
        claims, settings.jwt_secret.get_secret_value(), algorithm=settings.jwt_algorithm
    )


def decode_access_token(token: str, settings: Settings) -> dict:
    try:
        claims = jwt.decode(
            token, settings.jwt_secret.get_secret_value(), algorithms=[settings.jwt_algorithm]
        )
    except ExpiredSignatureError:
        raise AuthError("Unauthorized: Token expired")
    except JWTError:
        raise AuthError("Unauthorized: Invalid token")

    if not claims.get("sub"):
        raise AuthError("Unauthorized: Invalid token")
    return claims


def register_user(payload: UserRegister, store: Store, settings: Settings) -> User:
    if store.find_user_by_email(payload.email):
        raise ConflictError("User already exists")

    password_hash = hash_password(payload.password, settings.bcrypt_rounds)
    user = store.add_user(name=payload.name, email=payload.email, password_hash=password_hash)
    logger.info("user_registered", user_id=user.id)
    return user


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("not-a-real-password", rounds)


def authenticate(payload: UserLogin, store: Store, settings: Settings) -> tuple[User, str]:
    user = store.find_user_by_email(payload.email)
    # Unknown emails still pay for a bcrypt check so timing does not reveal them
    password_hash = user.password_hash if user else _dummy_hash(settings.bcrypt_rounds)
    password_ok = verify_password(payload.password, password_hash)
    if user is None or not password_ok:
        logger.info("login_failed", known_user=user is not None)
        raise AuthError("Invalid email or password")

    token = create_access_token(user, settings)
    logger.info("login_succeeded", user_id=user.id)
    return user, token


def verify_token(
    authorization: str = Header(None),
    settings: Settings = Depends(get_settings),
    store: Store = Depends(get_store),
) -> User:
    if not authorization:
        raise AuthError("Unauthorized: No token provided")

    token_type, _, token = authorization.partition(" ")
    if token_type.lower() != "bearer" or not token.strip():
        raise AuthError("Unauthorized: Invalid token format")

    try:
        claims = decode_access_token(token.strip(), settings)
    except AuthError as e:
        logger.info("auth_rejected", reason=e.message)
        raise

    user = store.get_user(claims["sub"])
    if user is None:
        logger.info("auth_rejected", reason="unknown user")
        raise AuthError("Unauthorized: User not found")

    return user
