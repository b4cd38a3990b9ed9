"""
core/security.py
Password hashing, signed identity tokens and the cookie-based auth dependency.
"""
from fastapi import Depends, HTTPException, Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from registry.core.config import settings
from registry.core.database import get_db
from registry.models.user_model import User
from registry.services.user_store import get_user
from registry.utils.helpers import get_logger

logger = get_logger(__name__)

pwd_ctx = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TOKEN_MAX_AGE_SECONDS = settings.TOKEN_MAX_AGE_DAYS * 24 * 60 * 60


def hash_password(plain: str) -> str:
    return pwd_ctx.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not plain or not hashed:
        return False
    try:
        return pwd_ctx.verify(plain, hashed)
    except ValueError:
        logger.warning("Stored password hash is not in a recognized format")
        return False


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.TOKEN_SECRET, salt=settings.TOKEN_SALT)


def generate_token(user_id: int) -> str:
    return _serializer().dumps({"id": user_id})


def read_token(token: str, max_age: int = TOKEN_MAX_AGE_SECONDS) -> int:
    """
    User id carried by a token.

    Raises:
        SignatureExpired: If the token is older than `max_age` seconds
        BadSignature: If the token was tampered with or is malformed
    """
    payload = _serializer().loads(token, max_age=max_age)
    if not isinstance(payload, dict) or not isinstance(payload.get("id"), int):
        raise BadSignature("Token payload does not carry a user id")
    return payload["id"]


def set_auth_cookie(response: Response, user_id: int) -> None:
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=generate_token(user_id),
        max_age=TOKEN_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def clear_auth_cookie(response: Response) -> None:
    """Replace the identity cookie with an already-expired one."""
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value="",
        max_age=0,
        expires=0,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the signed-in user from the identity cookie or reject with 401."""
    token = request.cookies.get(settings.COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authorized, no token")

    try:
        user_id = read_token(token)
    except SignatureExpired:
        logger.info("Rejected expired identity token")
        raise HTTPException(status_code=401, detail="Not authorized, token failed")
    except BadSignature:
        logger.warning("Rejected identity token with a bad signature")
        raise HTTPException(status_code=401, detail="Not authorized, token failed")

    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authorized, user not found")
    return user
