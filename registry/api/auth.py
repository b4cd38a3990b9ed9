"""
api/auth.py
Account registration, login/logout and the current-identity endpoint.
"""
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from registry.core.config import settings
from registry.core.database import get_db
from registry.core.security import (
    clear_auth_cookie,
    get_current_user,
    hash_password,
    set_auth_cookie,
    verify_password,
)
from registry.models.user_model import Credentials, User
from registry.services.user_store import create_user, get_user_by_username
from registry.services.validation import validate_password, validate_username
from registry.utils.helpers import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix=settings.API_PREFIX, tags=["Auth"])


@router.post("/register", status_code=201)
def register(body: Credentials, response: Response, db: Session = Depends(get_db)):
    """Create an admin account and sign it in."""
    username_check = validate_username(body.username)
    if not username_check.valid:
        raise HTTPException(status_code=400, detail=username_check.message)

    password_check = validate_password(body.password)
    if not password_check.valid:
        raise HTTPException(status_code=400, detail=password_check.message)

    if get_user_by_username(db, username_check.value) is not None:
        raise HTTPException(status_code=400, detail="Username already exists")

    user = create_user(db, username_check.value, hash_password(body.password))
    set_auth_cookie(response, user.id)
    return {"user": user.to_dict()}


@router.post("/login")
def login(body: Credentials, response: Response, db: Session = Depends(get_db)):
    if not body.username or not body.password:
        raise HTTPException(status_code=400, detail="All fields are required")

    user = get_user_by_username(db, body.username.strip())
    if user is None or not verify_password(body.password, user.password):
        logger.info(f"Failed login for username '{body.username.strip()}'")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    set_auth_cookie(response, user.id)
    logger.info(f"User {user.id} signed in")
    return {"user": user.to_dict()}


@router.post("/logout")
def logout(response: Response):
    clear_auth_cookie(response)
    return {"message": "Identity De-authorized"}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return user.to_dict()
