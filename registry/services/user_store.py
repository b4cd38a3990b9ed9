"""
services/user_store.py
Lookup and creation of admin accounts.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from registry.models.user_model import User
from registry.utils.helpers import get_logger

logger = get_logger(__name__)


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.scalars(select(User).where(User.username == username)).first()


def create_user(db: Session, username: str, password_hash: str) -> User:
    user = User(username=username, password=password_hash)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User '{username}' registered with id {user.id}")
    return user
