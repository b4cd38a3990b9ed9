"""
models/user_model.py
Admin accounts allowed to sign in to the registry.
"""
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from registry.core.database import Base
from registry.utils.helpers import utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    password: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def to_dict(self) -> dict:
        """Public view; the password hash never leaves the server."""
        return {"id": self.id, "username": self.username, "created_at": self.created_at}


class Credentials(BaseModel):
    """Request body for register and login. Both fields are checked by hand."""
    username: str | None = None
    password: str | None = None
