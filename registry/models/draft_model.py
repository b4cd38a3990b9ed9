"""
models/draft_model.py
In-progress rows of the multi-row entry form, one draft per user.
"""
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from registry.core.database import Base
from registry.utils.helpers import utcnow


class Draft(Base):
    """
    Kept apart from the certificates table: draft rows may be incomplete or
    invalid and stay invisible to the registry until submitted.
    """
    __tablename__ = "drafts"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    rows: Mapped[Any] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
