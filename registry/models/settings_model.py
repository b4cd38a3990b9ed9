"""
models/settings_model.py
Key/value storage for system settings and the typed view the API works with.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from registry.core.database import Base
from registry.utils.helpers import utcnow


class SystemSetting(Base):
    __tablename__ = "system_settings"

    setting_key: Mapped[str] = mapped_column(String(50), primary_key=True)
    setting_value: Mapped[str] = mapped_column(Text, default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class SystemSettings(BaseModel):
    """
    The signatories printed on certificates and ID cards.

    off1 is the officer whose signature image is overlaid on ID cards;
    off3 signs certificates.
    """
    model_config = ConfigDict(extra="forbid")

    off1_name: Optional[str] = None
    off1_pos: Optional[str] = None
    off1_sig: Optional[str] = None
    off2_name: Optional[str] = None
    off2_pos: Optional[str] = None
    off3_name: Optional[str] = None
    off3_pos: Optional[str] = None


SETTING_KEYS = tuple(SystemSettings.model_fields)


class SettingsKeyError(ValueError):
    """Raised when a settings payload names keys outside SETTING_KEYS."""

    def __init__(self, invalid_keys: list[str]):
        self.invalid_keys = invalid_keys
        super().__init__(f"Invalid setting keys: {', '.join(invalid_keys)}")


def parse_settings_payload(payload) -> SystemSettings:
    """
    Turn a raw request body into SystemSettings.

    Raises:
        ValueError: If the body is not a non-empty object or a value is not text
        SettingsKeyError: If any key is not a recognized setting
    """
    if not isinstance(payload, dict):
        raise ValueError("Invalid settings data")
    if not payload:
        raise ValueError("No settings provided")

    invalid = [key for key in payload if key not in SETTING_KEYS]
    if invalid:
        raise SettingsKeyError(invalid)

    bad_values = [key for key, value in payload.items() if value is not None and not isinstance(value, str)]
    if bad_values:
        raise ValueError(f"Setting values must be text: {', '.join(bad_values)}")

    return SystemSettings(**payload)
