"""
models/certificate_model.py
Relational schema and enumerations for trainee certificate records.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from registry.core.database import Base
from registry.utils.helpers import utcnow


class TrainingType(str, Enum):
    """Stored values are the full training titles."""
    BLS = "Basic Life Support Training"
    BLS_SFA = "Basic Life Support and Standard First Aid Training"
    BLS_TOT = "Basic Life Support Training of trainers"
    SFA_TOT = "Standard First Aid Training of trainers"

    @classmethod
    def from_code(cls, code: str) -> Optional["TrainingType"]:
        wanted = code.strip().upper()
        for member, member_code in TRAINING_TYPE_CODES.items():
            if member_code.upper() == wanted:
                return member
        return None


TRAINING_TYPE_CODES = {
    TrainingType.BLS: "BLS",
    TrainingType.BLS_SFA: "BLS+SFA",
    TrainingType.BLS_TOT: "BLS-ToT",
    TrainingType.SFA_TOT: "SFA-ToT",
}


class ParticipantType(str, Enum):
    LAY_RESCUER = "Lay Rescuer"
    HEALTHCARE_PROVIDER = "Healthcare Provider"


# Fields a client may set; everything else is server-assigned
CERTIFICATE_FIELDS = (
    "participant_name",
    "training_type",
    "training_date",
    "venue",
    "facility",
    "participant_type",
    "age",
    "position",
)


class Certificate(Base):
    __tablename__ = "certificates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    participant_name: Mapped[str] = mapped_column(String(255))
    training_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    training_date: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    venue: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    facility: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    participant_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    position: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def apply(self, data: dict) -> None:
        """Full replace of the mutable fields."""
        for field in CERTIFICATE_FIELDS:
            setattr(self, field, data.get(field))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "participant_name": self.participant_name,
            "training_type": self.training_type,
            "training_date": self.training_date,
            "venue": self.venue,
            "facility": self.facility,
            "participant_type": self.participant_type,
            "age": self.age,
            "position": self.position,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
