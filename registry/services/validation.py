"""
services/validation.py
Field validation and sanitization for certificate records and account credentials.
"""
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from registry.models.certificate_model import ParticipantType, TrainingType

PASSWORD_MIN_LENGTH = 8
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
AGE_MIN = 0
AGE_MAX = 120

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")

VALID_TRAINING_TYPES = [t.value for t in TrainingType]
VALID_PARTICIPANT_TYPES = [p.value for p in ParticipantType]


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    value: Any = None

    @property
    def message(self) -> Optional[str]:
        return self.errors[0] if self.errors else None


def _text(value: Any) -> Optional[str]:
    """Trimmed string, or None for missing/blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_age(value: Any) -> Optional[int]:
    """Integer age, or None when absent. Raises ValueError if not a whole number."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("age must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("age must be a whole number")
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    if not _INTEGER_RE.match(text):
        raise ValueError(f"age is not a whole number: {text!r}")
    return int(text)


def normalize_training_type(value: Any) -> Optional[str]:
    """Full training title for a title or short code; the input unchanged otherwise."""
    text = _text(value)
    if text is None:
        return None
    if text in VALID_TRAINING_TYPES:
        return text
    member = TrainingType.from_code(text)
    return member.value if member else text


def validate_certificate_data(data: Mapping[str, Any]) -> ValidationResult:
    """Collect every violated constraint; never raises."""
    errors = []
    if not isinstance(data, Mapping):
        return ValidationResult(valid=False, errors=["Certificate data must be an object"])

    if _text(data.get("participant_name")) is None:
        errors.append("participant_name is required")

    training_type = normalize_training_type(data.get("training_type"))
    if training_type is not None and training_type not in VALID_TRAINING_TYPES:
        errors.append(f"training_type must be one of: {', '.join(VALID_TRAINING_TYPES)}")

    participant_type = _text(data.get("participant_type"))
    if participant_type is not None and participant_type not in VALID_PARTICIPANT_TYPES:
        errors.append(f"participant_type must be one of: {', '.join(VALID_PARTICIPANT_TYPES)}")

    try:
        age = _parse_age(data.get("age"))
    except ValueError:
        age = -1
    if age is not None and not AGE_MIN <= age <= AGE_MAX:
        errors.append(f"age must be a valid number between {AGE_MIN} and {AGE_MAX}")

    return ValidationResult(valid=not errors, errors=errors)


def sanitize_certificate_data(data: Mapping[str, Any]) -> dict:
    """
    Build the persisted field set from validated input.

    Only CERTIFICATE_FIELDS survive; strings are trimmed and blanks become None.
    Call validate_certificate_data first, since an unparsable age raises here.
    """
    return {
        "participant_name": _text(data.get("participant_name")),
        "training_type": normalize_training_type(data.get("training_type")),
        "training_date": _text(data.get("training_date")),
        "venue": _text(data.get("venue")),
        "facility": _text(data.get("facility")),
        "participant_type": _text(data.get("participant_type")),
        "age": _parse_age(data.get("age")),
        "position": _text(data.get("position")),
    }


def validate_username(username: Any) -> ValidationResult:
    if not username or not isinstance(username, str):
        return ValidationResult(valid=False, errors=["Username is required"])

    trimmed = username.strip()
    if len(trimmed) < USERNAME_MIN_LENGTH:
        return ValidationResult(
            valid=False, errors=[f"Username must be at least {USERNAME_MIN_LENGTH} characters"]
        )
    if len(trimmed) > USERNAME_MAX_LENGTH:
        return ValidationResult(
            valid=False, errors=[f"Username must be less than {USERNAME_MAX_LENGTH} characters"]
        )
    if not _USERNAME_RE.match(trimmed):
        return ValidationResult(
            valid=False, errors=["Username can only contain letters, numbers, and underscores"]
        )
    return ValidationResult(valid=True, value=trimmed)


def validate_password(password: Any) -> ValidationResult:
    if not password or not isinstance(password, str):
        return ValidationResult(valid=False, errors=["Password is required"])

    if len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult(
            valid=False, errors=[f"Password must be at least {PASSWORD_MIN_LENGTH} characters"]
        )
    checks = [
        (r"[A-Z]", "Password must contain at least one uppercase letter"),
        (r"[a-z]", "Password must contain at least one lowercase letter"),
        (r"[0-9]", "Password must contain at least one number"),
    ]
    for pattern, message in checks:
        if not re.search(pattern, password):
            return ValidationResult(valid=False, errors=[message])
    return ValidationResult(valid=True)
