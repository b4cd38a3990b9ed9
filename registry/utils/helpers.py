"""
utils/helpers.py
Shared utility functions used across services.
"""
import logging
import re
import uuid
from datetime import datetime
from typing import List, Sequence, TypeVar

# Configure module logger
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

T = TypeVar("T")


def get_logger(name: str) -> logging.Logger:
    """Return a named logger."""
    return logging.getLogger(name)


def generate_temp_id() -> str:
    """Generate a unique id for an unsaved draft row."""
    return str(uuid.uuid4())


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """Split a sequence into consecutive lists of at most `size` items."""
    if size <= 0:
        raise ValueError("Chunk size must be positive.")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip())


def underscore_spaces(text: str) -> str:
    """'Juan  Dela Cruz' -> 'Juan_Dela_Cruz' (used for download filenames)."""
    return re.sub(r"\s+", "_", text.strip())


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def utcnow() -> datetime:
    return datetime.utcnow()
