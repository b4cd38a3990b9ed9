"""
services/font_service.py
Font sizing for names and titles that must stay on one printed line.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from reportlab.pdfbase.pdfmetrics import stringWidth

from registry.utils.helpers import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FontSteps:
    """
    Piecewise font size by character count.

    `steps` pairs a minimum length with the size used from that length on;
    the longest matching threshold wins.
    """
    default: float
    steps: Tuple[Tuple[int, float], ...] = ()

    def size_for(self, text: Optional[str]) -> float:
        length = len(text or "")
        for min_length, size in sorted(self.steps, reverse=True):
            if length >= min_length:
                return size
        return self.default


CERTIFICATE_NAME_STEPS = FontSteps(
    default=38,
    steps=((25, 36), (26, 34), (27, 32), (28, 30), (29, 28), (30, 26)),
)
ID_CARD_NAME_STEPS = FontSteps(default=11, steps=((21, 9), (26, 7.5), (36, 6)))
SIGNATORY_NAME_STEPS = FontSteps(default=13, steps=((81, 8),))


def certificate_name_size(name: Optional[str], steps: FontSteps = CERTIFICATE_NAME_STEPS) -> float:
    return steps.size_for(name)


def id_card_name_size(name: Optional[str], steps: FontSteps = ID_CARD_NAME_STEPS) -> float:
    return steps.size_for(name)


def signatory_name_size(name: Optional[str], steps: FontSteps = SIGNATORY_NAME_STEPS) -> float:
    return steps.size_for(name)


def fit_font_size(
    text: str,
    font_name: str,
    max_width: float,
    start_size: float,
    min_size: float,
) -> float:
    """
    Largest size from `start_size` down to `min_size` (1pt steps) at which
    `text` fits in `max_width` points. Falls back to `min_size`.
    """
    size = start_size
    while size >= min_size:
        if stringWidth(text, font_name, size) <= max_width:
            return size
        size -= 1
    logger.debug(f"'{text}' too wide for {max_width:.0f}pt; using minimum size {min_size}")
    return min_size
