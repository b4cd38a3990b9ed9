"""
services/signature_service.py
Officer signature images: validity heuristic, decoding for the PDF renderer,
and server-side cropping of uploaded scans.
"""
import base64
import binascii
import io
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader

from registry.core.config import settings
from registry.utils.helpers import get_logger

logger = get_logger(__name__)

PNG_DATA_URL_PREFIX = "data:image/png;base64"


def is_valid_signature(
    value,
    marker: str = PNG_DATA_URL_PREFIX,
    min_length: int = settings.SIGNATURE_MIN_LENGTH,
) -> bool:
    """
    Whether a stored signature is worth drawing.

    Empty or truncated uploads produce short payloads, so anything at or
    under `min_length` characters is ignored.
    """
    return isinstance(value, str) and value.startswith(marker) and len(value) > min_length


def decode_data_url(data_url: str) -> bytes:
    """Raw bytes of a base64 data URL. Raises ValueError on malformed input."""
    header, sep, payload = data_url.partition(",")
    if not sep or ";base64" not in header:
        raise ValueError("Not a base64 data URL")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}")


def signature_image(data_url: Optional[str]) -> Optional[ImageReader]:
    """ImageReader for a valid signature, or None when it should be skipped."""
    if not is_valid_signature(data_url):
        return None
    try:
        image = Image.open(io.BytesIO(decode_data_url(data_url)))
        image.load()
    except (ValueError, UnidentifiedImageError, OSError) as e:
        logger.warning(f"Stored signature could not be decoded, skipping overlay: {e}")
        return None
    return ImageReader(image)


def crop_signature(
    image_bytes: bytes,
    box: Optional[Tuple[float, float, float, float]] = None,
    width: int = settings.SIGNATURE_WIDTH_PX,
    aspect_ratio: float = settings.SIGNATURE_ASPECT_RATIO,
) -> str:
    """
    Crop an uploaded scan and return it as a PNG data URL.

    `box` is (x, y, width, height) in source pixels; without one a centred
    region 60% of the image wide (capped at 400px) is used. The result is
    resized to `width` x `width / aspect_ratio`.

    Raises:
        ValueError: If the bytes are not an image or the box is out of bounds
    """
    try:
        source = Image.open(io.BytesIO(image_bytes))
        source.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Uploaded file is not a readable image: {e}")

    if box is None:
        crop_w = min(source.width * 0.6, 400)
        crop_h = crop_w / aspect_ratio
        if crop_h > source.height:
            crop_h = source.height
            crop_w = crop_h * aspect_ratio
        box = ((source.width - crop_w) / 2, (source.height - crop_h) / 2, crop_w, crop_h)

    x, y, w, h = box
    if w <= 0 or h <= 0:
        raise ValueError("Crop area must have a positive width and height.")
    if x < 0 or y < 0 or x + w > source.width or y + h > source.height:
        raise ValueError(
            f"Crop area ({x}, {y}, {w}, {h}) falls outside the {source.width}x{source.height} image."
        )

    cropped = source.convert("RGBA").crop((round(x), round(y), round(x + w), round(y + h)))
    target = cropped.resize((width, round(width / aspect_ratio)), Image.LANCZOS)

    buffer = io.BytesIO()
    target.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    logger.info(f"Signature cropped to {target.width}x{target.height}px ({len(encoded)} base64 chars)")
    return f"{PNG_DATA_URL_PREFIX},{encoded}"
