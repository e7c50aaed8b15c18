"""
Image loading utilities for the album.

Handles JPEG/PNG/WebP and HEIC/HEIF loading with EXIF transpose, base-64
upload payloads, and grayscale conversion for face detection.
"""

import base64
import binascii
from io import BytesIO
from pathlib import Path

import numpy as np

from utils.dates import is_valid_created_date

# Register HEIC/HEIF support via pillow-heif (if available)
try:
    import pillow_heif
    pillow_heif.register_heif_opener()
except ImportError:
    pass

# Lazy imports for heavy modules
_cv2 = None
_Image = None
_ImageOps = None

# EXIF tags holding the capture date
_EXIF_IFD_POINTER = 0x8769
_EXIF_DATETIME_ORIGINAL = 36867
_EXIF_DATETIME = 306


def _ensure_cv2():
    """Lazy load cv2."""
    global _cv2
    if _cv2 is None:
        import cv2
        _cv2 = cv2
    return _cv2


def _ensure_pil():
    """Lazy load PIL."""
    global _Image, _ImageOps
    if _Image is None:
        from PIL import Image, ImageOps
        _Image = Image
        _ImageOps = ImageOps
    return _Image, _ImageOps


def _open_transposed(source):
    Image, ImageOps = _ensure_pil()
    pil_img = Image.open(source)
    pil_img.load()
    return ImageOps.exif_transpose(pil_img)


def load_image_from_path(photo_path):
    """
    Load an image from disk with EXIF orientation applied.

    Args:
        photo_path: Path to image file (str or Path)

    Returns:
        PIL Image

    Raises:
        OSError: if the file is missing or not a readable image
    """
    return _open_transposed(Path(photo_path))


def decode_image_bytes(data):
    """Open raw image bytes as a PIL Image. Raises OSError on bad data."""
    return _open_transposed(BytesIO(data))


def decode_base64_payload(encoded):
    """
    Decode a base-64 upload payload.

    Accepts bare base-64 and data URLs ("data:image/jpeg;base64,...").

    Raises:
        ValueError: if the payload is not valid base-64
    """
    if ',' in encoded and encoded.lstrip().startswith('data:'):
        encoded = encoded.split(',', 1)[1]
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def to_grayscale_array(pil_img):
    """Convert a PIL image to a uint8 grayscale array for detection."""
    cv2 = _ensure_cv2()
    rgb = np.array(pil_img.convert('RGB'))
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)


def get_exif_date(pil_img):
    """
    Read the capture date from EXIF.

    Returns:
        str: 'YYYY-MM-DD', or None when the image carries no usable date
    """
    try:
        exif = pil_img.getexif()
    except Exception:
        return None
    if not exif:
        return None
    value = exif.get_ifd(_EXIF_IFD_POINTER).get(_EXIF_DATETIME_ORIGINAL) or exif.get(_EXIF_DATETIME)
    if not value or not isinstance(value, str) or len(value) < 10:
        return None
    # EXIF format is 'YYYY:MM:DD HH:MM:SS'; cameras write zeros when the clock is unset
    date = value[:10].replace(':', '-')
    if not is_valid_created_date(date) or date.startswith('0000'):
        return None
    return date
