"""
Album utilities package.

Re-exports all public functions and classes for convenient imports.
"""

from utils.bounds import BoundingBox
from utils.dates import CREATED_DATE_RE, is_valid_created_date
from utils.image_loading import (
    load_image_from_path, decode_image_bytes, decode_base64_payload,
    to_grayscale_array, get_exif_date,
)
from utils.image_transforms import (
    find_padding, crop_from_bounds, encode_crop_b64, encode_image,
    DEFAULT_FACE_PADDING_PX, DEFAULT_CROP_FORMAT, DEFAULT_CROP_QUALITY,
)
from utils.tags import normalize_tag, sanitize_tags, sanitize_person_ids, string_to_tags
