"""
Image transformation utilities for the album.

Face crops from bounding boxes and transport encoding.
"""

import base64
from io import BytesIO

DEFAULT_FACE_PADDING_PX = 25
DEFAULT_CROP_FORMAT = 'WEBP'
DEFAULT_CROP_QUALITY = 80

# Formats that cannot store an alpha channel
_NO_ALPHA_FORMATS = {'JPEG', 'BMP'}


def find_padding(x, y, padding=DEFAULT_FACE_PADDING_PX):
    """
    Padding to apply around a box whose top-left corner is at (x, y).

    When the padded box would cross the top or left edge, the padding shrinks
    to the distance from the nearer of the two edges. The result is a single
    value used for both axes.
    """
    x1 = x - padding
    y1 = y - padding

    if x1 >= 0 and y1 >= 0:
        return padding

    # Whichever overshoot is larger (more negative) governs both axes
    return padding + min(x1, y1)


def encode_image(pil_img, image_format=DEFAULT_CROP_FORMAT, quality=DEFAULT_CROP_QUALITY):
    """
    Encode a PIL image for transport.

    Args:
        pil_img: PIL Image
        image_format: Pillow format name (default: WEBP)
        quality: Lossy quality 1-100 (ignored by lossless formats)

    Returns:
        bytes: Encoded image
    """
    image_format = image_format.upper()
    img = pil_img
    if image_format in _NO_ALPHA_FORMATS:
        if img.mode != 'RGB':
            img = img.convert('RGB')
    elif img.mode not in ('RGB', 'RGBA'):
        has_alpha = 'A' in img.getbands() or 'transparency' in img.info
        img = img.convert('RGBA' if has_alpha else 'RGB')

    buf = BytesIO()
    if image_format == 'PNG':
        img.save(buf, format=image_format)
    else:
        img.save(buf, format=image_format, quality=quality)
    return buf.getvalue()


def crop_from_bounds(pil_img, bounds=None, padding=DEFAULT_FACE_PADDING_PX,
                     image_format=DEFAULT_CROP_FORMAT, quality=DEFAULT_CROP_QUALITY):
    """
    Crop a face region with padding, or re-encode the whole image.

    Args:
        pil_img: Full-resolution PIL Image
        bounds: BoundingBox, or None to return the full image
        padding: Default padding in pixels around the box
        image_format: Output format (default: WEBP)
        quality: Output quality

    Returns:
        bytes: Encoded crop

    Raises:
        AssertionError: if the box has a negative origin or size
    """
    if bounds is None:
        return encode_image(pil_img, image_format, quality)

    assert bounds.x >= 0 and bounds.y >= 0, f"Bounding box origin is negative: {bounds}"
    assert bounds.width >= 0 and bounds.height >= 0, f"Bounding box size is negative: {bounds}"

    pad = find_padding(bounds.x, bounds.y, padding)
    img_w, img_h = pil_img.size

    left = bounds.x - pad
    top = bounds.y - pad
    right = min(img_w, left + bounds.width + pad * 2)
    bottom = min(img_h, top + bounds.height + pad * 2)

    # Never hand the encoder an empty image
    right = max(right, left + 1)
    bottom = max(bottom, top + 1)

    face_crop = pil_img.crop((left, top, right, bottom))
    return encode_image(face_crop, image_format, quality)


def encode_crop_b64(pil_img, bounds=None, padding=DEFAULT_FACE_PADDING_PX,
                    image_format=DEFAULT_CROP_FORMAT, quality=DEFAULT_CROP_QUALITY):
    """Same as crop_from_bounds, returned as a base-64 string."""
    data = crop_from_bounds(pil_img, bounds, padding=padding,
                            image_format=image_format, quality=quality)
    return base64.b64encode(data).decode('ascii')
