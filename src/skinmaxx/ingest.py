"""Ingest module: decode, orient, downscale and check photos before upload."""

from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path

import blake3
import numpy as np
from PIL import Image, UnidentifiedImageError

from skinmaxx.errors import InvalidImageError

# Face++ limits uploads to 4096px per side and 2MB
DEFAULT_MAX_DIM = 1920
DEFAULT_QUALITY = 90
MIN_BRIGHTNESS = 40.0

_ORIENTATION_TAG = 274

# EXIF orientation -> operations that restore an upright image
_ORIENTATION_FIXES: dict[int, tuple[Image.Transpose, ...]] = {
    2: (Image.Transpose.FLIP_LEFT_RIGHT,),
    3: (Image.Transpose.ROTATE_180,),
    4: (Image.Transpose.FLIP_TOP_BOTTOM,),
    5: (Image.Transpose.TRANSPOSE,),
    6: (Image.Transpose.ROTATE_270,),
    7: (Image.Transpose.TRANSVERSE,),
    8: (Image.Transpose.ROTATE_90,),
}


@dataclass(frozen=True)
class LightingCheck:
    """Outcome of the pre-upload lighting check."""

    is_valid: bool
    brightness: float  # mean of (R+G+B)/3, 0-255


def split_data_url(image_uri: str) -> str:
    """Return the base64 payload of a data URL, or the input unchanged."""
    if "base64," in image_uri:
        return image_uri.split("base64,", 1)[1]
    return image_uri.strip()


def decode_bytes(image_uri: str) -> bytes:
    """Decode a base64 string or data URL to raw bytes."""
    payload = split_data_url(image_uri)
    if not payload:
        raise InvalidImageError("Image is empty")
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Image is not valid base64: {e}") from e


def decode_image(image_uri: str) -> Image.Image:
    """Decode a base64 string or data URL to a PIL image."""
    data = decode_bytes(image_uri)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidImageError(f"Could not decode image: {e}") from e
    return img


def auto_orient(img: Image.Image) -> Image.Image:
    """Apply the EXIF orientation tag so faces are upright.

    Returns the original image if there is no usable tag.
    """
    try:
        orientation = img.getexif().get(_ORIENTATION_TAG)
    except (AttributeError, KeyError, IndexError):
        return img
    for op in _ORIENTATION_FIXES.get(orientation, ()):
        img = img.transpose(op)
    return img


def resize_to_fit(img: Image.Image, max_dim: int) -> Image.Image:
    """Downscale so neither side exceeds max_dim, keeping aspect ratio."""
    w, h = img.size
    if w <= max_dim and h <= max_dim:
        return img

    scale = max_dim / max(w, h)
    new_size = (max(1, int(w * scale)), max(1, int(h * scale)))
    return img.resize(new_size, Image.Resampling.LANCZOS)


def prepare_upload(
    image_uri: str,
    max_dim: int = DEFAULT_MAX_DIM,
    quality: int = DEFAULT_QUALITY,
) -> str:
    """Turn a user photo into the base64 JPEG sent to the provider.

    Args:
        image_uri: Base64 string or ``data:image/...;base64,`` URL.
        max_dim: Maximum width/height of the uploaded image.
        quality: JPEG quality.

    Returns:
        Base64 JPEG payload without a data-URL prefix.

    Raises:
        InvalidImageError: Input is not a decodable image.
    """
    img = auto_orient(decode_image(image_uri))
    if img.mode != "RGB":
        img = img.convert("RGB")
    img = resize_to_fit(img, max_dim)

    buf = io.BytesIO()
    img.save(buf, "JPEG", quality=quality)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def measure_brightness(img: Image.Image) -> float:
    """Mean per-pixel brightness, (R+G+B)/3 on a 0-255 scale."""
    arr = np.asarray(img.convert("RGB"), dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def check_lighting(img: Image.Image, minimum: float = MIN_BRIGHTNESS) -> LightingCheck:
    """Reject photos too dark for a reliable analysis."""
    brightness = measure_brightness(img)
    return LightingCheck(is_valid=brightness >= minimum, brightness=brightness)


def encode_image_file(path: Path) -> str:
    """Read an image file as a JPEG data URL."""
    try:
        with Image.open(path) as img:
            img = auto_orient(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            buf = io.BytesIO()
            img.save(buf, "JPEG", quality=DEFAULT_QUALITY)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidImageError(f"Could not read image {path}: {e}") from e
    return "data:image/jpeg;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def compute_image_hash(image_uri: str) -> str:
    """Compute blake3 hash of the decoded image bytes.

    Args:
        image_uri: Base64 string or data URL.

    Returns:
        Hex string of blake3 hash.
    """
    return blake3.blake3(decode_bytes(image_uri)).hexdigest()
