"""Raster transforms: decode, re-encode, cover-fit resize and upscaling.

Every function takes and returns encoded bytes (or a decoded surface at the
format boundary) and holds no shared state, so items can be transformed from
any thread.

Supports any input Pillow can open, plus HEIC/HEIF through pillow-heif.
Output is always baseline JPEG.
"""

from __future__ import annotations

import io

from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from seo_geotagger.util.errors import DecodeFailure, EncodeFailure, ValidationFailure

register_heif_opener()

JPEG_QUALITY = 95
JPEG_SOI = b"\xff\xd8"
_ORIENTATION_TAG = 0x0112


def is_jpeg(data: bytes) -> bool:
    return data[:2] == JPEG_SOI


def decode_to_surface(data: bytes) -> Image.Image:
    """Decode bytes into an RGB surface with EXIF orientation applied."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            surface = ImageOps.exif_transpose(img)
            if surface is img:
                surface = img.copy()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise DecodeFailure(f"Could not decode image: {e}") from e
    if surface.mode != "RGB":
        surface = surface.convert("RGB")
    return surface


def encode_from_surface(surface: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    if surface.mode != "RGB":
        surface = surface.convert("RGB")
    buffer = io.BytesIO()
    try:
        surface.save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError) as e:
        raise EncodeFailure(f"Could not encode JPEG: {e}") from e
    return buffer.getvalue()


def to_jpeg(data: bytes, quality: int = JPEG_QUALITY) -> bytes:
    return encode_from_surface(decode_to_surface(data), quality)


def needs_orientation_bake(data: bytes) -> bool:
    """True when a JPEG carries an orientation other than 'normal'.

    Replacing the metadata block drops the orientation tag, so such images
    must be re-encoded upright before their block is swapped.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            orientation = img.getexif().get(_ORIENTATION_TAG, 1)
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise DecodeFailure(f"Could not decode image: {e}") from e
    return orientation not in (None, 1)


def image_dimensions(data: bytes) -> tuple[int, int]:
    """Displayed (width, height), i.e. after EXIF orientation."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            if img.getexif().get(_ORIENTATION_TAG) in (5, 6, 7, 8):
                return height, width
            return width, height
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise DecodeFailure(f"Could not decode image: {e}") from e


def validate_dimensions(data: bytes, min_width: int, min_height: int) -> None:
    width, height = image_dimensions(data)
    if height < min_height:
        raise ValidationFailure(f"Image height must be at least {min_height}px. Current height: {height}px.")
    if width < min_width:
        raise ValidationFailure(f"Image width must be at least {min_width}px. Current width: {width}px.")


def cover_box(width: int, height: int, target_aspect_ratio: float) -> tuple[int, int, int, int]:
    """Centered crop box (left, top, right, bottom) filling the target ratio.

    The source always covers the whole canvas: a wider source keeps its height
    and loses its sides, a taller one keeps its width and loses top/bottom.
    """
    if target_aspect_ratio <= 0:
        raise ValueError(f"target_aspect_ratio must be positive, got {target_aspect_ratio}")
    if width / height > target_aspect_ratio:
        out_h = height
        out_w = max(1, min(width, round(height * target_aspect_ratio)))
    else:
        out_w = width
        out_h = max(1, min(height, round(width / target_aspect_ratio)))
    left = (width - out_w) // 2
    top = (height - out_h) // 2
    return left, top, left + out_w, top + out_h


def cover_resize(data: bytes, target_aspect_ratio: float, quality: int = JPEG_QUALITY) -> bytes:
    if target_aspect_ratio <= 0:
        raise ValueError(f"target_aspect_ratio must be positive, got {target_aspect_ratio}")
    surface = decode_to_surface(data)
    box = cover_box(surface.width, surface.height, target_aspect_ratio)
    return encode_from_surface(surface.crop(box), quality)


def upscale_to_height(data: bytes, target_height: int, quality: int = JPEG_QUALITY) -> bytes:
    """Scale up proportionally to `target_height`.

    Returns `data` itself when the image is already tall enough.
    """
    _, height = image_dimensions(data)
    if height >= target_height:
        return data
    surface = decode_to_surface(data)
    ratio = surface.width / surface.height
    new_size = (max(1, round(target_height * ratio)), target_height)
    return encode_from_surface(surface.resize(new_size, resample=Image.Resampling.LANCZOS), quality)


def sniff_mime_type(data: bytes) -> str:
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise DecodeFailure(f"Could not decode image: {e}") from e
    return mime or "application/octet-stream"
