"""
Image file decode/encode.

Reads PNG, JPEG and BMP files into RGBA8 image buffers and writes buffers back
out as PNG, using Pillow.

Functions:
    is_supported_format: Check a path's extension
    load_image: Decode an image file into an RGBA8 buffer
    decode_image_bytes: Decode in-memory image data into an RGBA8 buffer
    encode_png: Encode a buffer as PNG bytes
    save_image: Write a buffer to disk as PNG
"""

import io
import logging
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .core import ImageBuffer, validate_rgba
from .errors import DecodeError, EncodeError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".png", ".jpg", ".jpeg", ".bmp")

PathLike = Union[str, Path]


def is_supported_format(path: PathLike) -> bool:
    """Return True if the file extension is one the picker accepts."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def _to_buffer(image: "Image.Image") -> ImageBuffer:
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return np.array(image, dtype=np.uint8)


def load_image(path: PathLike) -> ImageBuffer:
    """
    Decode an image file into an RGBA8 buffer.

    Args:
        path: Path to a PNG, JPEG or BMP file

    Returns:
        Image buffer of shape (height, width, 4)

    Raises:
        DecodeError: If the file is missing, has an unsupported extension, or cannot be decoded
    """
    path = Path(path)
    if not path.is_file():
        raise DecodeError(f"Image file not found: {path}")
    if not is_supported_format(path):
        raise DecodeError(
            f"Unsupported image format {path.suffix!r}, expected one of {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    try:
        with Image.open(path) as image:
            buffer = _to_buffer(image)
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise DecodeError(f"Failed to load image from {path}: {e}") from e

    logger.info("Loaded %s (%dx%d)", path, buffer.shape[1], buffer.shape[0])
    return buffer


def decode_image_bytes(data: bytes) -> ImageBuffer:
    """
    Decode in-memory image data into an RGBA8 buffer.

    Raises:
        DecodeError: If the data is not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            return _to_buffer(image)
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise DecodeError(f"Failed to decode image data: {e}") from e


def _to_pil(image: ImageBuffer) -> "Image.Image":
    try:
        validate_rgba(image)
    except ValueError as e:
        raise EncodeError(str(e)) from e
    return Image.fromarray(np.ascontiguousarray(image))


def encode_png(image: ImageBuffer) -> bytes:
    """
    Encode an RGBA8 buffer as PNG bytes.

    Raises:
        EncodeError: If the buffer is not RGBA8 or encoding fails
    """
    stream = io.BytesIO()
    try:
        _to_pil(image).save(stream, format="PNG")
    except (OSError, ValueError) as e:
        raise EncodeError(f"Failed to encode PNG: {e}") from e
    return stream.getvalue()


def save_image(image: ImageBuffer, path: PathLike, overwrite: bool = True) -> Path:
    """
    Write an RGBA8 buffer to disk as PNG.

    Parent directories are created when missing.

    Args:
        image: Buffer to save
        path: Destination file path
        overwrite: Replace an existing file (default: True)

    Returns:
        The path written

    Raises:
        EncodeError: If the file exists and overwrite is False, or writing fails
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise EncodeError(f"Output file already exists: {path}")

    pil_image = _to_pil(image)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        pil_image.save(path, format="PNG")
    except (OSError, ValueError) as e:
        raise EncodeError(f"Failed to save image to {path}: {e}") from e

    logger.info("Saved image to %s", path)
    return path
