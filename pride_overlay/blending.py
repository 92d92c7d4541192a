"""
Flag overlay blending.
This module blends an RGBA8 image with a same-sized flag buffer by per-channel
linear interpolation, splitting the pixel range into contiguous chunks that are
blended concurrently.
"""

import concurrent.futures
import math
import os
from typing import List, Optional, Tuple

import numpy as np

from .core import CHANNELS, FlagBuffer, ImageBuffer, NDArray, get_image_dimensions, validate_rgba
from .errors import DimensionMismatchError, InvalidBlendFactorError

# Pixels per chunk when the caller does not choose a chunk count
DEFAULT_CHUNK_PIXELS = 1 << 16

Chunk = Tuple[int, int]


def validate_blend_factor(factor: float) -> float:
    """
    Check that a blend factor lies within [0.0, 1.0].

    Args:
        factor: Blend factor (0.0 = only the image, 1.0 = only the flag)

    Returns:
        The factor as a float

    Raises:
        InvalidBlendFactorError: If the factor is not a number in range (NaN included)
    """
    try:
        value = float(factor)
    except (TypeError, ValueError):
        raise InvalidBlendFactorError(factor) from None
    if not 0.0 <= value <= 1.0:
        raise InvalidBlendFactorError(factor)
    return value


def validate_images(image: ImageBuffer, flag: FlagBuffer) -> None:
    """
    Validate that an image and a flag buffer can be blended together.

    Raises:
        ValueError: If either buffer is not RGBA8
        DimensionMismatchError: If the buffers differ in width or height
    """
    validate_rgba(image)
    validate_rgba(flag)

    h1, w1 = get_image_dimensions(image)
    h2, w2 = get_image_dimensions(flag)
    if h1 != h2 or w1 != w2:
        raise DimensionMismatchError((w1, h1), (w2, h2))


def plan_chunks(pixel_count: int, num_chunks: int) -> List[Chunk]:
    """
    Split [0, pixel_count) into contiguous (start, stop) ranges.

    The chunk count is clamped to [1, pixel_count] and chunk sizes differ by at
    most one pixel.
    """
    if pixel_count <= 0:
        return []
    num_chunks = max(1, min(int(num_chunks), pixel_count))
    base, extra = divmod(pixel_count, num_chunks)

    chunks = []
    start = 0
    for index in range(num_chunks):
        stop = start + base + (1 if index < extra else 0)
        chunks.append((start, stop))
        start = stop
    return chunks


def default_chunk_count(pixel_count: int) -> int:
    """Number of chunks used when the caller does not pick one."""
    return max(1, math.ceil(pixel_count / DEFAULT_CHUNK_PIXELS))


def blend_chunk(image_pixels: NDArray, flag_pixels: NDArray, factor: float, out: NDArray) -> None:
    """
    Blend a run of pixels into a preallocated output slice.

    All three arrays are (n, 4) uint8 views of the same pixel range. Each channel
    becomes image * (1 - factor) + flag * factor, clamped to [0, 255] and
    truncated toward zero.

    The arithmetic is single precision throughout, factor included, so the
    truncated bytes match the reference blend exactly.
    """
    factor = np.float32(factor)
    keep = np.float32(1.0) - factor
    blended = image_pixels.astype(np.float32) * keep
    blended += flag_pixels.astype(np.float32) * factor
    np.clip(blended, 0.0, 255.0, out=blended)
    out[...] = blended.astype(np.uint8)


def blend_images(
    image: ImageBuffer,
    flag: FlagBuffer,
    factor: float,
    *,
    num_chunks: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> ImageBuffer:
    """
    Overlay a flag on an image at the given blend strength.

    Args:
        image: Input image buffer (HxWx4 uint8)
        flag: Flag buffer with exactly the image's width and height
        factor: Blend factor (0.0 = image unchanged, 1.0 = flag verbatim)
        num_chunks: Number of contiguous pixel chunks to blend concurrently
            (default: one per DEFAULT_CHUNK_PIXELS pixels)
        max_workers: Maximum number of threads (default: CPU count)

    Returns:
        New blended image buffer; the inputs are not modified

    Raises:
        ValueError: If either buffer is not RGBA8
        DimensionMismatchError: If the buffers differ in size
        InvalidBlendFactorError: If factor is outside [0.0, 1.0]
    """
    validate_images(image, flag)
    factor = validate_blend_factor(factor)

    height, width = get_image_dimensions(image)
    pixel_count = height * width
    image_pixels = np.ascontiguousarray(image).reshape(pixel_count, CHANNELS)
    flag_pixels = np.ascontiguousarray(flag).reshape(pixel_count, CHANNELS)
    out = np.empty((pixel_count, CHANNELS), dtype=np.uint8)

    if num_chunks is None:
        num_chunks = default_chunk_count(pixel_count)
    chunks = plan_chunks(pixel_count, num_chunks)

    if len(chunks) <= 1:
        blend_chunk(image_pixels, flag_pixels, factor, out)
        return out.reshape(height, width, CHANNELS)

    if max_workers is None:
        max_workers = min(len(chunks), os.cpu_count() or 1)

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(
                blend_chunk,
                image_pixels[start:stop],
                flag_pixels[start:stop],
                factor,
                out[start:stop],
            )
            for start, stop in chunks
        ]
        for future in concurrent.futures.as_completed(futures):
            # Re-raise any worker failure
            future.result()

    return out.reshape(height, width, CHANNELS)
