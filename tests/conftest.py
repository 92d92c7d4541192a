"""
Test fixtures for pride_overlay tests.
"""

import os
import sys

import numpy as np
import pytest

# Add the parent directory to the system path to import the module
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


@pytest.fixture
def rgba_image():
    """Create an RGBA8 test image with color gradients and transparency."""
    # Create a 96x128 RGBA image with red, green, blue gradients and alpha channel
    h, w = 96, 128
    x = np.linspace(0, 1, w)
    y = np.linspace(0, 1, h)
    xx, yy = np.meshgrid(x, y)

    # Red channel: horizontal gradient
    red = xx
    # Green channel: vertical gradient
    green = yy
    # Blue channel: radial gradient from center
    blue = np.clip(1 - np.sqrt((xx - 0.5) ** 2 + (yy - 0.5) ** 2) * 1.4, 0, 1)
    # Alpha channel: fading from 1 in the center to 0.5 at the edges
    alpha = np.clip(1 - 0.5 * np.sqrt((2 * xx - 1) ** 2 + (2 * yy - 1) ** 2), 0.5, 1.0)

    rgba = np.stack([red, green, blue, alpha], axis=-1)
    return (rgba * 255).astype(np.uint8)


@pytest.fixture
def checkerboard_rgba():
    """Create an opaque black and white checkerboard in RGBA8 format."""
    h, w = 64, 64
    check_size = 16
    rows = (np.arange(h) // check_size) % 2
    cols = (np.arange(w) // check_size) % 2
    white = (rows[:, None] + cols[None, :]) % 2 == 0

    checkerboard = np.zeros((h, w, 4), dtype=np.uint8)
    checkerboard[white, :3] = 255
    checkerboard[:, :, 3] = 255
    return checkerboard


@pytest.fixture
def noise_pair():
    """Create a random image and flag buffer of the same odd size."""
    rng = np.random.default_rng(1234)
    image = rng.integers(0, 256, size=(7, 5, 4), dtype=np.uint8)
    flag = rng.integers(0, 256, size=(7, 5, 4), dtype=np.uint8)
    return image, flag


@pytest.fixture
def png_file(tmp_path, rgba_image):
    """Write the gradient test image to a PNG file and return its path."""
    from PIL import Image

    path = tmp_path / "input.png"
    Image.fromarray(rgba_image).save(path, format="PNG")
    return path


@pytest.fixture
def gl_context():
    """Create a GLContext, skipping when no OpenGL context is available."""
    from pride_overlay.core import GLContext

    try:
        ctx = GLContext()
    except Exception as e:
        pytest.skip(f"OpenGL context unavailable: {e}")
    try:
        yield ctx
    finally:
        ctx.release()
