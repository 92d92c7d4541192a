"""
Pride Overlay

A library for blending pride-flag patterns onto images, with a chunked parallel
blend and a non-blocking background coordinator for interactive front ends.
"""

from .app import AppState, OverlayApp
from .blending import blend_images, plan_chunks, validate_blend_factor, validate_images
from .codec import decode_image_bytes, encode_png, load_image, save_image
from .config import OverlaySettings
from .coordinator import AsyncComputeCoordinator, ComputationOutcome, ComputationRequest, CoordinatorState
from .core import GLContext, ImageBuffer, image_from_bytes, image_to_bytes, validate_rgba
from .errors import (
    BusyError,
    ComputationFailedError,
    ComputationStartError,
    ConfigError,
    DecodeError,
    DimensionMismatchError,
    EncodeError,
    InvalidBlendFactorError,
    PrideOverlayError,
    UnknownFlagError,
)
from .flags import ALL_FLAGS, PrideFlag, create_pride_flag_overlay, get_flag
from .preview import PreviewRenderer

__all__ = [
    # Core functionality
    "GLContext",
    "ImageBuffer",
    "image_from_bytes",
    "image_to_bytes",
    "validate_rgba",
    # Flags
    "ALL_FLAGS",
    "PrideFlag",
    "create_pride_flag_overlay",
    "get_flag",
    # Blending
    "blend_images",
    "plan_chunks",
    "validate_blend_factor",
    "validate_images",
    # Background computation
    "AsyncComputeCoordinator",
    "ComputationOutcome",
    "ComputationRequest",
    "CoordinatorState",
    # Image files
    "decode_image_bytes",
    "encode_png",
    "load_image",
    "save_image",
    # Application
    "AppState",
    "OverlayApp",
    "OverlaySettings",
    "PreviewRenderer",
    # Errors
    "PrideOverlayError",
    "DimensionMismatchError",
    "InvalidBlendFactorError",
    "BusyError",
    "ComputationStartError",
    "ComputationFailedError",
    "DecodeError",
    "EncodeError",
    "UnknownFlagError",
    "ConfigError",
]
