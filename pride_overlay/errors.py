"""
Exceptions raised by pride_overlay.

Every error derives from PrideOverlayError so a caller can catch the whole family,
while the ValueError/RuntimeError/IOError bases keep generic handlers working.
"""


class PrideOverlayError(Exception):
    """Base class for all pride_overlay errors."""


class DimensionMismatchError(PrideOverlayError, ValueError):
    """Image and flag buffers do not have the same width and height."""

    def __init__(self, image_size, flag_size):
        self.image_size = tuple(image_size)
        self.flag_size = tuple(flag_size)
        super().__init__(
            f"Image and flag must have the same dimensions, got {self.image_size} and {self.flag_size}"
        )


class InvalidBlendFactorError(PrideOverlayError, ValueError):
    """Blend factor outside [0.0, 1.0]."""

    def __init__(self, factor):
        self.factor = factor
        super().__init__(f"Blend factor must be within [0.0, 1.0], got {factor!r}")


class BusyError(PrideOverlayError):
    """A computation is already in flight; the submission was dropped."""


class ComputationStartError(PrideOverlayError, RuntimeError):
    """The background worker could not be started."""


class ComputationFailedError(PrideOverlayError, RuntimeError):
    """The background computation terminated abnormally."""


class DecodeError(PrideOverlayError, IOError):
    """An image file could not be read or decoded."""


class EncodeError(PrideOverlayError, IOError):
    """An image could not be encoded or written."""


class UnknownFlagError(PrideOverlayError, KeyError):
    """No flag matches the given identifier."""

    def __str__(self):
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class ConfigError(PrideOverlayError, ValueError):
    """A configuration value could not be parsed."""
