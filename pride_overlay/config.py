"""
Configuration values for pride_overlay.

Defaults live here as module constants; OverlaySettings bundles them and can
be overridden from PRIDE_OVERLAY_* environment variables.
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .blending import validate_blend_factor
from .errors import ConfigError, InvalidBlendFactorError, UnknownFlagError
from .flags import ALL_FLAGS, PrideFlag, get_flag

DEFAULT_BLEND_FACTOR = 0.5
DEFAULT_FLAG = ALL_FLAGS[0]
DEFAULT_OUTPUT_PATH = "output_flagged.png"

ENV_PREFIX = "PRIDE_OVERLAY_"


@dataclass(frozen=True)
class OverlaySettings:
    """Settings shared by the application shell and the CLI.

    Attributes:
        blend_factor: Initial blend factor
        flag: Initially selected flag
        output_path: Where save() writes when no path is given
        num_chunks: Chunk count for the blend (None = derived from image size)
        max_workers: Thread count for the blend (None = CPU count)
    """

    blend_factor: float = DEFAULT_BLEND_FACTOR
    flag: PrideFlag = DEFAULT_FLAG
    output_path: str = DEFAULT_OUTPUT_PATH
    num_chunks: Optional[int] = None
    max_workers: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OverlaySettings":
        """
        Build settings from environment variables, falling back to the defaults.

        Recognised variables: PRIDE_OVERLAY_BLEND_FACTOR, PRIDE_OVERLAY_FLAG,
        PRIDE_OVERLAY_OUTPUT, PRIDE_OVERLAY_WORKERS.

        Raises:
            ConfigError: If a variable is set to a value that cannot be used
        """
        environ = os.environ if environ is None else environ
        settings = cls()

        raw = environ.get(ENV_PREFIX + "BLEND_FACTOR")
        if raw is not None:
            try:
                settings = replace(settings, blend_factor=validate_blend_factor(raw))
            except InvalidBlendFactorError as e:
                raise ConfigError(f"{ENV_PREFIX}BLEND_FACTOR: {e}") from e

        raw = environ.get(ENV_PREFIX + "FLAG")
        if raw is not None:
            try:
                settings = replace(settings, flag=get_flag(raw))
            except UnknownFlagError as e:
                raise ConfigError(f"{ENV_PREFIX}FLAG: {e}") from e

        raw = environ.get(ENV_PREFIX + "OUTPUT")
        if raw:
            settings = replace(settings, output_path=raw)

        raw = environ.get(ENV_PREFIX + "WORKERS")
        if raw is not None:
            settings = replace(settings, max_workers=_positive_int(ENV_PREFIX + "WORKERS", raw))

        return settings

    def blend_options(self) -> dict:
        """Keyword arguments to pass through to blend_images()."""
        return {"num_chunks": self.num_chunks, "max_workers": self.max_workers}


def _positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{name} must be at least 1, got {value}")
    return value
