"""
Headless application shell.

Owns the application state (loaded image, selected flag, blend factor, current
output) and drives the coordinator from a once-per-cycle tick(). Any front end
(a GUI loop, the CLI, tests) calls the setters on user input and tick() on every
frame; nothing here blocks.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from .blending import blend_images, validate_blend_factor
from .codec import load_image, save_image
from .config import OverlaySettings
from .coordinator import AsyncComputeCoordinator, ComputationOutcome, ComputationRequest
from .core import FlagBuffer, ImageBuffer, get_image_dimensions
from .errors import BusyError, ComputationStartError, DecodeError, EncodeError
from .flags import ALL_FLAGS, PrideFlag, create_pride_flag_overlay, get_flag

logger = logging.getLogger(__name__)

OutputCallback = Callable[[ImageBuffer], None]
RequestTag = Tuple[int, int, float]  # image revision, flag index, blend factor


@dataclass
class AppState:
    """Mutable state of one application instance."""

    image_path: str = ""
    image: Optional[ImageBuffer] = None
    selected_flag: int = 0
    blend_factor: float = 0.5
    output_image: Optional[ImageBuffer] = None
    needs_update: bool = False
    status: str = ""

    @property
    def flag(self) -> PrideFlag:
        return ALL_FLAGS[self.selected_flag]


class OverlayApp:
    """
    Connects user actions to the background blend.

    Setters only record the new value and raise the dirty bit. tick() polls the
    coordinator for a finished blend, then submits a new one if the dirty bit is
    set. A submission rejected as busy keeps the dirty bit, so the latest
    settings are submitted as soon as the coordinator is idle again.
    """

    def __init__(
        self,
        settings: Optional[OverlaySettings] = None,
        coordinator: Optional[AsyncComputeCoordinator] = None,
        on_output: Optional[OutputCallback] = None,
    ):
        """
        Args:
            settings: Initial flag, blend factor, output path and blend tuning
            coordinator: Coordinator to submit to (default: a new one using blend_images)
            on_output: Called with every new output buffer, e.g. to refresh a display texture
        """
        self.settings = settings if settings is not None else OverlaySettings()
        self.state = AppState(
            selected_flag=ALL_FLAGS.index(self.settings.flag),
            blend_factor=self.settings.blend_factor,
        )
        if coordinator is None:
            coordinator = AsyncComputeCoordinator(engine=self._blend)
        self.coordinator = coordinator
        self.on_output = on_output

        self._image_rev = 0
        self._flag_cache: Optional[Tuple[Tuple[PrideFlag, int, int], FlagBuffer]] = None

    def _blend(self, image: ImageBuffer, flag: FlagBuffer, factor: float) -> ImageBuffer:
        return blend_images(image, flag, factor, **self.settings.blend_options())

    # ==================================================
    # User actions
    # ==================================================

    def load_image(self, path: Union[str, Path]) -> bool:
        """
        Load a new input image.

        On success the image replaces the previous one, is shown unblended until
        the first blend arrives, and a recompute is scheduled. On failure the
        previous image is kept and the error goes to the status text.

        Returns:
            True if the image was loaded
        """
        try:
            image = load_image(path)
        except DecodeError as e:
            logger.warning("Image load failed: %s", e)
            self.state.status = f"Error loading image: {e}"
            return False

        self._image_rev += 1
        self.state.image_path = str(path)
        self.state.image = image
        self.state.needs_update = True
        self.state.status = f"Loaded {path}"
        self._set_output(image)
        return True

    def select_flag(self, flag: Union[PrideFlag, str, int]) -> None:
        """
        Select the overlay flag by member, name, or index into ALL_FLAGS.

        Raises:
            UnknownFlagError: If the flag cannot be resolved
        """
        index = ALL_FLAGS.index(get_flag(flag))
        if index != self.state.selected_flag:
            self.state.selected_flag = index
            self.state.needs_update = True

    def set_blend_factor(self, factor: float) -> None:
        """
        Change the blend factor.

        Raises:
            InvalidBlendFactorError: If factor is outside [0.0, 1.0]
        """
        factor = validate_blend_factor(factor)
        if factor != self.state.blend_factor:
            self.state.blend_factor = factor
            self.state.needs_update = True

    def save(self, path: Optional[Union[str, Path]] = None) -> bool:
        """
        Save the current output as PNG.

        Args:
            path: Destination (default: settings.output_path)

        Returns:
            True if the file was written
        """
        if self.state.output_image is None:
            self.state.status = "Nothing to save"
            return False

        target = Path(path) if path is not None else Path(self.settings.output_path)
        try:
            save_image(self.state.output_image, target)
        except EncodeError as e:
            logger.error("Save failed: %s", e)
            self.state.status = f"Error saving image: {e}"
            return False

        self.state.status = f"Image saved to {target}"
        return True

    # ==================================================
    # Interactive cycle
    # ==================================================

    def current_tag(self) -> RequestTag:
        """Identify the settings a blend must match to be shown."""
        return (self._image_rev, self.state.selected_flag, self.state.blend_factor)

    def tick(self) -> Optional[ComputationOutcome]:
        """
        Run one interactive cycle.

        Returns:
            The outcome collected during this cycle, if any
        """
        outcome = self.coordinator.poll()
        if outcome is not None:
            self._accept(outcome)

        if self.state.needs_update:
            self._submit()

        return outcome

    @property
    def is_computing(self) -> bool:
        return self.coordinator.is_computing

    def _accept(self, outcome: ComputationOutcome) -> None:
        if not outcome.ok:
            logger.error("Blend failed: %s", outcome.error)
            self.state.status = f"Error computing overlay: {outcome.error}"
            return

        if outcome.request.tag != self.current_tag():
            # Settings moved on while this was computing
            logger.debug("Discarding stale blend %s", outcome.request.tag)
            if self.state.image is not None:
                self.state.needs_update = True
            return

        self.state.status = f"{self.state.flag} overlay at {self.state.blend_factor:.2f}"
        self._set_output(outcome.image)

    def _submit(self) -> None:
        image = self.state.image
        if image is None:
            self.state.needs_update = False
            return
        if self.coordinator.is_computing:
            # Stay dirty; resubmitted once the worker is idle
            return

        request = ComputationRequest.create(
            image,
            self._flag_buffer(self.state.flag, image),
            self.state.blend_factor,
            tag=self.current_tag(),
        )
        try:
            self.coordinator.submit(request)
        except BusyError:
            return
        except ComputationStartError as e:
            self.state.status = f"Error starting computation: {e}"
            return

        self.state.needs_update = False
        self.state.status = "Computing..."

    def _flag_buffer(self, flag: PrideFlag, image: ImageBuffer) -> FlagBuffer:
        height, width = get_image_dimensions(image)
        key = (flag, width, height)
        if self._flag_cache is None or self._flag_cache[0] != key:
            self._flag_cache = (key, create_pride_flag_overlay(flag, width, height))
        return self._flag_cache[1]

    def _set_output(self, image: ImageBuffer) -> None:
        self.state.output_image = image
        if self.on_output is not None:
            self.on_output(image)
