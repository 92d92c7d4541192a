"""
Background blend computation.

This module runs the blend off the interactive thread and hands the result back
through a single-slot mailbox. At most one computation is in flight; a
submission made while computing is rejected with BusyError.

Classes:
    CoordinatorState: IDLE or COMPUTING
    ComputationRequest: Immutable snapshot of the blend inputs
    ComputationOutcome: Result image or error, delivered once by poll()
    AsyncComputeCoordinator: The two-state submit/poll machine
"""

import enum
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .blending import blend_images, validate_blend_factor
from .core import FlagBuffer, ImageBuffer, snapshot
from .errors import BusyError, ComputationFailedError, ComputationStartError

logger = logging.getLogger(__name__)

# Type alias for the blend callable run by the worker
BlendFunction = Callable[[ImageBuffer, FlagBuffer, float], ImageBuffer]


class CoordinatorState(enum.Enum):
    IDLE = "idle"
    COMPUTING = "computing"


@dataclass(frozen=True, eq=False)
class ComputationRequest:
    """Blend inputs captured at submission time.

    Attributes:
        image: Read-only copy of the image buffer
        flag: Read-only copy of the flag buffer
        factor: Validated blend factor
        tag: Opaque value the caller uses to recognise the request later
    """

    image: ImageBuffer
    flag: FlagBuffer
    factor: float
    tag: Any = None

    @classmethod
    def create(cls, image: ImageBuffer, flag: FlagBuffer, factor: float, tag: Any = None) -> "ComputationRequest":
        """Snapshot the inputs so later edits by the caller cannot reach the worker."""
        return cls(
            image=snapshot(image),
            flag=snapshot(flag),
            factor=validate_blend_factor(factor),
            tag=tag,
        )


@dataclass(frozen=True, eq=False)
class ComputationOutcome:
    """The result of one computation: an image or an error, never both."""

    request: ComputationRequest
    image: Optional[ImageBuffer] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ImageBuffer:
        """Return the image, or raise the error the computation ended with."""
        if self.error is not None:
            raise self.error
        return self.image


class AsyncComputeCoordinator:
    """
    Runs one blend at a time on a background thread.

    The owner calls submit() when inputs change and poll() once per interactive
    cycle. poll() never blocks; it returns None until the worker has put its
    outcome in the mailbox, then returns that outcome and moves back to IDLE.

    Example:
        >>> coordinator = AsyncComputeCoordinator()
        >>> coordinator.submit(ComputationRequest.create(image, flag, 0.5))
        >>> outcome = coordinator.poll()  # None while computing
    """

    def __init__(self, engine: BlendFunction = blend_images, name: str = "blend-worker"):
        """
        Args:
            engine: Callable run on the worker as engine(image, flag, factor)
            name: Worker thread name, used in logs
        """
        self._engine = engine
        self._name = name
        self._state = CoordinatorState.IDLE
        self._lock = threading.Lock()
        self._mailbox: "queue.Queue[ComputationOutcome]" = queue.Queue(maxsize=1)
        self._ready = threading.Event()

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def is_computing(self) -> bool:
        return self._state is CoordinatorState.COMPUTING

    def submit(self, request: ComputationRequest) -> None:
        """
        Start computing a request.

        Raises:
            BusyError: If a computation is already in flight; it is left untouched
            ComputationStartError: If the worker thread could not be started
        """
        with self._lock:
            if self._state is CoordinatorState.COMPUTING:
                logger.debug("Submission dropped, %s is busy", self._name)
                raise BusyError("A computation is already in flight")

            worker = threading.Thread(target=self._run, args=(request,), name=self._name, daemon=True)
            self._ready.clear()
            self._state = CoordinatorState.COMPUTING
            try:
                worker.start()
            except RuntimeError as exc:
                self._state = CoordinatorState.IDLE
                logger.error("Could not start %s: %s", self._name, exc)
                raise ComputationStartError(f"Could not start background computation: {exc}") from exc

            logger.debug("Submitted blend (factor=%.3f) to %s", request.factor, self._name)

    def poll(self) -> Optional[ComputationOutcome]:
        """Return the finished outcome if there is one, without waiting."""
        with self._lock:
            try:
                outcome = self._mailbox.get_nowait()
            except queue.Empty:
                return None
            self._state = CoordinatorState.IDLE
            self._ready.clear()
        return outcome

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until an outcome is ready to poll.

        For batch callers only; an interactive loop should just poll().

        Returns:
            True if an outcome is ready, False on timeout or when nothing was submitted
        """
        if self._state is CoordinatorState.IDLE and self._mailbox.empty():
            return False
        return self._ready.wait(timeout)

    def _run(self, request: ComputationRequest) -> None:
        outcome = None
        try:
            image = self._engine(request.image, request.flag, request.factor)
            outcome = ComputationOutcome(request=request, image=image)
        except Exception as exc:
            logger.exception("Background blend failed in %s", self._name)
            failure = ComputationFailedError(f"Background computation failed: {exc}")
            failure.__cause__ = exc
            outcome = ComputationOutcome(request=request, error=failure)
        finally:
            if outcome is None:
                outcome = ComputationOutcome(
                    request=request,
                    error=ComputationFailedError("Background computation was interrupted"),
                )
            # Only one computation is ever in flight, so the slot is free;
            # put and signal under the lock that poll() clears it with
            with self._lock:
                self._mailbox.put_nowait(outcome)
                self._ready.set()
