"""Running result collection and progress counter for the active generation."""

from typing import Callable, List, Optional

from imagestudio.models.generate import (
    Batch,
    ErrorNotice,
    GeneratedImage,
    GenerationProgress,
    GenerationState,
)
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)

StateListener = Callable[[GenerationState], None]


class ResultAggregator:
    """Own the image list, progress and error of one generation at a time.

    Every `begin` hands out a new epoch token. Writes carrying an older
    token are dropped, so a superseded batch loop can never touch the
    state of the operation that replaced it.
    """

    def __init__(self):
        self._epoch = 0
        self._images: List[GeneratedImage] = []
        self._progress: Optional[GenerationProgress] = None
        self._error: Optional[ErrorNotice] = None
        self._is_loading = False
        self._is_enhancing = False
        self._listeners: List[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def epoch(self) -> int:
        return self._epoch

    def is_current(self, token: int) -> bool:
        return token == self._epoch

    def snapshot(self) -> GenerationState:
        return GenerationState(
            images=list(self._images),
            progress=self._progress,
            error=self._error,
            is_loading=self._is_loading,
            is_enhancing=self._is_enhancing,
        )

    def _publish(self) -> None:
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(f"State listener {listener!r} failed")

    def begin(self, total: int) -> int:
        """Reset for a new operation and return its token."""
        self._epoch += 1
        self._images = []
        self._error = None
        self._progress = GenerationProgress(completed=0, total=total)
        self._is_loading = True
        self._publish()
        return self._epoch

    def append(self, token: int, batch: Batch, images: List[GeneratedImage]) -> bool:
        """Add a settled batch to the end of the collection."""
        if not self.is_current(token):
            logger.warning(f"Ignoring batch {batch.index + 1} from stale epoch {token}")
            return False

        self._images.extend(images)
        completed = (self._progress.completed if self._progress else 0) + batch.size
        total = self._progress.total if self._progress else completed
        self._progress = GenerationProgress(completed=completed, total=total)
        self._publish()
        return True

    def fail(self, token: int, error: ErrorNotice) -> bool:
        if not self.is_current(token):
            return False
        self._error = error
        self._publish()
        return True

    def finish(self, token: int) -> bool:
        """Clear progress and lower the loading flag; images stay visible."""
        if not self.is_current(token):
            return False
        self._progress = None
        self._is_loading = False
        self._publish()
        return True

    def report_error(self, error: Optional[ErrorNotice]) -> None:
        """Set or clear the displayed error outside of a batch run."""
        self._error = error
        self._publish()

    def set_enhancing(self, value: bool) -> None:
        self._is_enhancing = value
        self._publish()
