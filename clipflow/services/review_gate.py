"""Human-in-the-loop suspension for image candidate selection.

A ReviewGate is opened by a clip workflow once its image candidates are
ready and is resolved by PipelineOrchestrator.select_image(). The waiting
workflow resumes with the chosen index. If nobody chooses within the review
timeout, candidate 0 is used so the batch keeps moving. An abort request
wakes the waiter immediately.
"""

import asyncio

from clipflow.exceptions import ImageSelectionError, PipelineAbortedError
from clipflow.utils.logging import get_logger

log = get_logger(__name__)


class ReviewGate:
    """One-shot selection point for a single clip.

    Attributes:
        clip_index: Clip awaiting review
        candidate_count: Number of selectable candidates
    """

    def __init__(self, clip_index: int, candidate_count: int) -> None:
        self.clip_index = clip_index
        self.candidate_count = candidate_count
        self._selection: asyncio.Future[int] = asyncio.get_running_loop().create_future()

    @property
    def is_open(self) -> bool:
        """True while a selection can still be made."""
        return not self._selection.done()

    def resolve(self, image_index: int) -> None:
        """Record the selected candidate and wake the waiting workflow.

        Raises:
            ImageSelectionError: Gate already resolved or index out of range
        """
        if not self.is_open:
            raise ImageSelectionError(f"Clip {self.clip_index} is not awaiting image selection")
        if not 0 <= image_index < self.candidate_count:
            raise ImageSelectionError(
                f"Invalid image index {image_index} for clip {self.clip_index} "
                f"({self.candidate_count} candidates)"
            )
        self._selection.set_result(image_index)

    async def wait(self, timeout: float, abort_event: asyncio.Event) -> int:
        """Suspend until a selection, the timeout or an abort.

        Returns:
            The selected candidate index (0 when the timeout elapsed)

        Raises:
            PipelineAbortedError: abort_event was set while waiting
        """
        abort_waiter = asyncio.ensure_future(abort_event.wait())
        try:
            await asyncio.wait(
                {self._selection, abort_waiter},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            abort_waiter.cancel()

        if abort_event.is_set():
            if not self._selection.done():
                self._selection.cancel()
            raise PipelineAbortedError()

        if self._selection.done():
            return self._selection.result()

        log.warning(
            "review_timeout_default_selected",
            clip_index=self.clip_index,
            timeout_seconds=timeout,
        )
        self._selection.set_result(0)
        return 0
