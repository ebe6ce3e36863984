"""Long-poll a remote job until it reaches a terminal status.

The poller queries the generation service at a fixed interval and returns
the job once it completes. It is the only place in the pipeline that loops
on remote state.

Behavior:
    - completed: return the final JobStatus
    - failed: raise JobFailedError immediately (never retried)
    - created / started / anything else: keep waiting
    - a status query that raises: log and keep polling (transient)
    - each status query is cut off when the timeout is reached, so the
      caller waits at most timeout + one interval
    - elapsed time measured from the first poll; once it exceeds the
      timeout, raise JobTimeoutError naming the job
    - should_abort() checked between iterations; raises PipelineAbortedError.
      The remote job itself is left running.

Usage:
    poller = JobPoller(client)
    job = await poller.poll_until_done(job_id, interval=10, timeout=600)
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from clipflow.exceptions import JobFailedError, JobTimeoutError, PipelineAbortedError
from clipflow.services.interfaces import (
    JOB_STATUS_COMPLETED,
    JOB_STATUS_FAILED,
    GenerationService,
    JobStatus,
)
from clipflow.utils.logging import get_logger

log = get_logger(__name__)

PollCallback = Callable[[str, float], Awaitable[None] | None]


class JobPoller:
    """Fixed-interval status poller for remote jobs."""

    def __init__(self, service: GenerationService) -> None:
        self.service = service

    async def poll_until_done(
        self,
        job_id: str,
        interval: float = 10.0,
        timeout: float = 600.0,
        on_poll: PollCallback | None = None,
        should_abort: Callable[[], bool] | None = None,
    ) -> JobStatus:
        """Poll job_id until it completes, fails or times out.

        Args:
            job_id: Remote job identifier
            interval: Seconds between status queries
            timeout: Seconds from the first poll before giving up
            on_poll: Called with (status, elapsed_seconds) after every
                successful query; may be sync or async
            should_abort: Cooperative abort check run between iterations

        Returns:
            The completed JobStatus

        Raises:
            JobFailedError: Remote job reported failed
            JobTimeoutError: Timeout elapsed without a terminal status
            PipelineAbortedError: should_abort() returned True
        """
        started = time.monotonic()

        while True:
            if should_abort is not None and should_abort():
                raise PipelineAbortedError()

            elapsed = time.monotonic() - started
            if elapsed > timeout:
                log.warning("job_poll_timeout", job_id=job_id, timeout_seconds=timeout)
                raise JobTimeoutError(job_id, timeout)

            try:
                # A hung query must not outlive the job timeout
                job = await asyncio.wait_for(
                    self.service.get_job_status(job_id), timeout=max(timeout - elapsed, 0.0)
                )
            except Exception as e:
                log.warning(
                    "job_poll_error",
                    job_id=job_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            else:
                elapsed = time.monotonic() - started
                if on_poll is not None:
                    result = on_poll(job.status, elapsed)
                    if asyncio.iscoroutine(result):
                        await result

                if job.status == JOB_STATUS_COMPLETED:
                    log.info("job_completed", job_id=job_id, elapsed_seconds=round(elapsed, 1))
                    return job

                if job.status == JOB_STATUS_FAILED:
                    log.error("job_failed", job_id=job_id, remote_error=job.error)
                    raise JobFailedError(job_id, job.error or "unknown error")

            await asyncio.sleep(interval)
