"""Status polling for remote conversion jobs.

JobPoller drives a started job to a terminal outcome:

    Polling -> Completed   (returns the completed job snapshot)
    Polling -> Failed      (RemoteJobFailedError, no further queries)
    Polling -> TimedOut    (JobTimedOutError after max_attempts queries)

Any other reported state, including labels the client does not know, keeps
the machine in Polling. The wait between attempts is an ``asyncio.sleep``, so
the event loop stays free and cancelling the awaiting task stops the loop
before the next query is sent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from pydantic import SecretStr

from pipeline.clients.job_client import DocumentIntelligenceClient
from pipeline.core.config import PROGRESS_POLLING_END, PROGRESS_POLLING_START
from pipeline.core.exceptions import JobTimedOutError, RemoteJobFailedError
from pipeline.models.dto import Job, JobState

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_ATTEMPTS = 60

AttemptCallback = Callable[[int, int, Job], None]


def attempt_percent(
    attempt: int,
    max_attempts: int,
    start: int = PROGRESS_POLLING_START,
    end: int = PROGRESS_POLLING_END,
) -> int:
    """Map a 1-based attempt index into the [start, end] percent sub-range."""
    if max_attempts <= 0:
        return start
    attempt = min(max(attempt, 0), max_attempts)
    return start + (end - start) * attempt // max_attempts


class JobPoller:
    def __init__(
        self,
        client: DocumentIntelligenceClient,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.client = client
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    @property
    def deadline_seconds(self) -> float:
        return self.interval * self.max_attempts

    async def wait_until_terminal(
        self,
        credential: SecretStr,
        job: Job,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> Job:
        """Poll until the job completes.

        Args:
            credential: API key forwarded with every status query
            job: Started job to poll
            on_attempt: Called as ``(attempt, max_attempts, snapshot)`` after
                every non-terminal status observation

        Returns:
            The Completed job snapshot

        Raises:
            RemoteJobFailedError: The remote service reported Failed
            JobTimedOutError: max_attempts queries without a terminal state
        """
        for attempt in range(1, self.max_attempts + 1):
            snapshot = await self.client.fetch_status(credential, job)

            if snapshot.state is JobState.COMPLETED:
                logger.info(
                    f"Job completed after {attempt} status check(s)",
                    extra={"job_id": job.id, "stage": "poll", "attempt": attempt},
                )
                return snapshot

            if snapshot.state is JobState.FAILED:
                logger.warning(
                    "Remote job reported failure",
                    extra={"job_id": job.id, "stage": "poll", "attempt": attempt},
                )
                raise RemoteJobFailedError(job.id, reason=snapshot.remote_state)

            if snapshot.state is JobState.UNKNOWN:
                logger.info(
                    f"Unrecognized job state {snapshot.remote_state!r}, still polling",
                    extra={"job_id": job.id, "stage": "poll", "attempt": attempt},
                )

            if on_attempt is not None:
                on_attempt(attempt, self.max_attempts, snapshot)

            if attempt < self.max_attempts:
                await self._sleep(self.interval)

        logger.warning(
            f"Job still not finished after {self.max_attempts} status checks",
            extra={"job_id": job.id, "stage": "poll", "attempt": self.max_attempts},
        )
        raise JobTimedOutError(job.id, self.max_attempts, self.deadline_seconds)
