"""
Run poller: waits for an assistant run to reach a terminal state.

The runtime only exposes completion through status queries, so the run is
polled at a fixed interval for a bounded number of attempts.

    PENDING -> SUCCEEDED   status is a success variant
    PENDING -> FAILED      status is failed / cancelled / expired
    PENDING -> TIMED_OUT   attempts exhausted while still pending
"""
import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from assistant_bff.errors import RunFailedError, RunTimeoutError
from assistant_bff.models.assistant import Run
from assistant_bff.services.assistant_service import AssistantService

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_INTERVAL_SECONDS = 1.0


class PollState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class RunPoller:
    def __init__(
        self,
        assistant: AssistantService,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.assistant = assistant
        self.interval_seconds = interval_seconds
        self._sleep = sleep
        self.state = PollState.PENDING
        self.attempts = 0
        self.last_run: Optional[Run] = None

    async def wait_for_completion(
        self,
        external_thread_id: str,
        run_id: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> Run:
        """
        Poll until the run completes.

        Raises RunFailedError as soon as a failure status is observed and
        RunTimeoutError once max_attempts polls have seen no terminal status.
        Errors from the status lookup itself propagate unchanged.
        """
        self.state = PollState.PENDING
        self.attempts = 0
        self.last_run = None
        logger.info("Waiting for run %s on thread %s", run_id, external_thread_id)

        while self.attempts < max_attempts:
            run = await self.assistant.get_run_status(external_thread_id, run_id)
            self.attempts += 1
            self.last_run = run
            logger.info("Attempt %s/%s: run %s status=%s", self.attempts, max_attempts, run_id, run.status)

            if run.succeeded:
                self.state = PollState.SUCCEEDED
                return run

            if run.failed:
                self.state = PollState.FAILED
                last_error = run.last_error.model_dump() if run.last_error else None
                logger.error("Run %s failed with status %s: %s", run_id, run.status, last_error)
                raise RunFailedError(
                    run.status,
                    last_error,
                    details={"thread_id": external_thread_id, "run_id": run_id},
                )

            if self.attempts < max_attempts:
                await self._sleep(self.interval_seconds)

        self.state = PollState.TIMED_OUT
        logger.error("Run %s did not finish after %s attempts", run_id, max_attempts)
        raise RunTimeoutError(
            f"Run {run_id} did not complete after {max_attempts} attempts",
            details={"thread_id": external_thread_id, "run_id": run_id, "attempts": max_attempts},
        )
