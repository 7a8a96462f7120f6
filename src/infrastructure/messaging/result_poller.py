"""
Result Poller.

Resolves an analysis request by repeatedly fetching one message from the job
family's response queue on a fixed cadence, under an overall deadline.

Responsibility:
    - Fixed-cadence, non-blocking receive attempts (one per tick)
    - Polling passes of `max_attempts` ticks, restarted until the deadline
    - Hard deadline around in-flight receives
    - Single non-blocking check for the GET variant
    - Matching replies to requests by correlation id

Business Rules:
    - Defaults: interval 500 ms, 10 attempts per pass, deadline 5 s
      (POLL_INTERVAL_MS, POLL_MAX_ATTEMPTS, POLL_DEADLINE_SECONDS)
    - Tick k is scheduled at start + k * interval; with no reply the poller
      performs exactly ceil(deadline / interval) receives
    - First matching reply stops polling (at most one reply consumed)
    - CORRELATION_MODE=strict (default): a reply tagged with another job's
      correlation id is parked in the ResultMailbox, or put back on the
      response queue when no mailbox is configured; replies without a
      correlation id are accepted by whoever reads them
    - A foreign reply is only acknowledged once it is parked or put back;
      if neither works it is requeued untouched
    - Put-back replies expire RETURNED_REPLY_TTL_SECONDS (default 300)
      after they were first returned, so unclaimed replies stop circulating
    - CORRELATION_MODE=shared: first reply wins regardless of its id

Cancellation:
    poll() only suspends in asyncio.sleep and while awaiting a receive, so
    cancelling the task running it stops polling with no further receives.
    A receive already running in its worker thread finishes on its own.
"""

import asyncio
import logging
import math
import os
import time
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from src.domain.analysis import (
    Completed,
    Failed,
    Outcome,
    Pending,
    QueueDescriptor,
    TimedOut,
)
from src.infrastructure.messaging.broker_client import (
    BrokerClient,
    BrokerError,
    ReceivedMessage,
)
from src.infrastructure.messaging.topology import response_queue_for
from src.infrastructure.persistence.redis.result_mailbox import ResultMailbox

logger = logging.getLogger(__name__)

STRICT = "strict"
SHARED = "shared"

# Wall-clock time a foreign reply was first returned to its queue
RETURNED_AT_HEADER = "x-returned-at"


@dataclass(frozen=True)
class PollAttempt:
    """
    Result of one tick within a poll cycle.

    Attributes:
        attempt_index: 0-based tick number within the cycle
        received_message: Reply belonging to this request, if one arrived
    """

    attempt_index: int
    received_message: Optional[ReceivedMessage] = None


class ResultPoller:
    """
    Poll a response queue for the reply to one analysis job.

    Attributes:
        broker: BrokerClient used for receive and put-back publish
        mailbox: ResultMailbox for replies of other requests (optional)
        interval: Seconds between ticks
        max_attempts: Ticks per polling pass
        overall_deadline: Seconds after which polling gives up
        correlation_mode: "strict" or "shared"
        returned_reply_ttl: Seconds a put-back reply may circulate

    Examples:
        >>> poller = ResultPoller(get_broker_client())
        >>> outcome = await poller.poll(descriptor, job_id=envelope.job_id)
        >>> isinstance(outcome, Completed)
        True
    """

    def __init__(
        self,
        broker: BrokerClient,
        mailbox: Optional[ResultMailbox] = None,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        overall_deadline: Optional[float] = None,
        correlation_mode: Optional[str] = None,
        returned_reply_ttl: Optional[float] = None,
    ) -> None:
        """
        Initialize poller.

        Args:
            broker: Broker client
            mailbox: Parked-reply store (optional)
            interval: Tick interval in seconds (default from env: POLL_INTERVAL_MS / 1000 or 0.5)
            max_attempts: Ticks per pass (default from env: POLL_MAX_ATTEMPTS or 10)
            overall_deadline: Deadline in seconds (default from env: POLL_DEADLINE_SECONDS or 5)
            correlation_mode: "strict" or "shared" (default from env: CORRELATION_MODE or "strict")
            returned_reply_ttl: Put-back TTL in seconds (default from env:
                RETURNED_REPLY_TTL_SECONDS or 300)

        Raises:
            ValueError: If interval, max_attempts, deadline or mode is invalid
        """
        self.broker = broker
        self.mailbox = mailbox
        self.interval: float = (
            interval
            if interval is not None
            else int(os.getenv("POLL_INTERVAL_MS", "500")) / 1000
        )
        self.max_attempts: int = (
            max_attempts
            if max_attempts is not None
            else int(os.getenv("POLL_MAX_ATTEMPTS", "10"))
        )
        self.overall_deadline: float = (
            overall_deadline
            if overall_deadline is not None
            else float(os.getenv("POLL_DEADLINE_SECONDS", "5"))
        )
        self.correlation_mode: str = (
            correlation_mode or os.getenv("CORRELATION_MODE", STRICT)
        ).lower()
        self.returned_reply_ttl: float = (
            returned_reply_ttl
            if returned_reply_ttl is not None
            else float(os.getenv("RETURNED_REPLY_TTL_SECONDS", "300"))
        )

        if self.interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {self.interval}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.overall_deadline <= 0:
            raise ValueError(f"Deadline must be positive, got {self.overall_deadline}")
        if self.returned_reply_ttl <= 0:
            raise ValueError(f"Returned reply TTL must be positive, got {self.returned_reply_ttl}")
        if self.correlation_mode not in (STRICT, SHARED):
            raise ValueError(
                f"CORRELATION_MODE must be '{STRICT}' or '{SHARED}', got {self.correlation_mode!r}"
            )

    @staticmethod
    def tick_budget(overall_deadline: float, interval: float) -> int:
        """Number of receive attempts that fit in the deadline: ceil(deadline / interval)."""
        # Epsilon absorbs float noise such as 0.05 / 0.01 == 5.000000000000001
        return max(1, math.ceil(overall_deadline / interval - 1e-9))

    async def poll(
        self,
        descriptor: QueueDescriptor,
        job_id: Optional[UUID] = None,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        overall_deadline: Optional[float] = None,
    ) -> Outcome:
        """
        Poll until a reply arrives or the deadline elapses.

        Args:
            descriptor: Job family whose response queue is polled
            job_id: Correlation id of the job (None accepts any reply)
            interval: Override tick interval (seconds)
            max_attempts: Override ticks per pass
            overall_deadline: Override deadline (seconds)

        Returns:
            Completed, TimedOut, or Failed (broker/decode error)
        """
        interval = interval if interval is not None else self.interval
        max_attempts = max_attempts if max_attempts is not None else self.max_attempts
        overall_deadline = (
            overall_deadline if overall_deadline is not None else self.overall_deadline
        )

        attempts: List[PollAttempt] = []
        logger.debug(
            f"Polling {descriptor.response_queue_name} for job {job_id}: "
            f"interval={interval}s, max_attempts={max_attempts}, deadline={overall_deadline}s"
        )

        try:
            return await asyncio.wait_for(
                self._run_passes(
                    descriptor, job_id, interval, max_attempts, overall_deadline, attempts
                ),
                timeout=overall_deadline,
            )
        except asyncio.TimeoutError:
            logger.info(
                f"Polling for job {job_id} timed out after {overall_deadline}s "
                f"({len(attempts)} receive attempts)"
            )
            return TimedOut(job_id=job_id, attempts=len(attempts))
        except BrokerError as e:
            logger.error(f"Polling for job {job_id} failed: {e}")
            return Failed(reason=str(e), job_id=job_id)

    async def check_once(
        self, descriptor: QueueDescriptor, job_id: Optional[UUID] = None
    ) -> Outcome:
        """
        Single non-blocking check of the response queue (no polling loop).

        Returns:
            Completed, Pending, or Failed
        """
        try:
            attempt = await self._attempt(descriptor, job_id, 0)
        except BrokerError as e:
            logger.error(f"Result check for job {job_id} failed: {e}")
            return Failed(reason=str(e), job_id=job_id)

        if attempt.received_message is None:
            return Pending(job_id=job_id)
        return Completed(result=attempt.received_message.payload, job_id=job_id)

    async def _run_passes(
        self,
        descriptor: QueueDescriptor,
        job_id: Optional[UUID],
        interval: float,
        max_attempts: int,
        overall_deadline: float,
        attempts: List[PollAttempt],
    ) -> Outcome:
        loop = asyncio.get_running_loop()
        start = loop.time()
        total_ticks = self.tick_budget(overall_deadline, interval)
        tick = 0
        pass_number = 0

        while tick < total_ticks:
            pass_number += 1
            for _ in range(max_attempts):
                if tick >= total_ticks:
                    break

                delay = start + tick * interval - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)

                attempt = await self._attempt(descriptor, job_id, tick)
                attempts.append(attempt)
                tick += 1

                if attempt.received_message is not None:
                    logger.info(
                        f"Result for job {job_id} received on attempt {tick} "
                        f"(pass {pass_number})"
                    )
                    return Completed(result=attempt.received_message.payload, job_id=job_id)

            logger.debug(f"Polling pass {pass_number} for job {job_id} exhausted")

        remaining = start + overall_deadline - loop.time()
        if remaining > 0:
            await asyncio.sleep(remaining)
        return TimedOut(job_id=job_id, attempts=len(attempts))

    async def _attempt(
        self, descriptor: QueueDescriptor, job_id: Optional[UUID], attempt_index: int
    ) -> PollAttempt:
        if job_id is not None and self.mailbox is not None:
            try:
                parked = await asyncio.to_thread(self.mailbox.claim, str(job_id))
            except ValueError as e:
                raise BrokerError(f"Failed to get result: {e}", operation="claim") from e
            if parked is not None:
                return PollAttempt(
                    attempt_index, ReceivedMessage(payload=parked, correlation_id=str(job_id))
                )

        message = await asyncio.to_thread(
            self.broker.receive_no_wait,
            descriptor.response_queue_name,
            response_queue_for(descriptor),
            lambda received: self._take_or_set_aside(descriptor, job_id, received),
        )
        if message is None or not self._belongs_to(message, job_id):
            return PollAttempt(attempt_index)
        return PollAttempt(attempt_index, message)

    def _belongs_to(self, message: ReceivedMessage, job_id: Optional[UUID]) -> bool:
        if self.correlation_mode == SHARED or job_id is None:
            return True
        if message.correlation_id is None:
            return True
        return message.correlation_id == str(job_id)

    def _take_or_set_aside(
        self, descriptor: QueueDescriptor, job_id: Optional[UUID], message: ReceivedMessage
    ) -> bool:
        """
        Decide, before the ack, what happens to a received reply.

        Runs in the receive worker thread. Returns False only when a foreign
        reply could be neither parked nor returned; the broker then requeues
        it so it is never lost.
        """
        if self._belongs_to(message, job_id):
            return True

        if self.mailbox is not None and self.mailbox.park(
            message.correlation_id, message.payload
        ):
            return True

        return self._return_to_queue(descriptor, message)

    def _return_to_queue(self, descriptor: QueueDescriptor, message: ReceivedMessage) -> bool:
        now = time.time()
        try:
            returned_at = float(message.headers.get(RETURNED_AT_HEADER, now))
        except (TypeError, ValueError):
            returned_at = now
        remaining = self.returned_reply_ttl - (now - returned_at)

        if remaining <= 0:
            logger.warning(
                f"Dropping result of job {message.correlation_id}: unclaimed for "
                f"{self.returned_reply_ttl}s on {descriptor.response_queue_name}"
            )
            return True

        try:
            self.broker.publish(
                message.payload,
                "",
                descriptor.response_queue_name,
                correlation_id=message.correlation_id,
                expiration=remaining,
                headers={RETURNED_AT_HEADER: returned_at},
            )
        except BrokerError as e:
            logger.warning(
                f"Could not return result of job {message.correlation_id} to "
                f"{descriptor.response_queue_name}, requeueing it: {e}"
            )
            return False

        logger.info(
            f"Returned result of job {message.correlation_id} to "
            f"{descriptor.response_queue_name} (expires in {remaining:.0f}s)"
        )
        return True
