"""
Analysis Use Case

Application Layer orchestration of one asynchronous analysis request:
validate -> build envelope -> publish -> poll -> translate.

Responsibility:
    - Reject invalid input before any broker interaction
    - Reuse the job of an earlier attempt when an Idempotency-Key repeats
    - Publish the job at most once per request
    - Poll for the reply while the client is still connected
    - Translate the Outcome to an HTTP status code and body

Architecture Notes:
    - Part of Application Layer
    - Dependencies injected (publisher, poller, mailbox) for testability
    - No HTTP framework imports; disconnect detection is a plain callback

Process Flow (execute):
    1. command.validate_business_rules() (ClientInputError -> HTTP 400)
    2. Resolve job id (idempotency reservation or new id)
    3. JobPublisher.submit() unless the key was already bound to a job
    4. ResultPoller.poll() in its own task, cancelled on client disconnect
    5. OutcomeTranslator.translate()
"""

import asyncio
import logging
import os
from typing import Awaitable, Callable, Optional
from uuid import UUID, uuid4

from src.application.commands.analyze import AnalyzeCommand
from src.application.services.outcome_translator import (
    OutcomeTranslator,
    TranslatedOutcome,
)
from src.domain.analysis import Failed, Outcome, QueueDescriptor
from src.infrastructure.messaging.broker_client import BrokerError
from src.infrastructure.messaging.job_publisher import JobPublisher
from src.infrastructure.messaging.result_poller import ResultPoller
from src.infrastructure.persistence.redis.result_mailbox import ResultMailbox

logger = logging.getLogger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


class AnalysisUseCase:
    """
    Bridge one HTTP analysis request to the broker and back.

    Attributes:
        publisher: JobPublisher
        poller: ResultPoller
        translator: OutcomeTranslator
        mailbox: ResultMailbox for idempotency keys (optional)
        disconnect_check_interval: Seconds between client disconnect checks

    Examples:
        >>> use_case = AnalysisUseCase(publisher, poller)
        >>> translated = await use_case.execute(AnalyzeCommand(text="curly, 3a"), descriptor)
        >>> translated.status_code
        200
    """

    def __init__(
        self,
        publisher: JobPublisher,
        poller: ResultPoller,
        translator: Optional[OutcomeTranslator] = None,
        mailbox: Optional[ResultMailbox] = None,
        disconnect_check_interval: Optional[float] = None,
    ) -> None:
        self.publisher = publisher
        self.poller = poller
        self.translator = translator or OutcomeTranslator()
        self.mailbox = mailbox
        self.disconnect_check_interval: float = disconnect_check_interval or (
            int(os.getenv("DISCONNECT_CHECK_INTERVAL_MS", "100")) / 1000
        )

    async def execute(
        self,
        command: AnalyzeCommand,
        descriptor: QueueDescriptor,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> Optional[TranslatedOutcome]:
        """
        Submit the job and wait (bounded) for its result.

        Args:
            command: Validated-on-entry analyze command
            descriptor: Target job family
            is_disconnected: Async callback reporting client disconnect

        Returns:
            TranslatedOutcome, or None if the client disconnected while polling

        Raises:
            ClientInputError: Invalid input (nothing was published)
        """
        command.validate_business_rules()

        job_id, already_submitted = await self._resolve_job_id(command)

        if not already_submitted:
            envelope = command.to_envelope(job_id)
            try:
                await self.publisher.submit(envelope, descriptor)
            except BrokerError as e:
                logger.error(f"Failed to submit {descriptor.family} job {job_id}: {e}")
                if command.idempotency_key and self.mailbox is not None:
                    await asyncio.to_thread(self.mailbox.release, command.idempotency_key)
                return self.translator.translate(Failed(reason=str(e), job_id=job_id))
        else:
            logger.info(
                f"Idempotent retry for {descriptor.family} job {job_id}; not republishing"
            )

        outcome = await self._poll_while_connected(descriptor, job_id, is_disconnected)
        if outcome is None:
            return None

        translated = self.translator.translate(outcome)
        logger.info(
            f"{descriptor.family} job {job_id} resolved: {outcome.state} -> {translated.status_code}"
        )
        return translated

    async def check(
        self, descriptor: QueueDescriptor, job_id: Optional[UUID] = None
    ) -> TranslatedOutcome:
        """
        Single non-blocking result check (GET variant).

        Args:
            descriptor: Job family
            job_id: Job whose result is wanted (None takes any available result)
        """
        outcome = await self.poller.check_once(descriptor, job_id)
        return self.translator.translate(outcome)

    async def _resolve_job_id(self, command: AnalyzeCommand) -> tuple[UUID, bool]:
        candidate = uuid4()
        if not command.idempotency_key or self.mailbox is None:
            return candidate, False

        existing = await asyncio.to_thread(
            self.mailbox.reserve, command.idempotency_key, str(candidate)
        )
        if existing is None:
            return candidate, False

        try:
            return UUID(existing), True
        except ValueError:
            logger.warning(
                f"Idempotency key {command.idempotency_key!r} bound to invalid job id "
                f"{existing!r}; submitting a new job"
            )
            return candidate, False

    async def _poll_while_connected(
        self,
        descriptor: QueueDescriptor,
        job_id: UUID,
        is_disconnected: Optional[DisconnectCheck],
    ) -> Optional[Outcome]:
        poll_task = asyncio.create_task(self.poller.poll(descriptor, job_id))

        try:
            if is_disconnected is None:
                return await poll_task

            while True:
                done, _ = await asyncio.wait({poll_task}, timeout=self.disconnect_check_interval)
                if done:
                    return poll_task.result()

                if await is_disconnected():
                    logger.info(
                        f"Client disconnected; stopped polling for {descriptor.family} job {job_id}"
                    )
                    poll_task.cancel()
                    await asyncio.wait({poll_task})
                    return None
        finally:
            if not poll_task.done():
                poll_task.cancel()
