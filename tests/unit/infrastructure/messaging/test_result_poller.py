"""
Tests for ResultPoller.

Covers:
- Exact number of receive attempts under the deadline
- First reply stops polling
- Polling passes restart until the deadline
- Cancellation stops further receives
- Correlation handling (strict/shared, parking, put-back, requeue, expiry)
- Single non-blocking check
- Broker failures mapped to Failed
"""

import asyncio
import time
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from src.domain.analysis import Completed, Failed, Pending, TimedOut
from src.infrastructure.messaging.broker_client import BrokerError, ReceivedMessage
from src.infrastructure.messaging.result_poller import RETURNED_AT_HEADER, ResultPoller

INTERVAL = 0.1
DEADLINE = 0.5


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def mock_broker():
    broker = MagicMock()
    broker.receive_no_wait.return_value = None
    return broker


@pytest.fixture
def mock_mailbox():
    mailbox = MagicMock()
    mailbox.claim.return_value = None
    mailbox.park.return_value = True
    return mailbox


@pytest.fixture
def poller(mock_broker):
    return ResultPoller(mock_broker, interval=INTERVAL, max_attempts=10, overall_deadline=DEADLINE)


def _reply(payload, correlation_id=None):
    return ReceivedMessage(payload=payload, correlation_id=correlation_id)


class FakeResponseQueue:
    """Response queue honouring the keep-or-requeue contract of receive_no_wait."""

    def __init__(self, *messages):
        self.messages = list(messages)
        self.requeued = 0

    def receive(self, queue_name, declare=None, keep=None):
        if not self.messages:
            return None
        message = self.messages.pop(0)
        if keep is not None and not keep(message):
            self.messages.insert(0, message)
            self.requeued += 1
            return None
        return message


# ============================================================================
# CONFIGURATION
# ============================================================================


@pytest.mark.parametrize(
    "deadline, interval, expected",
    [(5, 0.5, 10), (0.5, 0.1, 5), (0.05, 0.01, 5), (1, 0.3, 4), (1, 3, 1)],
)
def test_tick_budget(deadline, interval, expected):
    assert ResultPoller.tick_budget(deadline, interval) == expected


def test_defaults_read_from_environment(monkeypatch, mock_broker):
    monkeypatch.setenv("POLL_INTERVAL_MS", "250")
    monkeypatch.setenv("POLL_MAX_ATTEMPTS", "4")
    monkeypatch.setenv("POLL_DEADLINE_SECONDS", "2")
    monkeypatch.setenv("CORRELATION_MODE", "SHARED")

    poller = ResultPoller(mock_broker)

    assert poller.interval == 0.25
    assert poller.max_attempts == 4
    assert poller.overall_deadline == 2.0
    assert poller.correlation_mode == "shared"


def test_builtin_defaults(monkeypatch, mock_broker):
    for name in (
        "POLL_INTERVAL_MS",
        "POLL_MAX_ATTEMPTS",
        "POLL_DEADLINE_SECONDS",
        "CORRELATION_MODE",
        "RETURNED_REPLY_TTL_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)

    poller = ResultPoller(mock_broker)

    assert poller.interval == 0.5
    assert poller.max_attempts == 10
    assert poller.overall_deadline == 5.0
    assert poller.correlation_mode == "strict"
    assert poller.returned_reply_ttl == 300.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"interval": 0},
        {"max_attempts": 0},
        {"overall_deadline": -1},
        {"correlation_mode": "fuzzy"},
        {"returned_reply_ttl": 0},
    ],
)
def test_invalid_configuration_raises(mock_broker, kwargs):
    with pytest.raises(ValueError):
        ResultPoller(mock_broker, **kwargs)


# ============================================================================
# POLLING
# ============================================================================


@pytest.mark.asyncio
async def test_reply_on_first_tick_needs_one_receive(poller, mock_broker, composition_descriptor):
    job_id = uuid4()
    mock_broker.receive_no_wait.return_value = _reply({"hairType": "3A"}, str(job_id))

    outcome = await poller.poll(composition_descriptor, job_id)

    assert outcome == Completed(result={"hairType": "3A"}, job_id=job_id)
    mock_broker.receive_no_wait.assert_called_once()
    queue_name, declared_queue, _ = mock_broker.receive_no_wait.call_args.args
    assert queue_name == "consistence.responses"
    assert declared_queue.name == "consistence.responses"


@pytest.mark.asyncio
async def test_reply_on_third_tick(poller, mock_broker, composition_descriptor):
    mock_broker.receive_no_wait.side_effect = [None, None, _reply("done")]

    outcome = await poller.poll(composition_descriptor)

    assert isinstance(outcome, Completed)
    assert outcome.result == "done"
    assert mock_broker.receive_no_wait.call_count == 3


@pytest.mark.asyncio
async def test_no_reply_times_out_after_exact_attempts(poller, mock_broker, composition_descriptor):
    job_id = uuid4()
    loop = asyncio.get_running_loop()
    start = loop.time()

    outcome = await poller.poll(composition_descriptor, job_id)

    elapsed = loop.time() - start
    assert isinstance(outcome, TimedOut)
    assert outcome.job_id == job_id
    assert outcome.attempts == 5
    assert mock_broker.receive_no_wait.call_count == 5
    assert elapsed >= DEADLINE - 0.05


@pytest.mark.asyncio
async def test_passes_restart_until_deadline(mock_broker, composition_descriptor):
    poller = ResultPoller(mock_broker, interval=INTERVAL, max_attempts=2, overall_deadline=DEADLINE)

    outcome = await poller.poll(composition_descriptor)

    assert isinstance(outcome, TimedOut)
    assert mock_broker.receive_no_wait.call_count == 5


@pytest.mark.asyncio
async def test_per_call_overrides(poller, mock_broker, composition_descriptor):
    outcome = await poller.poll(composition_descriptor, interval=0.05, overall_deadline=0.1)

    assert isinstance(outcome, TimedOut)
    assert mock_broker.receive_no_wait.call_count == 2


@pytest.mark.asyncio
async def test_receive_failure_returns_failed(poller, mock_broker, composition_descriptor):
    mock_broker.receive_no_wait.side_effect = BrokerError("Failed to get result: closed")

    outcome = await poller.poll(composition_descriptor)

    assert isinstance(outcome, Failed)
    assert outcome.reason == "Failed to get result: closed"


@pytest.mark.asyncio
async def test_cancellation_stops_receives(mock_broker, composition_descriptor):
    poller = ResultPoller(mock_broker, interval=0.05, max_attempts=10, overall_deadline=10)

    task = asyncio.create_task(poller.poll(composition_descriptor))
    await asyncio.sleep(0.12)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    calls_at_cancel = mock_broker.receive_no_wait.call_count
    await asyncio.sleep(0.15)
    assert calls_at_cancel >= 1
    assert mock_broker.receive_no_wait.call_count == calls_at_cancel


# ============================================================================
# CORRELATION
# ============================================================================


@pytest.mark.asyncio
async def test_foreign_reply_is_parked_and_polling_continues(
    mock_broker, mock_mailbox, composition_descriptor
):
    job_id = uuid4()
    queue = FakeResponseQueue(
        _reply({"hairType": "2B"}, "other-job"),
        _reply({"hairType": "3A"}, str(job_id)),
    )
    mock_broker.receive_no_wait.side_effect = queue.receive
    poller = ResultPoller(mock_broker, mailbox=mock_mailbox, interval=INTERVAL, overall_deadline=DEADLINE)

    outcome = await poller.poll(composition_descriptor, job_id)

    assert outcome.result == {"hairType": "3A"}
    mock_mailbox.park.assert_called_once_with("other-job", {"hairType": "2B"})
    mock_broker.publish.assert_not_called()
    assert queue.requeued == 0


@pytest.mark.asyncio
async def test_foreign_reply_returned_to_queue_without_mailbox(
    poller, mock_broker, composition_descriptor
):
    job_id = uuid4()
    queue = FakeResponseQueue(
        _reply({"hairType": "2B"}, "other-job"),
        _reply({"hairType": "3A"}, str(job_id)),
    )
    mock_broker.receive_no_wait.side_effect = queue.receive
    before = time.time()

    outcome = await poller.poll(composition_descriptor, job_id)

    assert outcome.result == {"hairType": "3A"}
    mock_broker.publish.assert_called_once()
    args = mock_broker.publish.call_args.args
    kwargs = mock_broker.publish.call_args.kwargs
    assert args == ({"hairType": "2B"}, "", "consistence.responses")
    assert kwargs["correlation_id"] == "other-job"
    assert 299 < kwargs["expiration"] <= 300
    assert kwargs["headers"][RETURNED_AT_HEADER] >= before


@pytest.mark.asyncio
async def test_unparkable_reply_falls_back_to_queue(
    mock_broker, mock_mailbox, composition_descriptor
):
    mock_mailbox.park.return_value = False
    queue = FakeResponseQueue(_reply({"hairType": "2B"}, "other-job"))
    mock_broker.receive_no_wait.side_effect = queue.receive
    poller = ResultPoller(mock_broker, mailbox=mock_mailbox, interval=INTERVAL, overall_deadline=DEADLINE)

    await poller.poll(composition_descriptor, uuid4())

    mock_mailbox.park.assert_called_once()
    assert mock_broker.publish.call_args.kwargs["correlation_id"] == "other-job"


@pytest.mark.asyncio
async def test_failed_return_requeues_foreign_reply_and_keeps_polling(
    poller, mock_broker, composition_descriptor
):
    job_id = uuid4()
    queue = FakeResponseQueue(
        _reply({"hairType": "2B"}, "other-job"),
        _reply({"hairType": "3A"}, str(job_id)),
    )
    mock_broker.receive_no_wait.side_effect = queue.receive
    mock_broker.publish.side_effect = [BrokerError("Failed to publish message: channel closed"), None]

    outcome = await poller.poll(composition_descriptor, job_id)

    assert outcome == Completed(result={"hairType": "3A"}, job_id=job_id)
    assert queue.requeued == 1
    assert mock_broker.publish.call_count == 2


@pytest.mark.asyncio
async def test_broker_refusing_returns_never_fails_the_caller(
    poller, mock_broker, composition_descriptor
):
    job_id = uuid4()
    foreign = _reply({"hairType": "2B"}, "other-job")
    queue = FakeResponseQueue(foreign, _reply({"hairType": "3A"}, str(job_id)))
    mock_broker.receive_no_wait.side_effect = queue.receive
    mock_broker.publish.side_effect = BrokerError("Failed to publish message: channel closed")

    outcome = await poller.poll(composition_descriptor, job_id)

    assert isinstance(outcome, TimedOut)
    assert queue.requeued == 5
    assert queue.messages[0] is foreign


@pytest.mark.asyncio
async def test_returned_reply_past_its_ttl_is_dropped(mock_broker, composition_descriptor):
    stale = ReceivedMessage(
        payload={"hairType": "2B"},
        correlation_id="other-job",
        headers={RETURNED_AT_HEADER: time.time() - 120},
    )
    queue = FakeResponseQueue(stale)
    mock_broker.receive_no_wait.side_effect = queue.receive
    poller = ResultPoller(
        mock_broker, interval=INTERVAL, overall_deadline=DEADLINE, returned_reply_ttl=60
    )

    outcome = await poller.poll(composition_descriptor, uuid4())

    assert isinstance(outcome, TimedOut)
    mock_broker.publish.assert_not_called()
    assert queue.requeued == 0
    assert queue.messages == []


@pytest.mark.asyncio
async def test_returned_reply_keeps_its_first_return_time(poller, mock_broker, composition_descriptor):
    returned_at = time.time() - 100
    queue = FakeResponseQueue(
        ReceivedMessage(
            payload="bounced",
            correlation_id="other-job",
            headers={RETURNED_AT_HEADER: returned_at},
        )
    )
    mock_broker.receive_no_wait.side_effect = queue.receive

    await poller.poll(composition_descriptor, uuid4())

    kwargs = mock_broker.publish.call_args.kwargs
    assert kwargs["headers"] == {RETURNED_AT_HEADER: returned_at}
    assert 199 < kwargs["expiration"] <= 200


@pytest.mark.asyncio
async def test_parked_reply_is_claimed_before_receiving(
    mock_broker, mock_mailbox, composition_descriptor
):
    job_id = uuid4()
    mock_mailbox.claim.return_value = {"hairType": "4C"}
    poller = ResultPoller(mock_broker, mailbox=mock_mailbox, interval=INTERVAL, overall_deadline=DEADLINE)

    outcome = await poller.poll(composition_descriptor, job_id)

    assert outcome == Completed(result={"hairType": "4C"}, job_id=job_id)
    mock_mailbox.claim.assert_called_once_with(str(job_id))
    mock_broker.receive_no_wait.assert_not_called()


@pytest.mark.asyncio
async def test_corrupt_parked_reply_returns_failed(
    mock_broker, mock_mailbox, composition_descriptor
):
    job_id = uuid4()
    mock_mailbox.claim.side_effect = ValueError(f"Parked result for job {job_id} is corrupt")
    poller = ResultPoller(mock_broker, mailbox=mock_mailbox, interval=INTERVAL, overall_deadline=DEADLINE)

    outcome = await poller.poll(composition_descriptor, job_id)

    assert isinstance(outcome, Failed)
    assert outcome.reason == f"Failed to get result: Parked result for job {job_id} is corrupt"
    mock_broker.receive_no_wait.assert_not_called()


@pytest.mark.asyncio
async def test_reply_without_correlation_id_is_accepted(poller, mock_broker, composition_descriptor):
    mock_broker.receive_no_wait.return_value = _reply("untagged")

    outcome = await poller.poll(composition_descriptor, uuid4())

    assert outcome.result == "untagged"


@pytest.mark.asyncio
async def test_shared_mode_takes_first_reply(mock_broker, composition_descriptor):
    mock_broker.receive_no_wait.return_value = _reply("someone else's", "other-job")
    poller = ResultPoller(
        mock_broker, interval=INTERVAL, overall_deadline=DEADLINE, correlation_mode="shared"
    )

    outcome = await poller.poll(composition_descriptor, uuid4())

    assert outcome.result == "someone else's"
    mock_broker.publish.assert_not_called()


# ============================================================================
# SINGLE CHECK
# ============================================================================


@pytest.mark.asyncio
async def test_check_once_empty_queue_is_pending(poller, mock_broker, porosity_descriptor):
    outcome = await poller.check_once(porosity_descriptor)

    assert isinstance(outcome, Pending)
    mock_broker.receive_no_wait.assert_called_once()
    assert mock_broker.receive_no_wait.call_args.args[0] == "hairType.responses"


@pytest.mark.asyncio
async def test_check_once_returns_available_reply(poller, mock_broker, porosity_descriptor):
    mock_broker.receive_no_wait.return_value = _reply({"porosity": "high"})

    outcome = await poller.check_once(porosity_descriptor)

    assert outcome == Completed(result={"porosity": "high"})


@pytest.mark.asyncio
async def test_check_once_broker_failure(poller, mock_broker, porosity_descriptor):
    mock_broker.receive_no_wait.side_effect = BrokerError("Failed to get result: down")

    outcome = await poller.check_once(porosity_descriptor)

    assert isinstance(outcome, Failed)
