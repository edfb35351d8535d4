"""
test_consumer.py

Component tests for the prime consumer against the memory broker.

Key concepts:
- Connect is retried forever at a fixed delay
- Malformed messages are dropped, the loop keeps polling
- A failed reply is logged, the loop keeps polling
- A receive fault halts the loop
"""

import asyncio
import json
import random

import pytest
from structlog.testing import capture_logs

from consumer.config import ConsumerConfig
from consumer.service import ConsumerState, PrimeConsumer
from infra.config.broker import BrokerConfig
from infra.exceptions import PublishError, QueueOpenError, ReceiveFault, ServiceUnavailableError
from infra.mq import ConnectionManager, Credentials, MemoryBroker, OpenMode

from conftest import PASSWORD, USER

WAIT = 2.0


class FlakyConnectBroker(MemoryBroker):
    def __init__(self, failures, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.attempts = 0

    async def connect(self, target, credentials):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ServiceUnavailableError(f"{target.conn_name}: connection refused")
        return await super().connect(target, credentials)


class FaultyReceiveBroker(MemoryBroker):
    async def get(self, queue, wait_ms):
        raise ReceiveFault("MQRC_CONNECTION_BROKEN")


class FailFirstReplyBroker(MemoryBroker):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.failed = False

    async def put(self, queue, payload):
        if queue.name == "DEV.QUEUE.2" and not self.failed:
            self.failed = True
            raise PublishError("MQRC_Q_FULL")
        await super().put(queue, payload)


class FailFirstOpenBroker(MemoryBroker):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.open_failures = 0

    async def open_queue(self, connection, queue_name, mode):
        if queue_name == "DEV.QUEUE.2" and self.open_failures == 0:
            self.open_failures += 1
            raise QueueOpenError("MQRC_UNKNOWN_OBJECT_NAME")
        return await super().open_queue(connection, queue_name, mode)


def make_consumer(manager, target, credentials, **overrides) -> PrimeConsumer:
    options = dict(
        rounds=5,
        receive_wait_ms=10,
        retry_delay=0.05,
        rng=random.Random(0),
    )
    options.update(overrides)
    return PrimeConsumer(manager, target, credentials, **options)


async def start(consumer: PrimeConsumer) -> asyncio.Task:
    task = asyncio.create_task(consumer.run())
    assert await consumer.wait_polling(WAIT), "consumer never reached polling"
    return task


async def finish(consumer: PrimeConsumer, task: asyncio.Task) -> ConsumerState:
    consumer.stop()
    return await asyncio.wait_for(task, WAIT)


async def send(manager, target, credentials, *payloads: bytes) -> None:
    session = await manager.connect(target, credentials)
    async with await session.open("DEV.QUEUE.1", OpenMode.OUTPUT) as handle:
        for payload in payloads:
            await handle.publish(payload)
    await session.disconnect()


async def replies(manager, target, credentials, count: int) -> list:
    session = await manager.connect(target, credentials)
    received = []
    async with await session.open("DEV.QUEUE.2", OpenMode.INPUT) as handle:
        while len(received) < count:
            payload = await handle.receive(int(WAIT * 1000))
            assert payload is not None, f"expected {count} replies, got {len(received)}"
            received.append(json.loads(payload))
    await session.disconnect()
    return received


@pytest.mark.component
@pytest.mark.integration
class TestPrimeConsumerFlow:
    """Messages in, verdicts out"""

    @pytest.mark.asyncio
    async def test_prime_verdict_round_trip(self, manager, target, credentials):
        consumer = make_consumer(manager, target, credentials)
        task = await start(consumer)

        await send(manager, target, credentials, b'{"id": 1, "value": "97"}')
        assert await replies(manager, target, credentials, 1) == [
            {"id": 1, "value": "97", "prime": True}
        ]

        assert await finish(consumer, task) is ConsumerState.STOPPED
        assert consumer.stats.replied == 1

    @pytest.mark.asyncio
    async def test_replies_follow_receive_order(self, manager, target, credentials):
        consumer = make_consumer(manager, target, credentials)
        task = await start(consumer)

        values = ["2", "4", "7919", "561", str(2**61 - 1)]
        await send(
            manager, target, credentials,
            *(json.dumps({"id": i, "value": v}).encode() for i, v in enumerate(values)),
        )
        got = await replies(manager, target, credentials, len(values))

        assert [r["id"] for r in got] == list(range(len(values)))
        assert [r["value"] for r in got] == values
        assert [r["prime"] for r in got] == [True, False, True, False, True]
        await finish(consumer, task)

    @pytest.mark.asyncio
    async def test_malformed_message_dropped_then_valid_processed(self, manager, target, credentials):
        consumer = make_consumer(manager, target, credentials)
        with capture_logs() as logs:
            task = await start(consumer)
            await send(
                manager, target, credentials,
                b"not json at all",
                b'{"id": 2}',
                b'{"id": 3, "value": "abc"}',
                b'{"id": 4, "value": "5"}',
            )
            got = await replies(manager, target, credentials, 1)
            await finish(consumer, task)

        assert got == [{"id": 4, "value": "5", "prime": True}]
        assert consumer.stats.dropped == 3
        assert consumer.stats.received == 4
        dropped = [e for e in logs if e["event"] == "consumer.message.dropped"]
        assert len(dropped) == 3
        assert all(e["log_level"] == "warning" for e in dropped)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bad",
        [
            b'{"id": "\\ud800", "value": "5"}',
            b"[" * 100000,
        ],
        ids=["lone_surrogate_id", "deep_nesting"],
    )
    async def test_unprocessable_json_does_not_stop_loop(self, manager, target, credentials, bad):
        consumer = make_consumer(manager, target, credentials)
        with capture_logs() as logs:
            task = await start(consumer)
            await send(manager, target, credentials, bad, b'{"id": 2, "value": "7"}')
            got = await replies(manager, target, credentials, 1)
            assert not task.done()
            await finish(consumer, task)

        assert got == [{"id": 2, "value": "7", "prime": True}]
        assert consumer.stats.dropped == 1
        assert consumer.stats.replied == 1
        assert [e["event"] for e in logs].count("consumer.message.dropped") == 1

    @pytest.mark.asyncio
    async def test_empty_polls_keep_looping(self, manager, target, credentials):
        consumer = make_consumer(manager, target, credentials, receive_wait_ms=5)
        task = await start(consumer)

        for _ in range(200):
            if consumer.stats.empty_polls >= 10:
                break
            await asyncio.sleep(0.01)

        assert consumer.stats.empty_polls >= 10
        assert not task.done()
        assert consumer.state is ConsumerState.POLLING
        await finish(consumer, task)

    @pytest.mark.asyncio
    async def test_stop_disconnects(self, broker, manager, target, credentials):
        consumer = make_consumer(manager, target, credentials)
        with capture_logs() as logs:
            task = await start(consumer)
            state = await finish(consumer, task)

        assert state is ConsumerState.STOPPED
        assert not consumer.health.is_ready()
        events = [e["event"] for e in logs]
        assert events.index("consumer.polling.stopped") < events.index("mq.session.closed")


@pytest.mark.component
@pytest.mark.integration
class TestPrimeConsumerFailures:
    """Connect retries, reply failures and receive faults"""

    @pytest.mark.asyncio
    async def test_connect_retried_at_fixed_delay(self, target, credentials):
        broker = FlakyConnectBroker(2, users={USER: PASSWORD})
        manager = ConnectionManager(broker)
        consumer = make_consumer(manager, target, credentials, retry_delay=0.05)

        with capture_logs() as logs:
            task = await start(consumer)
            await finish(consumer, task)

        events = [e["event"] for e in logs]
        started = events.index("consumer.polling.started")
        assert events[:started].count("mq.connect.failed") == 2
        retries = [e for e in logs if e["event"] == "reconnect.failed"]
        assert [e["next_delay"] for e in retries] == [0.05, 0.05]
        assert consumer.stats.connect_attempts == 3

    @pytest.mark.asyncio
    async def test_bad_credentials_keep_retrying(self, broker, manager, target):
        consumer = make_consumer(manager, target, Credentials(USER, "wrong"), retry_delay=0.01)
        task = asyncio.create_task(consumer.run())
        await asyncio.sleep(0.1)

        assert not task.done()
        assert consumer.stats.connect_attempts >= 3
        assert not consumer.health.is_ready()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_queue_open_failure_reconnects(self, target, credentials):
        broker = FailFirstOpenBroker(users={USER: PASSWORD})
        manager = ConnectionManager(broker)
        consumer = make_consumer(manager, target, credentials, retry_delay=0.01)

        with capture_logs() as logs:
            task = await start(consumer)
            await finish(consumer, task)

        events = [e["event"] for e in logs]
        assert events.count("consumer.queues.open_failed") == 1
        assert events.count("mq.session.established") == 2
        assert consumer.stats.connect_attempts == 2

    @pytest.mark.asyncio
    async def test_reply_failure_does_not_stop_loop(self, target, credentials):
        broker = FailFirstReplyBroker(users={USER: PASSWORD})
        manager = ConnectionManager(broker)
        consumer = make_consumer(manager, target, credentials)

        with capture_logs() as logs:
            task = await start(consumer)
            await send(
                manager, target, credentials,
                b'{"id": 1, "value": "3"}',
                b'{"id": 2, "value": "9"}',
            )
            got = await replies(manager, target, credentials, 1)
            assert not task.done()
            await finish(consumer, task)

        assert got == [{"id": 2, "value": "9", "prime": False}]
        assert consumer.stats.publish_failures == 1
        assert consumer.stats.replied == 1
        failed = [e for e in logs if e["event"] == "consumer.reply.failed"]
        assert failed[0]["id"] == 1

    @pytest.mark.asyncio
    async def test_receive_fault_halts(self, target, credentials):
        broker = FaultyReceiveBroker(users={USER: PASSWORD})
        manager = ConnectionManager(broker)
        consumer = make_consumer(manager, target, credentials)

        with capture_logs() as logs:
            state = await asyncio.wait_for(consumer.run(), WAIT)

        assert state is ConsumerState.HALTED
        assert consumer.stats.polls == 1
        assert not consumer.health.is_ready()
        assert consumer.health.reason == "halted"
        events = [e["event"] for e in logs]
        assert "consumer.receive.fault" in events
        assert "mq.session.closed" in events
        assert "consumer.polling.stopped" not in events


@pytest.mark.fast
def test_from_config():
    broker_config = BrokerConfig(
        QMGR="QM2",
        CONNNAME="mq.internal(1415)",
        INPUT_QUEUE="IN.Q",
        OUTPUT_QUEUE="OUT.Q",
    )
    consumer_config = ConsumerConfig(PRIME_ROUNDS=8, RECEIVE_WAIT_MS=500, RETRY_DELAY_SECONDS=1.5)
    consumer = PrimeConsumer.from_config(
        ConnectionManager(MemoryBroker()), broker_config, consumer_config
    )

    assert consumer.target.queue_manager == "QM2"
    assert consumer.target.port == 1415
    assert (consumer.input_queue, consumer.output_queue) == ("IN.Q", "OUT.Q")
    assert consumer.rounds == 8
    assert consumer.receive_wait_ms == 500
    assert consumer.retry_delay == 1.5
    assert consumer.state is ConsumerState.DISCONNECTED
