"""
Prime consumer service.

Connect (retrying forever at a fixed delay), open the inbound and outbound
queues, then poll until a receive fault or a stop request:

    DISCONNECTED -> CONNECTING -> QUEUES_OPENING -> POLLING
    POLLING -> PROCESSING -> POSTING -> POLLING
    POLLING -> HALTED      (receive fault)
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.publisher import RecordPublisher
from infra.config.broker import BrokerConfig
from infra.exceptions import (
    BrokerConnectionError,
    MessageValidationError,
    PublishError,
    QueueOpenError,
    ReceiveFault,
)
from infra.health import HealthFlag
from infra.logger import get_logger
from infra.mq import BrokerTarget, ConnectionManager, Credentials, OpenMode, QueueHandle, Session
from infra.reconnect import retry_forever
from consumer.config import ConsumerConfig
from consumer.primality import DEFAULT_ROUNDS
from consumer.processing import evaluate

log = get_logger("consumer.service")


class ConsumerState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    QUEUES_OPENING = "queues_opening"
    POLLING = "polling"
    PROCESSING = "processing"
    POSTING = "posting"
    HALTED = "halted"
    STOPPED = "stopped"


@dataclass
class WorkerChannels:
    """The session and the two handles it owns for one consumer run."""
    session: Session
    inbound: QueueHandle
    outbound: QueueHandle


@dataclass
class ConsumerStats:
    connect_attempts: int = 0
    polls: int = 0
    empty_polls: int = 0
    received: int = 0
    replied: int = 0
    dropped: int = 0
    publish_failures: int = 0


class PrimeConsumer:
    def __init__(
        self,
        manager: ConnectionManager,
        target: BrokerTarget,
        credentials: Credentials,
        input_queue: str = "DEV.QUEUE.1",
        output_queue: str = "DEV.QUEUE.2",
        rounds: int = DEFAULT_ROUNDS,
        receive_wait_ms: int = 3000,
        retry_delay: float = 5.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.manager = manager
        self.target = target
        self.credentials = credentials
        self.input_queue = input_queue
        self.output_queue = output_queue
        self.rounds = rounds
        self.receive_wait_ms = receive_wait_ms
        self.retry_delay = retry_delay
        self.rng = rng

        self.state = ConsumerState.DISCONNECTED
        self.stats = ConsumerStats()
        self.health = HealthFlag(reason=ConsumerState.DISCONNECTED.value)
        self._stop_requested = False

    @classmethod
    def from_config(
        cls,
        manager: ConnectionManager,
        broker: BrokerConfig,
        config: ConsumerConfig,
    ) -> "PrimeConsumer":
        return cls(
            manager,
            broker.target(),
            broker.credentials(),
            input_queue=broker.INPUT_QUEUE,
            output_queue=broker.OUTPUT_QUEUE,
            rounds=config.PRIME_ROUNDS,
            receive_wait_ms=config.RECEIVE_WAIT_MS,
            retry_delay=config.RETRY_DELAY_SECONDS,
        )

    async def run(self) -> ConsumerState:
        """Run until a receive fault or ``stop()``; returns the final state."""
        self._stop_requested = False
        channels = await retry_forever(
            self._start_once,
            base_delay=self.retry_delay,
            max_delay=self.retry_delay,
            retryable_exceptions=[BrokerConnectionError, QueueOpenError],
            backoff=1.0,
            jitter=False,
        )
        try:
            await self._poll(channels)
        finally:
            self.health.set_not_ready(self.state.value)
            await channels.session.disconnect()
        return self.state

    def stop(self) -> None:
        """Ask the loop to exit after the current receive."""
        self._stop_requested = True

    async def wait_polling(self, timeout: Optional[float] = None) -> bool:
        return await self.health.wait_ready(timeout)

    async def _start_once(self) -> WorkerChannels:
        self.state = ConsumerState.CONNECTING
        self.stats.connect_attempts += 1
        try:
            session = await self.manager.connect(self.target, self.credentials)
        except BrokerConnectionError:
            self.state = ConsumerState.DISCONNECTED
            raise

        self.state = ConsumerState.QUEUES_OPENING
        try:
            # Inbound keeps output capability so the same handle can answer
            inbound = await session.open(self.input_queue, OpenMode.INPUT_OUTPUT)
            outbound = await session.open(self.output_queue, OpenMode.OUTPUT)
        except QueueOpenError as e:
            log.error("consumer.queues.open_failed", error=str(e))
            await session.disconnect()
            self.state = ConsumerState.DISCONNECTED
            raise

        log.info("consumer.queues.opened", inbound=self.input_queue, outbound=self.output_queue)
        return WorkerChannels(session=session, inbound=inbound, outbound=outbound)

    async def _poll(self, channels: WorkerChannels) -> None:
        publisher = RecordPublisher.persistent(channels.outbound)
        self.state = ConsumerState.POLLING
        self.health.set_ready()
        log.info("consumer.polling.started", queue=self.input_queue, wait_ms=self.receive_wait_ms)

        while not self._stop_requested:
            self.state = ConsumerState.POLLING
            self.stats.polls += 1
            try:
                payload = await channels.inbound.receive(self.receive_wait_ms)
            except ReceiveFault as e:
                log.error("consumer.receive.fault", queue=self.input_queue, error=str(e))
                self.state = ConsumerState.HALTED
                return

            if payload is None:
                self.stats.empty_polls += 1
                continue
            await self._handle(payload, publisher)

        self.state = ConsumerState.STOPPED
        log.info("consumer.polling.stopped", **vars(self.stats))

    async def _handle(self, payload: bytes, publisher: RecordPublisher) -> None:
        self.stats.received += 1
        self.state = ConsumerState.PROCESSING
        try:
            result = evaluate(payload, self.rounds, self.rng)
        except MessageValidationError as e:
            self.stats.dropped += 1
            log.warning("consumer.message.dropped", reason=str(e), size=len(payload))
            return

        self.state = ConsumerState.POSTING
        try:
            await publisher.publish(result)
        except PublishError as e:
            self.stats.publish_failures += 1
            log.error("consumer.reply.failed", id=result.id, error=str(e))
            return

        self.stats.replied += 1
        log.info("consumer.reply.posted", id=result.id, prime=result.prime)
