"""
Consumer Main Entry Point

Starts the prime worker: connects to the broker (retrying forever), polls the
inbound queue and posts verdicts until stopped or a receive fault halts it.
"""

import asyncio
import signal
import sys

from dotenv import load_dotenv

# Load env vars BEFORE config imports
load_dotenv(override=False)

from infra.config import broker as broker_config
from infra.logger import setup_logging, get_logger
from infra.mq import ConnectionManager
from infra.mq.factory import get_backend
from consumer.config import consumer_config
from consumer.service import ConsumerState, PrimeConsumer


def _install_signal_handlers(consumer: PrimeConsumer, task: asyncio.Task, log) -> None:
    def _handler(signame: str):
        log.info("consumer.shutdown.signal", signal=signame)
        consumer.stop()
        # Still connecting: nothing to drain
        if consumer.state in (ConsumerState.DISCONNECTED, ConsumerState.CONNECTING):
            task.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handler, sig.name)


async def main() -> int:
    setup_logging("consumer", consumer_config.LOG_LEVEL)
    log = get_logger("consumer")

    log.info(
        "consumer.boot",
        env=consumer_config.ENV,
        backend=broker_config.BACKEND,
        queue_manager=broker_config.QMGR,
        conn_name=broker_config.CONNNAME,
        rounds=consumer_config.PRIME_ROUNDS,
    )

    manager = ConnectionManager(get_backend())
    consumer = PrimeConsumer.from_config(manager, broker_config, consumer_config)

    task = asyncio.create_task(consumer.run(), name="prime_consumer")
    _install_signal_handlers(consumer, task, log)

    try:
        state = await task
    except asyncio.CancelledError:
        log.info("consumer.shutdown.complete", state=consumer.state.value)
        return 0

    if state is ConsumerState.HALTED:
        log.error("consumer.halted", stats=vars(consumer.stats))
        return 1
    log.info("consumer.shutdown.complete", state=state.value)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)
