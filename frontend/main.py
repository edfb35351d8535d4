"""
Front-end Main Entry Point

Boot order:
1. Broker session (retried with backoff until the queue manager answers)
2. Record store ping and seeding
3. Optional embedded prime consumer
4. HTTP API
"""

import asyncio
import sys
from typing import Optional

import uvicorn
from dotenv import load_dotenv

# Load env vars BEFORE config imports
load_dotenv(override=False)

from core.publisher import RecordPublisher
from infra.config import Timeouts, broker as broker_config
from infra.exceptions import BrokerConnectionError
from infra.logger import setup_logging, get_logger
from infra.mq import ConnectionManager, Session
from infra.mq.factory import get_backend
from infra.reconnect import retry_forever
from consumer.config import consumer_config
from consumer.service import PrimeConsumer
from frontend.api import FrontendAPI
from frontend.config import frontend, store as store_config
from frontend.results import ResultReader
from frontend.seed import initialize_records
from frontend.store import get_record_store


async def run_api_server(api: FrontendAPI, port: int) -> None:
    config = uvicorn.Config(
        api.app,
        host="0.0.0.0",
        port=port,
        log_level=frontend.LOG_LEVEL.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


async def connect_broker(manager: ConnectionManager) -> Session:
    return await retry_forever(
        lambda: manager.connect(broker_config.target(), broker_config.credentials()),
        base_delay=1.0,
        max_delay=Timeouts.FRONTEND_MAX_RETRY_DELAY_SECONDS,
        retryable_exceptions=[BrokerConnectionError],
    )


async def main() -> None:
    setup_logging("frontend", frontend.LOG_LEVEL)
    log = get_logger("frontend")

    log.info(
        "frontend.boot",
        env=frontend.ENV,
        port=frontend.API_PORT,
        backend=broker_config.BACKEND,
        store_type=store_config.STORE_TYPE,
    )

    manager = ConnectionManager(get_backend())
    session = await connect_broker(manager)

    store = get_record_store()
    if not await store.ping():
        raise RuntimeError("record store did not answer ping")
    log.info("frontend.store.ready")

    records = await initialize_records(store, frontend.RECORD_COUNT)
    log.info("frontend.records.initialized", count=len(records))

    publisher = RecordPublisher(
        session,
        broker_config.INPUT_QUEUE,
        max_concurrency=frontend.PUBLISH_CONCURRENCY or None,
    )
    results = ResultReader(session, broker_config.OUTPUT_QUEUE)

    consumer: Optional[PrimeConsumer] = None
    consumer_task: Optional[asyncio.Task] = None
    if frontend.RUN_EMBEDDED_CONSUMER:
        consumer = PrimeConsumer.from_config(manager, broker_config, consumer_config)
        consumer_task = asyncio.create_task(consumer.run(), name="embedded_consumer")
        log.info("frontend.consumer.started")

    api = FrontendAPI(
        store,
        publisher=publisher,
        results=results,
        consumer_health=consumer.health if consumer is not None else None,
    )

    try:
        await run_api_server(api, frontend.API_PORT)
    finally:
        if consumer_task is not None:
            consumer.stop()
            consumer_task.cancel()
            try:
                await consumer_task
            except asyncio.CancelledError:
                pass
        await manager.disconnect(session)
        await store.close()
        log.info("frontend.shutdown.complete")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
