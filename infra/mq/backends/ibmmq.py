"""
IBM MQ broker backend.

Client-binding connection through ``pymqi``. The MQ client is blocking and its
handles belong to the thread that created them, so every call for one
connection runs on that connection's own single worker thread while the event
loop awaits the result.
"""

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional, Type

import pymqi
from pymqi import CMQC

from infra.exceptions import (
    AuthorizationError,
    BrokerConnectionError,
    PublishError,
    QueueManagerUnknownError,
    QueueOpenError,
    ReceiveFault,
    ServiceUnavailableError,
)
from infra.logger import get_logger
from infra.mq.backends.base import BrokerBackend
from infra.mq.types import BrokerTarget, Credentials, OpenMode

log = get_logger("infra.mq.ibmmq")

# Largest message the worker will accept on a get
MAX_MESSAGE_LENGTH = 4 * 1024 * 1024

_OPEN_OPTIONS = {
    OpenMode.INPUT: CMQC.MQOO_INPUT_AS_Q_DEF,
    OpenMode.OUTPUT: CMQC.MQOO_OUTPUT,
    OpenMode.INPUT_OUTPUT: CMQC.MQOO_INPUT_AS_Q_DEF | CMQC.MQOO_OUTPUT,
}


@dataclass
class MqConnection:
    executor: ThreadPoolExecutor
    qmgr: Optional[pymqi.QueueManager] = None

    async def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, functools.partial(fn, *args))


@dataclass
class MqQueue:
    connection: MqConnection
    queue: pymqi.Queue
    name: str


def describe(exc: pymqi.MQMIError) -> str:
    return f"MQCC={exc.comp} MQRC={exc.reason}: {exc.errorAsString()}"


def connection_error_for(reason: int) -> Type[BrokerConnectionError]:
    """Map an MQ reason code from MQCONNX to a connection error type."""
    match reason:
        case CMQC.MQRC_NOT_AUTHORIZED | CMQC.MQRC_SECURITY_ERROR:
            return AuthorizationError
        case CMQC.MQRC_Q_MGR_NAME_ERROR:
            return QueueManagerUnknownError
        case CMQC.MQRC_HOST_NOT_AVAILABLE | CMQC.MQRC_Q_MGR_NOT_AVAILABLE | CMQC.MQRC_CONNECTION_BROKEN:
            return ServiceUnavailableError
        case _:
            return BrokerConnectionError


class IbmMqBackend(BrokerBackend):
    """IBM MQ via pymqi."""

    name = "ibmmq"

    async def connect(self, target: BrokerTarget, credentials: Credentials) -> MqConnection:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"mq-{target.queue_manager}")
        connection = MqConnection(executor=executor)
        try:
            connection.qmgr = await connection.call(
                pymqi.connect,
                target.queue_manager,
                target.channel,
                target.conn_name,
                credentials.user,
                credentials.password,
            )
        except pymqi.MQMIError as e:
            executor.shutdown(wait=False)
            raise connection_error_for(e.reason)(describe(e)) from e
        except pymqi.PYIFError as e:
            executor.shutdown(wait=False)
            raise BrokerConnectionError(str(e)) from e
        return connection

    async def disconnect(self, connection: MqConnection) -> None:
        try:
            await connection.call(connection.qmgr.disconnect)
        except pymqi.MQMIError as e:
            # The session is gone either way; the broker's own timeout cleans up.
            log.warning("mq.disconnect.failed", error=describe(e))
        finally:
            connection.executor.shutdown(wait=False)

    async def open_queue(self, connection: MqConnection, queue_name: str, mode: OpenMode) -> MqQueue:
        options = _OPEN_OPTIONS[mode] | CMQC.MQOO_FAIL_IF_QUIESCING
        try:
            queue = await connection.call(pymqi.Queue, connection.qmgr, queue_name, options)
        except pymqi.MQMIError as e:
            raise QueueOpenError(f"{queue_name}: {describe(e)}") from e
        return MqQueue(connection=connection, queue=queue, name=queue_name)

    async def close_queue(self, queue: MqQueue) -> None:
        try:
            await queue.connection.call(queue.queue.close)
        except pymqi.MQMIError as e:
            log.warning("mq.queue.close.failed", queue=queue.name, error=describe(e))

    async def put(self, queue: MqQueue, payload: bytes) -> None:
        md = pymqi.MD()
        md.Format = CMQC.MQFMT_STRING
        pmo = pymqi.PMO(
            Options=CMQC.MQPMO_NO_SYNCPOINT
            | CMQC.MQPMO_NEW_MSG_ID
            | CMQC.MQPMO_NEW_CORREL_ID
            | CMQC.MQPMO_FAIL_IF_QUIESCING
        )
        try:
            await queue.connection.call(queue.queue.put, payload, md, pmo)
        except pymqi.MQMIError as e:
            raise PublishError(f"{queue.name}: {describe(e)}") from e

    async def get(self, queue: MqQueue, wait_ms: int) -> Optional[bytes]:
        md = pymqi.MD()
        gmo = pymqi.GMO()
        gmo.Options = (
            CMQC.MQGMO_WAIT
            | CMQC.MQGMO_NO_SYNCPOINT
            | CMQC.MQGMO_CONVERT
            | CMQC.MQGMO_FAIL_IF_QUIESCING
        )
        gmo.WaitInterval = max(wait_ms, 0)
        try:
            return await queue.connection.call(queue.queue.get, MAX_MESSAGE_LENGTH, md, gmo)
        except pymqi.MQMIError as e:
            if e.comp == CMQC.MQCC_FAILED and e.reason == CMQC.MQRC_NO_MSG_AVAILABLE:
                return None
            raise ReceiveFault(f"{queue.name}: {describe(e)}") from e
