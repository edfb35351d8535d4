"""Component tests for RecordPublisher."""

import json

import pytest
from structlog.testing import capture_logs

from core.models.records import ResultRecord, WorkRecord
from core.publisher import RecordPublisher
from infra.exceptions import PublishError
from infra.mq import ConnectionManager, MemoryBroker, OpenMode

from conftest import PASSWORD, USER


class RejectingBroker(MemoryBroker):
    def __init__(self, rejected_ids, **kwargs):
        super().__init__(**kwargs)
        self.rejected_ids = set(rejected_ids)

    async def put(self, queue, payload):
        if json.loads(payload)["id"] in self.rejected_ids:
            raise PublishError("MQRC_Q_FULL")
        await super().put(queue, payload)


async def drain(session, queue_name):
    messages = []
    async with await session.open(queue_name, OpenMode.INPUT) as handle:
        while (payload := await handle.receive(0)) is not None:
            messages.append(json.loads(payload))
    return messages


@pytest.mark.component
@pytest.mark.fast
class TestRecordPublisher:
    @pytest.mark.asyncio
    async def test_publish_opens_and_closes_a_handle(self, manager, target, credentials):
        session = await manager.connect(target, credentials)
        publisher = RecordPublisher(session, "DEV.QUEUE.1")

        await publisher.publish(WorkRecord(id=1, value="97"))

        assert session.handles == []
        assert await drain(session, "DEV.QUEUE.1") == [{"id": 1, "value": "97"}]

    @pytest.mark.asyncio
    async def test_publish_all_sends_every_record(self, broker, manager, target, credentials):
        session = await manager.connect(target, credentials)
        publisher = RecordPublisher(session, "DEV.QUEUE.1")
        records = [WorkRecord(id=i, value=str(i)) for i in range(1, 51)]

        with capture_logs() as logs:
            sent = await publisher.publish_all(records)

        assert sent == 50
        assert broker.depth("DEV.QUEUE.1") == 50
        received = await drain(session, "DEV.QUEUE.1")
        assert sorted(m["id"] for m in received) == list(range(1, 51))
        bulk = [e for e in logs if e["event"] == "publisher.bulk.sent"]
        assert bulk[0]["count"] == 50

    @pytest.mark.asyncio
    async def test_publish_all_waits_for_every_publish_before_failing(self, target, credentials):
        broker = RejectingBroker({2, 5, 9}, users={USER: PASSWORD})
        session = await ConnectionManager(broker).connect(target, credentials)
        publisher = RecordPublisher(session, "DEV.QUEUE.1")

        with capture_logs() as logs:
            with pytest.raises(PublishError, match="3 of 12 publishes"):
                await publisher.publish_all(WorkRecord(id=i, value="11") for i in range(12))

        assert broker.depth("DEV.QUEUE.1") == 9
        assert session.handles == []
        failed = [e for e in logs if e["event"] == "publisher.bulk.failed"]
        assert (failed[0]["sent"], failed[0]["failed"]) == (9, 3)
        assert not any(e["event"] == "publisher.bulk.sent" for e in logs)

    @pytest.mark.asyncio
    async def test_publish_all_with_concurrency_limit(self, broker, manager, target, credentials):
        session = await manager.connect(target, credentials)
        publisher = RecordPublisher(session, "DEV.QUEUE.1", max_concurrency=3)

        sent = await publisher.publish_all(WorkRecord(id=i, value="5") for i in range(10))

        assert sent == 10
        assert broker.depth("DEV.QUEUE.1") == 10

    @pytest.mark.asyncio
    async def test_publish_all_empty(self, manager, target, credentials):
        session = await manager.connect(target, credentials)
        assert await RecordPublisher(session, "DEV.QUEUE.1").publish_all([]) == 0

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValueError):
            RecordPublisher(session=None, queue_name="DEV.QUEUE.1", max_concurrency=0)

    @pytest.mark.asyncio
    async def test_persistent_reuses_handle(self, manager, target, credentials):
        session = await manager.connect(target, credentials)
        out = await session.open("DEV.QUEUE.2", OpenMode.OUTPUT)
        publisher = RecordPublisher.persistent(out)

        await publisher.publish(ResultRecord(id=1, value="4", prime=False))
        await publisher.publish(ResultRecord(id=2, value="5", prime=True))

        assert out.is_open
        assert session.handles == [out]
        assert await drain(session, "DEV.QUEUE.2") == [
            {"id": 1, "value": "4", "prime": False},
            {"id": 2, "value": "5", "prime": True},
        ]

    @pytest.mark.asyncio
    async def test_persistent_requires_output_mode(self, manager, target, credentials):
        session = await manager.connect(target, credentials)
        inp = await session.open("DEV.QUEUE.1", OpenMode.INPUT)
        with pytest.raises(ValueError):
            RecordPublisher.persistent(inp)

    @pytest.mark.asyncio
    async def test_persistent_on_closed_handle_fails(self, manager, target, credentials):
        session = await manager.connect(target, credentials)
        out = await session.open("DEV.QUEUE.2", OpenMode.OUTPUT)
        publisher = RecordPublisher.persistent(out)
        await out.close()
        with pytest.raises(PublishError):
            await publisher.publish(ResultRecord(id=1, value="4", prime=False))
