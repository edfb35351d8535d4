"""
Front-end HTTP API

Provides:
- / - liveness text
- /health - broker session and store status
- /records - every stored record
- /spamrecords - publish every stored record to the inbound queue
- /results - drain verdicts from the outbound queue
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Query
from fastapi.responses import JSONResponse, PlainTextResponse

from core.ports.record_store import RecordStore
from core.publisher import RecordPublisher
from infra.config.endpoints import Frontend
from infra.exceptions import BrokerError
from infra.health import HealthFlag
from infra.logger import get_logger
from frontend.results import ResultReader

log = get_logger("frontend.api")


class FrontendAPI:
    """
    HTTP API for the front end.

    ``publisher`` and ``results`` are None until a broker session exists.
    ``consumer_health`` is only given when the worker runs in this process.
    """

    def __init__(
        self,
        store: RecordStore,
        publisher: Optional[RecordPublisher] = None,
        results: Optional[ResultReader] = None,
        consumer_health: Optional[HealthFlag] = None,
    ) -> None:
        self.store = store
        self.publisher = publisher
        self.results = results
        self.consumer_health = consumer_health
        self.app = FastAPI(title="Prime Offload API")
        self.router = APIRouter()

        self._setup_routes()
        self.app.include_router(self.router)

    def _broker_ready(self) -> bool:
        return self.publisher is not None and self.publisher.session.is_open

    def _setup_routes(self) -> None:

        @self.router.get(Frontend.ROOT, response_class=PlainTextResponse)
        async def root() -> str:
            return "Hello! API is running."

        @self.router.get(Frontend.HEALTH)
        async def health() -> Dict[str, Any]:
            broker: Dict[str, Any] = {"connected": self._broker_ready()}
            if self.publisher is not None:
                broker["queue_manager"] = self.publisher.session.queue_manager
                broker["queue"] = self.publisher.queue_name
            status: Dict[str, Any] = {
                "status": "ready" if broker["connected"] else "degraded",
                "broker": broker,
                "store": {"reachable": await self.store.ping()},
            }
            if self.consumer_health is not None:
                status["consumer"] = self.consumer_health.snapshot()
            return status

        @self.router.get(Frontend.RECORDS)
        async def list_records():
            try:
                records = await self.store.list_all()
            except Exception as e:
                log.error("api.records.failed", error=str(e), exc_info=True)
                return JSONResponse(status_code=500, content={"error": str(e)})
            return [record.to_dict() for record in records]

        @self.router.get(Frontend.SPAM_RECORDS)
        async def spam_records():
            """
            Publish every stored record to the inbound queue, one short-lived
            output handle per record.
            """
            if not self._broker_ready():
                return JSONResponse(
                    status_code=500,
                    content={"error": "Broker connection not available"},
                )
            try:
                records = await self.store.list_all()
                sent = await self.publisher.publish_all(records)
            except Exception as e:
                log.error("api.spamrecords.failed", error=str(e), exc_info=True)
                return JSONResponse(status_code=500, content={"error": str(e)})

            qmgr = self.publisher.session.queue_manager
            log.info("api.spamrecords.sent", count=sent, queue_manager=qmgr)
            return {"message": f"Sent {sent} records to {qmgr}."}

        @self.router.get(Frontend.RESULTS)
        async def drain_results(limit: int = Query(default=10, ge=1, le=1000)):
            if self.results is None or not self.results.session.is_open:
                return JSONResponse(
                    status_code=500,
                    content={"error": "Broker connection not available"},
                )
            try:
                results = await self.results.drain(limit)
            except BrokerError as e:
                log.error("api.results.failed", error=str(e))
                return JSONResponse(status_code=500, content={"error": str(e)})
            items: List[Dict[str, Any]] = [result.to_dict() for result in results]
            return {"total": len(items), "results": items}
