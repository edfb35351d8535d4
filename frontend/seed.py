"""Random record generation and store seeding."""

import random
from typing import List, Optional

from core.models.records import WorkRecord
from core.ports.record_store import RecordStore
from infra.logger import get_logger

log = get_logger("frontend.seed")

MIN_VALUE = 1
MAX_VALUE = 1_000_000


def generate_records(count: int, rng: Optional[random.Random] = None) -> List[WorkRecord]:
    """Records with ids ``1..count`` and random values as decimal strings."""
    rng = rng or random
    return [
        WorkRecord(id=i, value=str(rng.randint(MIN_VALUE, MAX_VALUE)))
        for i in range(1, count + 1)
    ]


async def initialize_records(
    store: RecordStore,
    count: int,
    rng: Optional[random.Random] = None,
) -> List[WorkRecord]:
    """Replace the store contents with ``count`` fresh records."""
    log.info("seed.generating", count=count)
    records = generate_records(count, rng)

    await store.flush()
    stored = await store.populate(records)
    log.info("seed.populated", count=stored)

    top = []
    for record_id in range(1, min(count, 10) + 1):
        record = await store.get(record_id)
        if record is not None:
            top.append(record.to_dict())
    log.debug("seed.top_records", records=top)
    return records
