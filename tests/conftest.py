"""Shared fixtures: an in-memory queue manager and the session inputs for it."""

import pytest

from infra.mq import BrokerTarget, ConnectionManager, Credentials, MemoryBroker

USER = "app"
PASSWORD = "appIsSecure"


@pytest.fixture
def broker() -> MemoryBroker:
    return MemoryBroker(queue_manager="QM1", users={USER: PASSWORD})


@pytest.fixture
def manager(broker) -> ConnectionManager:
    return ConnectionManager(broker)


@pytest.fixture
def target() -> BrokerTarget:
    return BrokerTarget(
        queue_manager="QM1",
        channel="DEV.APP.SVRCONN",
        conn_name="localhost(1414)",
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(user=USER, password=PASSWORD)
