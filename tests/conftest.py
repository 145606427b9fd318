import time

import pytest
from fastapi.testclient import TestClient

from config.settings import RelaySettings
from main import create_app
from relay import SignalingRelay


def drain(connection):
    """Pop everything queued on a connection's outbox"""
    items = []
    while not connection.outbox.empty():
        item = connection.outbox.get_nowait()
        if item is not None:
            items.append(item)
    return items


def wait_for_members(client, room_id, count, timeout=2.0):
    """Poll the HTTP API until a room has the expected number of members"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        response = client.get(f"/api/room/{room_id}")
        if response.status_code == 200 and response.json()["numParticipants"] == count:
            return response.json()["participants"]
        time.sleep(0.01)
    raise AssertionError(f"Room '{room_id}' never reached {count} members")


@pytest.fixture
def relay():
    return SignalingRelay()


@pytest.fixture
def settings():
    return RelaySettings()


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client
