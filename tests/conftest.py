# tests/conftest.py
from __future__ import annotations

import pytest

from mqtt_publisher.contracts.broker import QoS
from mqtt_publisher.core.config import Settings
from mqtt_publisher.core.exceptions import BrokerConnectionError, TransportError


class FakeTransport:
    """In-memory stand-in for MqttConnection that records every call."""

    def __init__(self, *, fail_with: str | None = None, refuse_connect: bool = False):
        self.fail_with = fail_with
        self.refuse_connect = refuse_connect
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.published: list[tuple[str, bytes | str, QoS, bool]] = []
        self.subscribed: list[tuple[str, QoS]] = []

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.refuse_connect:
            raise BrokerConnectionError("Connection refused")
        self.connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    async def publish(self, topic, payload, qos=QoS.AT_LEAST_ONCE, retain=False) -> None:
        if self.fail_with:
            raise TransportError(self.fail_with)
        self.published.append((topic, payload, qos, retain))

    async def subscribe(self, topic, qos=QoS.AT_MOST_ONCE) -> None:
        if self.fail_with:
            raise TransportError(self.fail_with)
        self.subscribed.append((topic, qos))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, log_json=False)
