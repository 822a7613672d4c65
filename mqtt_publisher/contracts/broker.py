# mqtt_publisher/contracts/broker.py
"""
Broker contracts for the publisher service.

The transport protocol lets the publish router talk to a broker connection
without depending on ``aiomqtt`` directly, and the event types describe the
asynchronous notifications a connection reports back (connects, drops,
errors, inbound messages, deliveries).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Protocol, runtime_checkable


class QoS(int, Enum):
    """Quality of Service levels for message delivery."""

    AT_MOST_ONCE = 0  # Fire and forget
    AT_LEAST_ONCE = 1  # Acknowledged delivery
    EXACTLY_ONCE = 2  # Guaranteed single delivery


class BrokerEventKind(str, Enum):
    """Notifications reported by a broker connection."""

    CONNECT_COMPLETE = "connect_complete"
    DISCONNECTED = "disconnected"
    ERROR_OCCURRED = "error_occurred"
    MESSAGE_ARRIVED = "message_arrived"
    DELIVERY_COMPLETE = "delivery_complete"
    AUTH_PACKET_ARRIVED = "auth_packet_arrived"


@dataclass(frozen=True)
class BrokerEvent:
    """
    A single notification from the broker connection.

    Attributes:
        kind: What happened.
        server_uri: Broker address (connect events).
        reconnect: True when a connect event follows a dropped session.
        reason: Human readable cause (disconnects and errors).
        topic: Topic of an inbound message.
        topics: Topics covered by a delivery confirmation. Empty when the
            transport could not tell.
        payload: Raw inbound message bytes.
        reason_code: MQTT reason code (auth packets).
        timestamp: When the event was produced.
    """

    kind: BrokerEventKind
    server_uri: str | None = None
    reconnect: bool = False
    reason: str | None = None
    topic: str | None = None
    topics: tuple[str, ...] = ()
    payload: bytes = b""
    reason_code: int | None = None
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def text(self) -> str:
        """Payload decoded as UTF-8, undecodable bytes replaced."""
        return self.payload.decode("utf-8", errors="replace")


# Type alias for event handlers
BrokerEventHandler = Callable[[BrokerEvent], None]


@runtime_checkable
class BrokerEventListener(Protocol):
    """Anything a connection can hand its events to."""

    def emit(self, event: BrokerEvent) -> None:
        ...


@runtime_checkable
class MqttTransport(Protocol):
    """
    Protocol for the broker connection used by the publish router.

    Implementations raise ``TransportError`` from ``publish`` and
    ``subscribe`` when not connected or when the broker rejects the call.
    """

    async def connect(self) -> None:
        """Open the session. Idempotent when already connected."""
        ...

    async def disconnect(self) -> None:
        """Close the session. Safe to call repeatedly or before connect."""
        ...

    async def publish(
        self,
        topic: str,
        payload: bytes | str,
        qos: QoS = QoS.AT_LEAST_ONCE,
        retain: bool = False,
    ) -> None:
        ...

    async def subscribe(self, topic: str, qos: QoS = QoS.AT_MOST_ONCE) -> None:
        ...

    @property
    def is_connected(self) -> bool:
        ...
