# mqtt_publisher/core/broker/mqtt.py
"""
MQTT connection used by the publisher service.

``MqttConnection`` owns one long-lived MQTT v5 session opened through
aiomqtt. It publishes and subscribes on behalf of the publish router and
reports every asynchronous notification (connects, drops, errors, inbound
messages, delivery confirmations) to a ``BrokerEventListener``.

Usage:
    connection = MqttConnection(
        MqttConfig.from_settings(settings.broker),
        events=BrokerEventSink(),
    )

    await connection.connect()
    await connection.publish("clients/all", "hello", qos=QoS.AT_LEAST_ONCE)
    await connection.disconnect()
"""
from __future__ import annotations

import asyncio
import logging
import ssl
from dataclasses import dataclass
from urllib.parse import urlsplit

from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.properties import Properties

from mqtt_publisher.contracts.broker import (
    BrokerEvent,
    BrokerEventKind,
    BrokerEventListener,
    QoS,
)
from mqtt_publisher.core.config import BrokerSettings
from mqtt_publisher.core.exceptions import BrokerConnectionError, TransportError

logger = logging.getLogger(__name__)

import aiomqtt


_PLAIN_SCHEMES = {"tcp": 1883, "mqtt": 1883}
_TLS_SCHEMES = {"ssl": 8883, "mqtts": 8883}


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class MqttConfig:
    """
    Configuration for the MQTT connection.

    Attributes:
        host: MQTT broker hostname.
        port: MQTT broker port.
        client_id: Client identifier presented to the broker.
        username: Optional authentication username.
        password: Optional authentication password.
        use_tls: Whether to use TLS encryption.
        auto_reconnect: Re-open the session when it drops.
        clean_start: Discard any previous session state on connect.
        session_expiry_interval: Seconds the broker keeps the session after
            disconnect.
        keepalive: Keepalive interval in seconds.
        connect_timeout: Seconds to wait for the broker when connecting.
        reconnect_interval: Seconds between reconnection attempts.
    """

    host: str = "localhost"
    port: int = 1883
    client_id: str = "mqtt-publisher"
    username: str | None = None
    password: str | None = None
    use_tls: bool = False
    auto_reconnect: bool = True
    clean_start: bool = True
    session_expiry_interval: int = 3600
    keepalive: int = 60
    connect_timeout: float = 10.0
    reconnect_interval: float = 5.0

    @property
    def server_uri(self) -> str:
        scheme = "ssl" if self.use_tls else "tcp"
        return f"{scheme}://{self.host}:{self.port}"

    @classmethod
    def from_settings(cls, broker: BrokerSettings) -> MqttConfig:
        host, port, use_tls = parse_broker_url(broker.url)
        return cls(
            host=host,
            port=port,
            client_id=broker.client_id,
            username=broker.username or None,
            password=broker.password or None,
            use_tls=use_tls,
            auto_reconnect=broker.auto_reconnect,
            clean_start=broker.clean_start,
            session_expiry_interval=broker.session_expiry_interval,
            keepalive=broker.keep_alive_interval,
            connect_timeout=float(broker.connection_timeout),
            reconnect_interval=broker.reconnect_interval,
        )


def parse_broker_url(url: str) -> tuple[str, int, bool]:
    """
    Split a broker URL into host, port and TLS flag.

    ``tcp://host:1883`` and ``mqtt://`` are plain, ``ssl://`` and ``mqtts://``
    use TLS. The port defaults to the scheme's standard port.

    Raises:
        ValueError: Unsupported scheme or missing host.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()

    if scheme in _PLAIN_SCHEMES:
        default_port, use_tls = _PLAIN_SCHEMES[scheme], False
    elif scheme in _TLS_SCHEMES:
        default_port, use_tls = _TLS_SCHEMES[scheme], True
    else:
        raise ValueError(f"Unsupported broker URL scheme: '{parts.scheme}'")

    if not parts.hostname:
        raise ValueError(f"Broker URL has no host: '{url}'")

    return parts.hostname, parts.port or default_port, use_tls


class _NullListener:
    def emit(self, event: BrokerEvent) -> None:
        pass


# =============================================================================
# Connection
# =============================================================================


class MqttConnection:
    """
    Single MQTT v5 session shared by all publish calls.

    Features:
    - Credentials, keepalive, clean start and session expiry from MqttConfig
    - Connect timeout
    - Automatic session re-open after a drop (when enabled), restoring
      subscriptions
    - Event reporting for connects, drops, errors, inbound messages and
      delivery confirmations

    Publishes are never retried: a failed call raises ``TransportError``.
    """

    def __init__(
        self,
        config: MqttConfig | None = None,
        events: BrokerEventListener | None = None,
    ) -> None:
        self._config = config or MqttConfig()
        self._events: BrokerEventListener = events or _NullListener()

        # Connection state
        self._client: aiomqtt.Client | None = None
        self._connected = False
        self._lock = asyncio.Lock()

        # topic -> qos, restored after reconnect
        self._subscriptions: dict[str, QoS] = {}
        self._listener_task: asyncio.Task | None = None

    @property
    def config(self) -> MqttConfig:
        """Get the connection configuration."""
        return self._config

    @property
    def is_connected(self) -> bool:
        """Check if connected to the broker."""
        return self._connected and self._client is not None

    @property
    def subscriptions(self) -> dict[str, QoS]:
        return dict(self._subscriptions)

    def _build_tls_context(self) -> ssl.SSLContext | None:
        if not self._config.use_tls:
            return None
        return ssl.create_default_context()

    def _build_properties(self) -> Properties:
        properties = Properties(PacketTypes.CONNECT)
        properties.SessionExpiryInterval = self._config.session_expiry_interval
        return properties

    def _create_client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            hostname=self._config.host,
            port=self._config.port,
            identifier=self._config.client_id,
            username=self._config.username,
            password=self._config.password,
            protocol=aiomqtt.ProtocolVersion.V5,
            clean_start=self._config.clean_start,
            properties=self._build_properties(),
            keepalive=self._config.keepalive,
            timeout=self._config.connect_timeout,
            tls_context=self._build_tls_context(),
        )

    async def _connect_internal(self, reconnect: bool = False) -> None:
        """Internal connect without lock."""
        logger.info(
            "Connecting to MQTT broker at %s as %s",
            self._config.server_uri,
            self._config.client_id,
        )

        client = self._create_client()
        await client.__aenter__()

        self._client = client
        self._connected = True

        self._events.emit(
            BrokerEvent(
                kind=BrokerEventKind.CONNECT_COMPLETE,
                server_uri=self._config.server_uri,
                reconnect=reconnect,
            )
        )

        if reconnect:
            for topic, qos in self._subscriptions.items():
                await client.subscribe(topic, qos=qos.value)
                logger.info("Restored subscription: %s", topic)

    async def _close_client(self) -> None:
        client, self._client = self._client, None
        self._connected = False
        if client is None:
            return
        try:
            await client.__aexit__(None, None, None)
        except aiomqtt.MqttError as exc:
            logger.warning("Error during MQTT disconnect: %s", exc)

    async def connect(self) -> None:
        """
        Connect to the MQTT broker.

        This method is idempotent - calling it when already connected is safe.

        Raises:
            BrokerConnectionError: The broker could not be reached or refused
                the connection.
        """
        async with self._lock:
            if self._connected:
                logger.debug("Already connected to MQTT broker")
                return

            try:
                await self._connect_internal()
            except aiomqtt.MqttError as exc:
                logger.error("Failed to connect to MQTT broker: %s", exc)
                self._client = None
                raise BrokerConnectionError(str(exc)) from exc

            self._start_listener()

    async def disconnect(self) -> None:
        """
        Disconnect from the MQTT broker.

        Safe to call repeatedly and when never connected.
        """
        async with self._lock:
            await self._stop_listener()
            if self._client is None:
                return
            await self._close_client()
            logger.info("Disconnected from MQTT broker")

    async def publish(
        self,
        topic: str,
        payload: bytes | str,
        qos: QoS = QoS.AT_LEAST_ONCE,
        retain: bool = False,
    ) -> None:
        """
        Publish a message.

        Args:
            topic: Destination topic.
            payload: Message body; text is sent UTF-8 encoded.
            qos: Quality of Service level.
            retain: Whether the broker should retain the message.

        Raises:
            TransportError: Not connected, or the transport failed.
        """
        client = self._client
        if not self._connected or client is None:
            logger.error("MQTT client is not connected")
            raise TransportError("MQTT client is not connected")

        data = payload.encode("utf-8") if isinstance(payload, str) else payload

        try:
            await client.publish(topic, payload=data, qos=qos.value, retain=retain)
        except aiomqtt.MqttError as exc:
            logger.error("Failed to publish message to topic '%s': %s", topic, exc)
            self._events.emit(
                BrokerEvent(kind=BrokerEventKind.ERROR_OCCURRED, reason=str(exc))
            )
            raise TransportError(str(exc)) from exc

        logger.debug(
            "Published to %s (qos=%d, retain=%s, size=%d bytes)",
            topic,
            qos.value,
            retain,
            len(data),
        )
        self._events.emit(
            BrokerEvent(kind=BrokerEventKind.DELIVERY_COMPLETE, topics=(topic,))
        )

    async def subscribe(self, topic: str, qos: QoS = QoS.AT_MOST_ONCE) -> None:
        """
        Subscribe to a topic filter. Inbound messages are reported as events.

        Raises:
            TransportError: Not connected, or the broker refused.
        """
        client = self._client
        if not self._connected or client is None:
            logger.error("MQTT client is not connected")
            raise TransportError("MQTT client is not connected")

        try:
            await client.subscribe(topic, qos=qos.value)
        except aiomqtt.MqttError as exc:
            logger.error("Failed to subscribe to '%s': %s", topic, exc)
            self._events.emit(
                BrokerEvent(kind=BrokerEventKind.ERROR_OCCURRED, reason=str(exc))
            )
            raise TransportError(str(exc)) from exc

        self._subscriptions[topic] = qos
        logger.info("Subscribed to: %s", topic)

    # -- Listener --------------------------------------------------------------

    def _start_listener(self) -> None:
        if self._listener_task is None or self._listener_task.done():
            self._listener_task = asyncio.create_task(
                self._listen_loop(),
                name="mqtt-connection-listener",
            )

    async def _stop_listener(self) -> None:
        if self._listener_task is None:
            return
        self._listener_task.cancel()
        try:
            await self._listener_task
        except asyncio.CancelledError:
            pass
        self._listener_task = None

    async def _listen_loop(self) -> None:
        """Report inbound messages; re-open the session when it drops."""
        while True:
            client = self._client
            if client is None:
                return

            try:
                async for message in client.messages:
                    self._events.emit(
                        BrokerEvent(
                            kind=BrokerEventKind.MESSAGE_ARRIVED,
                            topic=str(message.topic),
                            payload=_payload_bytes(message.payload),
                        )
                    )
                return
            except asyncio.CancelledError:
                logger.debug("Listener loop cancelled")
                raise
            except aiomqtt.MqttError as exc:
                self._connected = False
                self._events.emit(
                    BrokerEvent(kind=BrokerEventKind.DISCONNECTED, reason=str(exc))
                )

            await self._close_client()
            if not self._config.auto_reconnect:
                return
            await self._reconnect()

    async def _reconnect(self) -> None:
        while True:
            logger.info(
                "Reconnecting to MQTT broker in %ss",
                self._config.reconnect_interval,
            )
            await asyncio.sleep(self._config.reconnect_interval)

            async with self._lock:
                try:
                    await self._connect_internal(reconnect=True)
                    return
                except aiomqtt.MqttError as exc:
                    logger.warning("Reconnect to MQTT broker failed: %s", exc)
                    self._events.emit(
                        BrokerEvent(
                            kind=BrokerEventKind.ERROR_OCCURRED, reason=str(exc)
                        )
                    )
                    await self._close_client()


def _payload_bytes(payload: object) -> bytes:
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, bytearray):
        return bytes(payload)
    if payload is None:
        return b""
    return str(payload).encode("utf-8")
