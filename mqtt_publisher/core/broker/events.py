# mqtt_publisher/core/broker/events.py
"""
Event sink for asynchronous broker notifications.

The MQTT connection hands every notification to ``BrokerEventSink.emit``.
The sink queues it and a dedicated consumer task passes it to the
registered handlers, so the connection's listener never waits on whatever
the handlers do. The default handler only writes log lines.

Example:
    sink = BrokerEventSink()
    await sink.start()

    connection = MqttConnection(config, events=sink)
    ...

    await sink.stop()
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from mqtt_publisher.contracts.broker import (
    BrokerEvent,
    BrokerEventHandler,
    BrokerEventKind,
)

logger = logging.getLogger(__name__)

SYSTEM_TOPIC_PREFIX = "$SYS/"


def log_broker_event(event: BrokerEvent) -> None:
    """Write one log line for a broker event."""
    kind = event.kind

    if kind is BrokerEventKind.CONNECT_COMPLETE:
        if event.reconnect:
            logger.info("Reconnected to MQTT broker: %s", event.server_uri)
        else:
            logger.info("Connected to MQTT broker: %s", event.server_uri)

    elif kind is BrokerEventKind.DISCONNECTED:
        logger.warning("MQTT client disconnected: %s", event.reason)

    elif kind is BrokerEventKind.ERROR_OCCURRED:
        logger.error("MQTT error occurred: %s", event.reason)

    elif kind is BrokerEventKind.MESSAGE_ARRIVED:
        topic = event.topic or ""
        if topic.startswith(SYSTEM_TOPIC_PREFIX):
            logger.info("System Info [%s]: %s", topic, event.text)
        else:
            logger.debug("Message received [%s]: %s", topic, event.text)

    elif kind is BrokerEventKind.DELIVERY_COMPLETE:
        if event.topics:
            logger.debug(
                "Message delivery completed for topics: %s",
                ", ".join(event.topics),
            )
        else:
            logger.debug("Message delivery completed (topic info unavailable)")

    elif kind is BrokerEventKind.AUTH_PACKET_ARRIVED:
        logger.debug("Auth packet arrived with reason code: %s", event.reason_code)


class BrokerEventSink:
    """
    Queue-backed dispatcher of broker events.

    Before ``start()`` and after ``stop()`` events are handled inline on the
    caller's thread. While running, ``emit`` is safe to call from any
    thread; events are delivered to handlers in emission order.
    """

    def __init__(self, handlers: Iterable[BrokerEventHandler] | None = None) -> None:
        self._handlers: list[BrokerEventHandler] = (
            list(handlers) if handlers is not None else [log_broker_event]
        )
        self._queue: asyncio.Queue[BrokerEvent | None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_handler(self, handler: BrokerEventHandler) -> None:
        self._handlers.append(handler)

    async def start(self) -> None:
        if self.is_running:
            return

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._task = asyncio.create_task(
            self._consume(),
            name="mqtt-event-sink",
        )
        logger.debug("Broker event sink started")

    async def stop(self) -> None:
        """Handle everything already queued, then stop the consumer."""
        if self._task is None or self._queue is None:
            return

        self._queue.put_nowait(None)
        try:
            await self._task
        finally:
            self._task = None
            self._queue = None
            self._loop = None
        logger.debug("Broker event sink stopped")

    def emit(self, event: BrokerEvent) -> None:
        queue, loop = self._queue, self._loop
        if queue is None or loop is None:
            self._dispatch(event)
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            queue.put_nowait(event)
        else:
            loop.call_soon_threadsafe(queue.put_nowait, event)

    async def _consume(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            event = await queue.get()
            if event is None:
                break
            self._dispatch(event)

    def _dispatch(self, event: BrokerEvent) -> None:
        for handler in self._handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Broker event handler failed for %s", event.kind.value)
