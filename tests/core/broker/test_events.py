# tests/core/broker/test_events.py
from __future__ import annotations

import asyncio
import logging
import threading

import pytest

from mqtt_publisher.contracts.broker import BrokerEvent, BrokerEventKind
from mqtt_publisher.core.broker.events import BrokerEventSink, log_broker_event

LOGGER = "mqtt_publisher.core.broker.events"


def _records(caplog):
    return [(r.levelno, r.getMessage()) for r in caplog.records if r.name == LOGGER]


class TestLogBrokerEvent:
    def test_system_message_logged_at_info(self, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER)

        log_broker_event(
            BrokerEvent(
                kind=BrokerEventKind.MESSAGE_ARRIVED,
                topic="$SYS/broker/uptime",
                payload=b"42 seconds",
            )
        )

        assert _records(caplog) == [
            (logging.INFO, "System Info [$SYS/broker/uptime]: 42 seconds")
        ]

    def test_regular_message_logged_at_debug(self, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER)

        log_broker_event(
            BrokerEvent(
                kind=BrokerEventKind.MESSAGE_ARRIVED,
                topic="client/subscriber1",
                payload=b"hi",
            )
        )

        assert _records(caplog) == [
            (logging.DEBUG, "Message received [client/subscriber1]: hi")
        ]

    def test_undecodable_payload(self, caplog):
        caplog.set_level(logging.DEBUG, logger=LOGGER)

        log_broker_event(
            BrokerEvent(
                kind=BrokerEventKind.MESSAGE_ARRIVED, topic="t", payload=b"\xff\xfe"
            )
        )

        assert len(_records(caplog)) == 1

    @pytest.mark.parametrize(
        "event, expected",
        [
            (
                BrokerEvent(
                    kind=BrokerEventKind.CONNECT_COMPLETE,
                    server_uri="tcp://localhost:1883",
                ),
                (logging.INFO, "Connected to MQTT broker: tcp://localhost:1883"),
            ),
            (
                BrokerEvent(
                    kind=BrokerEventKind.CONNECT_COMPLETE,
                    server_uri="tcp://localhost:1883",
                    reconnect=True,
                ),
                (logging.INFO, "Reconnected to MQTT broker: tcp://localhost:1883"),
            ),
            (
                BrokerEvent(kind=BrokerEventKind.DISCONNECTED, reason="keepalive"),
                (logging.WARNING, "MQTT client disconnected: keepalive"),
            ),
            (
                BrokerEvent(kind=BrokerEventKind.ERROR_OCCURRED, reason="boom"),
                (logging.ERROR, "MQTT error occurred: boom"),
            ),
            (
                BrokerEvent(
                    kind=BrokerEventKind.DELIVERY_COMPLETE, topics=("a", "b")
                ),
                (logging.DEBUG, "Message delivery completed for topics: a, b"),
            ),
            (
                BrokerEvent(kind=BrokerEventKind.DELIVERY_COMPLETE),
                (logging.DEBUG, "Message delivery completed (topic info unavailable)"),
            ),
            (
                BrokerEvent(kind=BrokerEventKind.AUTH_PACKET_ARRIVED, reason_code=24),
                (logging.DEBUG, "Auth packet arrived with reason code: 24"),
            ),
        ],
    )
    def test_levels(self, caplog, event, expected):
        caplog.set_level(logging.DEBUG, logger=LOGGER)

        log_broker_event(event)

        assert _records(caplog) == [expected]


class TestBrokerEventSink:
    def test_inline_before_start(self):
        seen: list[BrokerEvent] = []
        sink = BrokerEventSink(handlers=[seen.append])
        event = BrokerEvent(kind=BrokerEventKind.DISCONNECTED, reason="x")

        sink.emit(event)

        assert seen == [event]
        assert sink.is_running is False

    @pytest.mark.asyncio
    async def test_queued_in_order_while_running(self):
        seen: list[str] = []
        sink = BrokerEventSink(handlers=[lambda e: seen.append(e.topic)])
        await sink.start()

        for i in range(5):
            sink.emit(BrokerEvent(kind=BrokerEventKind.MESSAGE_ARRIVED, topic=f"t{i}"))

        # nothing is handled until the consumer task runs
        assert seen == []

        await sink.stop()

        assert seen == ["t0", "t1", "t2", "t3", "t4"]
        assert sink.is_running is False

    @pytest.mark.asyncio
    async def test_emit_from_foreign_thread(self):
        seen: list[BrokerEvent] = []
        sink = BrokerEventSink(handlers=[seen.append])
        await sink.start()

        thread = threading.Thread(
            target=sink.emit,
            args=(BrokerEvent(kind=BrokerEventKind.ERROR_OCCURRED, reason="t"),),
        )
        thread.start()
        thread.join()
        await asyncio.sleep(0.01)

        await sink.stop()

        assert [e.reason for e in seen] == ["t"]

    @pytest.mark.asyncio
    async def test_added_handler_receives_events(self):
        first: list[BrokerEvent] = []
        second: list[BrokerEvent] = []
        sink = BrokerEventSink(handlers=[first.append])
        sink.add_handler(second.append)
        await sink.start()

        sink.emit(BrokerEvent(kind=BrokerEventKind.DELIVERY_COMPLETE, topics=("a",)))
        await sink.stop()

        assert len(first) == len(second) == 1

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_consumer(self, caplog):
        seen: list[BrokerEvent] = []

        def broken(event: BrokerEvent) -> None:
            raise RuntimeError("handler bug")

        sink = BrokerEventSink(handlers=[broken, seen.append])
        await sink.start()

        sink.emit(BrokerEvent(kind=BrokerEventKind.DISCONNECTED))
        sink.emit(BrokerEvent(kind=BrokerEventKind.DISCONNECTED))
        await sink.stop()

        assert len(seen) == 2
        assert "Broker event handler failed" in caplog.text

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self):
        sink = BrokerEventSink(handlers=[])

        await sink.stop()
        await sink.start()
        await sink.start()
        await sink.stop()
        await sink.stop()

        assert sink.is_running is False
