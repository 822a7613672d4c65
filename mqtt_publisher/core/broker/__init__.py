"""
Broker infrastructure for the publisher service.

This module provides:
- The aiomqtt-backed connection used for publishing and subscribing
- Configuration and broker URL parsing
- The event sink that turns broker notifications into log lines

Example usage:

    from mqtt_publisher.core.broker import BrokerEventSink, MqttConfig, MqttConnection

    sink = BrokerEventSink()
    await sink.start()

    connection = MqttConnection(MqttConfig(host="localhost"), events=sink)
    await connection.connect()
    await connection.publish("clients/all", "hello")
"""

from mqtt_publisher.contracts.broker import (
    BrokerEvent,
    BrokerEventKind,
    MqttTransport,
    QoS,
)

from mqtt_publisher.core.broker.events import (
    BrokerEventSink,
    log_broker_event,
)

from mqtt_publisher.core.broker.mqtt import (
    MqttConfig,
    MqttConnection,
    parse_broker_url,
)

__all__ = [
    # Contracts
    "BrokerEvent",
    "BrokerEventKind",
    "MqttTransport",
    "QoS",
    # Events
    "BrokerEventSink",
    "log_broker_event",
    # MQTT implementation
    "MqttConfig",
    "MqttConnection",
    "parse_broker_url",
]
