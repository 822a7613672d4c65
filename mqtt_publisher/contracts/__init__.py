from mqtt_publisher.contracts.broker import (
    BrokerEvent,
    BrokerEventHandler,
    BrokerEventKind,
    BrokerEventListener,
    MqttTransport,
    QoS,
)

__all__ = [
    "BrokerEvent",
    "BrokerEventHandler",
    "BrokerEventKind",
    "BrokerEventListener",
    "MqttTransport",
    "QoS",
]
