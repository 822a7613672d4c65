# mqtt_publisher/core/publisher.py
"""
Publish router: turns API-level publish requests into concrete topics.

Broadcasts go to the fixed all-clients topic. Per-client publishes go to
``client_prefix + client_id`` and are only allowed for identifiers in the
known-clients registry. Topic construction is plain concatenation;
identifiers are not escaped or checked.
"""
from __future__ import annotations

import logging

from mqtt_publisher.contracts.broker import MqttTransport, QoS
from mqtt_publisher.core.clients.registry import KnownClientsRegistry
from mqtt_publisher.core.config import TopicSettings
from mqtt_publisher.core.exceptions import MessageValidationError, UnknownClientError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000

# Delivery parameters are fixed; request-level qos/retained are not honoured
PUBLISH_QOS = QoS.AT_LEAST_ONCE
PUBLISH_RETAINED = False
SYSTEM_TOPICS_QOS = QoS.AT_MOST_ONCE


def validate_message(message: str) -> str:
    """
    Check message text before it reaches the registry or the transport.

    Raises:
        MessageValidationError: Blank, empty, or longer than 1000 characters.
    """
    if not 1 <= len(message) <= MAX_MESSAGE_LENGTH:
        raise MessageValidationError(
            f"Message must be between 1 and {MAX_MESSAGE_LENGTH} characters"
        )
    if not message.strip():
        raise MessageValidationError("Message cannot be blank")
    return message


class PublishRouter:
    """
    Resolves topics and delegates to the MQTT transport.

    Example:
        router = PublishRouter(
            transport=connection,
            registry=KnownClientsRegistry(["subscriber1"]),
            topics=TopicSettings(),
        )

        await router.publish_broadcast("hello everyone")
        await router.publish_to_client("subscriber1", "hello you")
    """

    def __init__(
        self,
        transport: MqttTransport,
        registry: KnownClientsRegistry,
        topics: TopicSettings | None = None,
    ) -> None:
        self._transport = transport
        self._registry = registry
        self._topics = topics or TopicSettings()

    @property
    def topics(self) -> TopicSettings:
        return self._topics

    @property
    def registry(self) -> KnownClientsRegistry:
        return self._registry

    def client_topic(self, client_id: str) -> str:
        return self._topics.client_prefix + client_id

    async def publish_broadcast(self, message: str) -> str:
        """
        Publish to the all-clients topic.

        Returns:
            The topic published to.

        Raises:
            MessageValidationError: Invalid message text.
            TransportError: The transport failed.
        """
        validate_message(message)
        topic = self._topics.all_clients

        logger.info("Publishing message to all clients: %s", message)
        await self._transport.publish(
            topic, message, qos=PUBLISH_QOS, retain=PUBLISH_RETAINED
        )
        logger.info("Message published to topic: %s", topic)
        return topic

    async def publish_to_client(self, client_id: str, message: str) -> str:
        """
        Publish to a single known client.

        Returns:
            The topic published to.

        Raises:
            MessageValidationError: Invalid message text.
            UnknownClientError: ``client_id`` is not registered.
            TransportError: The transport failed.
        """
        validate_message(message)
        topic = self.client_topic(client_id)

        if not self._registry.contains(client_id):
            logger.error("Client '%s' does not exist in topic '%s'", client_id, topic)
            raise UnknownClientError(client_id, topic)

        logger.info(
            "Publishing message to client '%s' on topic '%s': %s",
            client_id,
            topic,
            message,
        )
        await self._transport.publish(
            topic, message, qos=PUBLISH_QOS, retain=PUBLISH_RETAINED
        )
        logger.info("Message published to client '%s' on topic: %s", client_id, topic)
        return topic

    async def subscribe_system_topics(self) -> str:
        """
        Subscribe to the broker's system topics. Inbound system messages are
        only logged.

        Raises:
            TransportError: The transport failed.
        """
        topic = self._topics.sys_topic
        logger.info("Subscribing to system topics: %s", topic)
        await self._transport.subscribe(topic, qos=SYSTEM_TOPICS_QOS)
        return topic
