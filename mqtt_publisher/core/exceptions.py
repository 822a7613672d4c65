from __future__ import annotations


class PublisherError(Exception):
    pass


class MessageValidationError(PublisherError, ValueError):
    """Message text is blank or outside the allowed length."""


class UnknownClientError(PublisherError):
    """Target client is not in the known-clients registry."""

    def __init__(self, client_id: str, topic: str) -> None:
        super().__init__(f"Client '{client_id}' does not exist")
        self.client_id = client_id
        self.topic = topic


class TransportError(PublisherError):
    """Publish or subscribe failed at the MQTT transport."""


class BrokerConnectionError(PublisherError):
    """The broker could not be reached at startup."""
