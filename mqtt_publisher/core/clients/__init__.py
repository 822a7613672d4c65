from mqtt_publisher.core.clients.registry import KnownClientsRegistry

__all__ = ["KnownClientsRegistry"]
