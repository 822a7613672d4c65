# mqtt_publisher/core/clients/registry.py
"""
Registry of known client identifiers.
"""
from __future__ import annotations

import logging
import threading
from typing import Iterable

logger = logging.getLogger(__name__)


class KnownClientsRegistry:
    """
    In-memory set of client identifiers that may receive per-client publishes.

    Identifiers are only ever added. Every operation takes an internal lock,
    so the registry can be shared between threadpool request handlers and
    the event loop without callers synchronizing.
    """

    def __init__(self, initial: Iterable[str] = ()) -> None:
        self._clients: set[str] = set(initial)
        self._lock = threading.Lock()

    def add(self, client_id: str) -> None:
        """
        Add a client identifier. Adding an existing one is a no-op.

        Args:
            client_id: Opaque client identifier
        """
        with self._lock:
            self._clients.add(client_id)
            count = len(self._clients)
        logger.info("Added client: %s (%d known)", client_id, count)

    def contains(self, client_id: str) -> bool:
        with self._lock:
            return client_id in self._clients

    def list(self) -> set[str]:
        """
        Snapshot of all known identifiers.

        Returns:
            A new set; later additions do not show up in it
        """
        with self._lock:
            return set(self._clients)

    def __contains__(self, client_id: object) -> bool:
        return isinstance(client_id, str) and self.contains(client_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)
