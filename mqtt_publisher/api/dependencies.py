# mqtt_publisher/api/dependencies.py
"""
FastAPI dependencies resolving the services wired in ``create_app``.

Provides:
- ``get_publish_router``: the ``PublishRouter`` from app state.
- ``get_clients_registry``: the ``KnownClientsRegistry`` from app state.
"""
from __future__ import annotations

from fastapi import HTTPException, Request

from mqtt_publisher.core.clients.registry import KnownClientsRegistry
from mqtt_publisher.core.publisher import PublishRouter


def get_publish_router(request: Request) -> PublishRouter:
    router = getattr(request.app.state, "publisher", None)
    if router is None:
        raise HTTPException(status_code=500, detail="Publisher not initialized")
    return router


def get_clients_registry(request: Request) -> KnownClientsRegistry:
    registry = getattr(request.app.state, "clients_registry", None)
    if registry is None:
        raise HTTPException(status_code=500, detail="Clients registry not initialized")
    return registry
