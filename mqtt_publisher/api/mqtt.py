from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from mqtt_publisher.api.dependencies import get_clients_registry, get_publish_router
from mqtt_publisher.api.schemas import ApiResponse, MessageRequest
from mqtt_publisher.core.clients.registry import KnownClientsRegistry
from mqtt_publisher.core.exceptions import TransportError, UnknownClientError
from mqtt_publisher.core.publisher import PublishRouter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mqtt", tags=["mqtt"])


@router.post("/publish/all")
async def publish_to_all_clients(
    request: MessageRequest,
    publisher: PublishRouter = Depends(get_publish_router),
) -> JSONResponse:
    """Publish a message on the all-clients topic."""
    try:
        topic = await publisher.publish_broadcast(request.message)
    except TransportError as exc:
        logger.error("Failed to publish message to all clients: %s", exc)
        return ApiResponse.failure(
            "Failed to publish message to all clients", str(exc)
        ).to_response(500)

    return ApiResponse.ok(
        "Message published to all clients successfully",
        data=f"Topic: {topic}",
    ).to_response()


@router.post("/publish/client/{user}")
async def publish_to_client(
    user: str,
    request: MessageRequest,
    publisher: PublishRouter = Depends(get_publish_router),
) -> JSONResponse:
    """Publish a message on a known client's own topic."""
    try:
        topic = await publisher.publish_to_client(user, request.message)
    except UnknownClientError as exc:
        return ApiResponse.failure(
            "Client does not exist",
            f"Client '{user}' does not exist in topic '{exc.topic}'",
        ).to_response(404)
    except TransportError as exc:
        logger.error("Failed to publish message to client '%s': %s", user, exc)
        return ApiResponse.failure(
            "Failed to publish message to client", str(exc)
        ).to_response(500)

    return ApiResponse.ok(
        "Message published to client successfully",
        data=f"Topic: {topic}, Client: {user}",
    ).to_response()


@router.post("/subscribe/sys")
async def subscribe_to_system_topics(
    publisher: PublishRouter = Depends(get_publish_router),
) -> JSONResponse:
    """Subscribe to broker system topics; received messages go to the log."""
    try:
        topic = await publisher.subscribe_system_topics()
    except TransportError as exc:
        logger.error("Failed to subscribe to system topics: %s", exc)
        return ApiResponse.failure(
            "Failed to subscribe to system topics", str(exc)
        ).to_response(500)

    return ApiResponse.ok(
        "Successfully subscribed to system topics",
        data=f"Topic: {topic} - Check logs for system information",
    ).to_response()


@router.get("/clients")
def get_known_clients(
    registry: KnownClientsRegistry = Depends(get_clients_registry),
) -> JSONResponse:
    return ApiResponse.ok(
        "Known clients retrieved successfully",
        data=sorted(registry.list()),
    ).to_response()


@router.post("/clients/{client}")
def add_known_client(
    client: str,
    registry: KnownClientsRegistry = Depends(get_clients_registry),
) -> JSONResponse:
    registry.add(client)
    return ApiResponse.ok(
        "Client added successfully",
        data=f"Added client: {client}",
    ).to_response()


@router.get("/health")
def health_check() -> JSONResponse:
    return ApiResponse.ok(
        "MQTT Publisher Service is running",
        data="Service Status: UP",
    ).to_response()
