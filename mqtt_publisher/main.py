# mqtt_publisher/main.py
"""
MQTT publisher application factory.

Creates a FastAPI application exposing ``/api/mqtt``: broadcast and
per-client publishing, a system-topic subscription, and the known-clients
registry. The broker connection is opened in the lifespan; if it cannot be
opened the application does not start.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import cast

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mqtt_publisher import __version__
from mqtt_publisher.api.exceptions import register_exception_handlers
from mqtt_publisher.api.mqtt import router as mqtt_router
from mqtt_publisher.contracts.broker import MqttTransport
from mqtt_publisher.core.broker.events import BrokerEventSink
from mqtt_publisher.core.broker.mqtt import MqttConfig, MqttConnection
from mqtt_publisher.core.clients.registry import KnownClientsRegistry
from mqtt_publisher.core.config import Settings, settings as default_settings
from mqtt_publisher.core.logging import configure_logging
from mqtt_publisher.core.publisher import PublishRouter

logger = logging.getLogger(__name__)


# -- Lifespan ------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the event sink, connect the broker; reverse on shutdown."""
    events = cast(BrokerEventSink, app.state.events)
    transport = cast(MqttTransport, app.state.transport)

    await events.start()

    try:
        await transport.connect()
    except Exception:
        logger.exception("Failed to connect to MQTT broker, aborting startup")
        await events.stop()
        raise

    yield

    logger.info("Disconnecting from MQTT broker...")
    await transport.disconnect()
    await events.stop()


# -- Application factory -------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    transport: MqttTransport | None = None,
) -> FastAPI:
    """
    Build and wire the publisher FastAPI application.

    Args:
        settings: Configuration; the environment-loaded settings if None.
        transport: Broker connection; an ``MqttConnection`` built from the
            settings if None.
    """
    settings = settings or default_settings
    configure_logging(settings.log_level, json=settings.log_json)
    logger.info("Creating MQTT publisher application (env=%s)", settings.app_env)

    # 1. Core services
    events = BrokerEventSink()

    if transport is None:
        config = MqttConfig.from_settings(settings.broker)
        logger.info("Broker URL: %s", settings.broker.url)
        logger.info("Client ID: %s", config.client_id)
        logger.info("Username: %s", config.username)
        transport = MqttConnection(config, events=events)

    clients_registry = KnownClientsRegistry(settings.known_clients)
    publisher = PublishRouter(
        transport=transport,
        registry=clients_registry,
        topics=settings.topics,
    )
    logger.info(
        "Known clients initialized: %s", sorted(clients_registry.list())
    )

    # 2. FastAPI app
    app = FastAPI(
        title="MQTT Publisher",
        version=__version__,
        description="HTTP to MQTT publishing bridge",
        lifespan=lifespan,
    )

    # Explicit wiring
    app.state.settings = settings
    app.state.events = events
    app.state.transport = transport
    app.state.clients_registry = clients_registry
    app.state.publisher = publisher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(mqtt_router)

    return app
