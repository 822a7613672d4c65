# mqtt_publisher/core/config.py
"""
Central configuration for the publisher service.

Environment variables (and ``.env``) override defaults. Nested sections use
``__`` as delimiter, e.g. ``BROKER__URL=ssl://broker:8883`` or
``TOPICS__CLIENT_PREFIX=devices/``.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrokerSettings(BaseModel):
    """Broker connection parameters."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(
        default="tcp://localhost:1883",
        description="Broker URL (tcp://, mqtt://, ssl:// or mqtts://)",
    )
    client_id: str = "mqtt-publisher"
    username: str = ""
    password: str = ""
    auto_reconnect: bool = True
    clean_start: bool = True
    session_expiry_interval: int = Field(default=3600, ge=0)
    keep_alive_interval: int = Field(default=60, ge=0)
    connection_timeout: int = Field(default=10, gt=0)
    reconnect_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between reconnection attempts after a dropped session",
    )


class TopicSettings(BaseModel):
    """Topic layout."""

    model_config = ConfigDict(frozen=True)

    all_clients: str = "clients/all"
    client_prefix: str = "client/"
    sys_topic: str = "$SYS/#"


class Settings(BaseSettings):
    """Environment-driven settings with sensible defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    app_env: str = "dev"
    log_level: str = "INFO"
    log_json: bool = True

    http_host: str = "0.0.0.0"
    http_port: int = 8080

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Registry seed, loaded once at startup
    known_clients: list[str] = Field(
        default_factory=lambda: ["subscriber1", "subscriber2", "subscriber3"]
    )

    broker: BrokerSettings = Field(default_factory=BrokerSettings)
    topics: TopicSettings = Field(default_factory=TopicSettings)


settings = Settings()
