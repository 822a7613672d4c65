from __future__ import annotations

import uvicorn

from mqtt_publisher.core.config import settings


def main() -> None:
    uvicorn.run(
        "mqtt_publisher.main:create_app",
        factory=True,
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
