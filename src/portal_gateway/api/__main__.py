"""
portal_gateway.api.__main__

Entrypoint for `python -m portal_gateway.api` (also installed as `portal-gateway`).

Responsibilities:
- Load settings and build the app.
- Run uvicorn behind an ingress (forwarded headers trusted) with structlog output.
"""

from __future__ import annotations

import uvicorn

from portal_gateway.api.app import create_app
from portal_gateway.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
        proxy_headers=True,
        forwarded_allow_ips="*",
        # Leaves room for the self-registration deregister call on shutdown.
        timeout_graceful_shutdown=int(settings.call_timeout_seconds) + 1,
    )


if __name__ == "__main__":
    main()
