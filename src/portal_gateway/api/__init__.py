"""
portal_gateway.api

API package for the portal gateway service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers stay thin: request parsing + auth + delegation to services.
