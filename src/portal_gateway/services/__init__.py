"""
portal_gateway.services

Service-layer package.

Responsibilities:
- Render authorization decisions (AuthGateway).
- Own registry transaction boundaries and the stale-instance sweep (ServiceRegistry).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services are testable with fake collaborators and an in-memory/temporary database.
