"""
portal_gateway.auth

Authentication/authorization package.

Responsibilities:
- Canonical role catalog and hierarchy.
- Ordered route table (path prefix -> minimum role).
- Identity and role-store collaborators (JWT validation, role grants).
- FastAPI auth dependencies (Principal + minimum-role RBAC).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package issues credentials; tokens are minted by the identity service.
