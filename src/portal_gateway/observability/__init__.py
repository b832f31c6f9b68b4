"""
portal_gateway.observability

Observability package.

Responsibilities:
- Structured logging setup (structlog).
- Request-scoped context and CORS middleware.
"""

# Package marker.
