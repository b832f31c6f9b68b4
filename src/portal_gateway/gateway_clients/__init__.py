"""
portal_gateway.gateway_clients

Gateway client package.

Responsibilities:
- Provide clients that ask a remote authorization gateway for access decisions.
"""

# Package marker.
