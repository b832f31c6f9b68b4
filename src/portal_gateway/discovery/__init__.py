"""
portal_gateway.discovery

Service discovery package.

Responsibilities:
- Domain types for registered service instances.
- Legacy (Eureka-shaped) document rendering.
- Caller-side discovery client: self-registration, heartbeat loop, cached lookups.
"""

# Package marker.
