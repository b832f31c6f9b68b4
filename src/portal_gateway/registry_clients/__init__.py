"""
portal_gateway.registry_clients

Registry client package.

Responsibilities:
- Provide clients for calling a remote service registry over HTTP.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# DiscoveryClient depends on the RegistryBackend protocol, not on HTTP directly.
