"""
API v1 package.

Contains versioned API routes for the credential settings API.
"""

from credlife.api.v1.routes import link_router, router

__all__ = ["link_router", "router"]
