"""
API Gateway endpoint routers: mounted by the main app.
"""

from services.api_gateway.endpoints.snapshot import router as snapshot_router

__all__ = [
    "snapshot_router",
]
