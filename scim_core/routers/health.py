"""Health check роутер"""

from fastapi import APIRouter, Request
from typing import Dict, Any

from .. import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint"""
    registry = request.app.state.registry
    return {
        "status": "healthy",
        "service": "scim-core",
        "version": __version__,
        "schemas": len(registry.list()),
        "resourceTypes": len(registry.list_resource_types())
    }
