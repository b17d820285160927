"""
Central API Router
Combines all API endpoints into a single router for main.py
"""
from fastapi import APIRouter
from api.endpoints import traverse
from api import logs

api_router = APIRouter()

api_router.include_router(traverse.router, prefix="/api/traverse", tags=["traverse"])
api_router.include_router(logs.router)


# Add a root endpoint for API discovery
@api_router.get("/api")
async def api_root():
    """API root endpoint for discovery"""
    return {
        "message": "Deedplot API v0.1",
        "documentation": "/docs",
        "endpoints": {
            "analyze": "/api/traverse/analyze - Traverse, close and check legal-description calls",
            "export_dxf": "/api/traverse/export-dxf - Analyze and download parcels as DXF",
            "options": "/api/traverse/options - Available processing options",
            "logs": "/logs/recent - Recent backend log records",
            "health": "/health - Health check"
        }
    }
