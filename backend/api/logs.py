from typing import Optional

from fastapi import APIRouter, Query
from services.logging_service import get_ring_handler


router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("/recent")
def get_recent_logs(
    limit: int = Query(500, ge=1, le=5000),
    level: Optional[str] = Query(None, description="Minimum level, e.g. WARNING"),
    logger: Optional[str] = Query(None, description="Logger name prefix, e.g. pipelines.traverse"),
):
    ring = get_ring_handler()
    return {"logs": ring.get_recent(limit, min_level=level, name_prefix=logger)}


@router.delete("/recent")
def clear_recent_logs():
    get_ring_handler().clear()
    return {"success": True}
