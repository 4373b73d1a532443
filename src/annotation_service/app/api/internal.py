from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..core.dependencies import get_upload_dispatcher
from ..db.database import check_database_health
from ..services.upload_dispatcher import UploadDispatcher

router = APIRouter()


@router.get("/health")
async def internal_health(
    dispatcher: UploadDispatcher = Depends(get_upload_dispatcher),
):
    """Readiness check: database reachability plus in-flight upload count."""
    database_ok = await check_database_health()

    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": "healthy" if database_ok else "unhealthy",
            "database": database_ok,
            "pending_uploads": dispatcher.pending_count,
        },
    )
