from contextlib import asynccontextmanager
from pathlib import Path

from app.api import internal, public
from app.core.config import get_settings
from app.core.dependencies import get_blob_store, get_upload_dispatcher
from app.core.logging import configure_logging
from app.db.database import close_db, init_db
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    logger.info("Starting Image Annotation Service...")

    if settings.absolute_database_url.startswith("sqlite:///"):
        database_dir = Path(
            settings.absolute_database_url.replace("sqlite:///", "")
        ).parent
        database_dir.mkdir(parents=True, exist_ok=True)

    await init_db()
    logger.info("Database initialized")

    blob_store = get_blob_store()
    if settings.BLOB_BACKEND == "local" or settings.S3_CREATE_BUCKET:
        await blob_store.ensure_bucket()
    logger.info(f"Blob store ready (bucket {blob_store.bucket})")

    logger.info("Image Annotation Service startup complete")

    yield

    logger.info("Shutting down Image Annotation Service...")
    await get_upload_dispatcher().drain(timeout=settings.SHUTDOWN_DRAIN_TIMEOUT)
    await close_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        lifespan=lifespan,
        debug=settings.DEBUG,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(public.router, prefix="/api", tags=["public"])
    app.include_router(internal.router, prefix="/internal", tags=["internal"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )
