import tempfile
from unittest.mock import AsyncMock, MagicMock, Mock

import httpx
import pytest
from fastapi import FastAPI
from loguru import logger

from src.annotation_service.app.api.internal import router as internal_router
from src.annotation_service.app.api.public import router as public_router
from src.annotation_service.app.core.dependencies import (
    get_annotation_replacer,
    get_image_query_service,
    get_settings_dependency,
    get_upload_dispatcher,
)
from src.annotation_service.app.db.database import close_db, init_db
from src.annotation_service.app.services.annotation_replacer import AnnotationReplacer
from src.annotation_service.app.services.blob_store import BlobStore, LocalBlobStore
from src.annotation_service.app.services.image_query import ImageQueryService
from src.annotation_service.app.services.metadata_store import MetadataStore
from src.annotation_service.app.services.upload_coordinator import UploadCoordinator
from src.annotation_service.app.services.upload_dispatcher import UploadDispatcher
from tests.shared_fixtures import SharedImageFixtures


@pytest.fixture
def temp_storage_dir():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def mock_settings():
    settings = MagicMock()
    settings.BLOB_BUCKET = "image-annotation-test"
    settings.BLOB_UPLOAD_TIMEOUT = 5.0
    settings.MAX_FIELD_SIZE = 1024 * 1024
    settings.SHUTDOWN_DRAIN_TIMEOUT = 5.0
    return settings


@pytest.fixture
async def db():
    """Fresh in-memory metadata store for each test."""
    await init_db(db_url="sqlite://:memory:")
    yield
    await close_db()


@pytest.fixture
def log_records():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def metadata_store(db):
    return MetadataStore()


@pytest.fixture
async def local_blob_store(temp_storage_dir, mock_settings):
    store = LocalBlobStore(mock_settings.BLOB_BUCKET, temp_storage_dir)
    await store.ensure_bucket()
    return store


@pytest.fixture
def mock_blob_store():
    """BlobStore whose put always fails."""
    mock = Mock(spec=BlobStore)
    mock.bucket = "image-annotation-test"
    mock.put = AsyncMock(side_effect=Exception("S3 unavailable"))
    mock.get = AsyncMock()
    return mock


@pytest.fixture
def coordinator(metadata_store, local_blob_store, mock_settings):
    return UploadCoordinator(
        metadata_store=metadata_store,
        blob_store=local_blob_store,
        settings=mock_settings,
    )


@pytest.fixture
def dispatcher(coordinator):
    return UploadDispatcher(coordinator=coordinator)


@pytest.fixture
def replacer(metadata_store):
    return AnnotationReplacer(metadata_store=metadata_store)


@pytest.fixture
def image_query(metadata_store, local_blob_store):
    return ImageQueryService(metadata_store=metadata_store, blob_store=local_blob_store)


@pytest.fixture
def sample_png():
    return SharedImageFixtures.tiny_png()


@pytest.fixture
def sample_jpeg():
    return SharedImageFixtures.small_rgb_jpeg()


@pytest.fixture
def test_app(dispatcher, replacer, image_query, mock_settings):
    app = FastAPI()

    app.dependency_overrides[get_upload_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_annotation_replacer] = lambda: replacer
    app.dependency_overrides[get_image_query_service] = lambda: image_query
    app.dependency_overrides[get_settings_dependency] = lambda: mock_settings

    app.include_router(public_router, prefix="/api")
    app.include_router(internal_router, prefix="/internal")

    return app


@pytest.fixture
async def api_client(test_app):
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
