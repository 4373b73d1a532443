import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from src.annotation_service.app.models import Image
from src.annotation_service.app.services.domain import UploadOutcome, UploadStatus
from src.annotation_service.app.services.upload_coordinator import UploadCoordinator
from src.annotation_service.app.services.upload_dispatcher import UploadDispatcher


class TestUploadDispatcher:
    def test_requires_coordinator(self):
        with pytest.raises(ValueError, match="UploadCoordinator must be provided"):
            UploadDispatcher()

    async def test_submit_returns_without_waiting(self):
        release = asyncio.Event()

        async def slow_upload(content_type, data):
            await release.wait()
            return UploadOutcome(status=UploadStatus.STORED, image_id=1)

        coordinator = Mock()
        coordinator.upload = AsyncMock(side_effect=slow_upload)
        dispatcher = UploadDispatcher(coordinator=coordinator)

        task = dispatcher.submit("image/png", b"data")
        await asyncio.sleep(0)

        assert not task.done()
        assert dispatcher.pending_count == 1

        release.set()
        outcomes = await dispatcher.drain()

        assert [outcome.image_id for outcome in outcomes] == [1]
        assert dispatcher.pending_count == 0

    async def test_concurrent_submissions_store_every_field(
        self, dispatcher, local_blob_store, sample_png, sample_jpeg
    ):
        payloads = [sample_png, sample_jpeg, b"", b"plain-bytes"] * 3

        for payload in payloads:
            dispatcher.submit("application/octet-stream", payload)

        outcomes = await dispatcher.drain()

        assert len(outcomes) == len(payloads)
        assert all(outcome.is_stored for outcome in outcomes)
        image_ids = {outcome.image_id for outcome in outcomes}
        assert len(image_ids) == len(payloads)
        assert await Image.all().count() == len(payloads)

        stored = sorted(
            [(await local_blob_store.get(f"image-{i}")).data for i in image_ids]
        )
        assert stored == sorted(payloads)

    async def test_drain_with_nothing_pending(self, dispatcher):
        assert await dispatcher.drain() == []

    async def test_drain_timeout_leaves_slow_uploads_running(self):
        release = asyncio.Event()

        async def slow_upload(content_type, data):
            await release.wait()
            return UploadOutcome(status=UploadStatus.STORED, image_id=2)

        coordinator = Mock()
        coordinator.upload = AsyncMock(side_effect=slow_upload)
        dispatcher = UploadDispatcher(coordinator=coordinator)
        dispatcher.submit("image/png", b"data")

        outcomes = await dispatcher.drain(timeout=0.01)

        assert outcomes == []
        assert dispatcher.pending_count == 1

        release.set()
        assert len(await dispatcher.drain()) == 1

    async def test_crashed_task_is_logged(self, log_records):
        coordinator = Mock()
        coordinator.upload = AsyncMock(side_effect=RuntimeError("boom"))
        dispatcher = UploadDispatcher(coordinator=coordinator)

        dispatcher.submit("image/png", b"data")
        outcomes = await dispatcher.drain()

        assert outcomes == []
        assert dispatcher.pending_count == 0
        assert any(
            record["level"].name == "ERROR" and "boom" in record["message"]
            for record in log_records
        )

    async def test_failed_uploads_are_reported_as_outcomes(
        self, metadata_store, mock_blob_store, mock_settings
    ):
        coordinator = UploadCoordinator(
            metadata_store=metadata_store,
            blob_store=mock_blob_store,
            settings=mock_settings,
        )
        dispatcher = UploadDispatcher(coordinator=coordinator)

        dispatcher.submit("image/png", b"one")
        dispatcher.submit("image/png", b"two")
        outcomes = await dispatcher.drain()

        assert [outcome.status for outcome in outcomes] == [UploadStatus.ROLLED_BACK] * 2
        assert await Image.all().count() == 0
