"""
Tests for attachment ingestion and durable upload storage.
"""

import uuid
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from tripflow.core.config import Settings
from tripflow.schemas.trips import AttachmentImage
from tripflow.services.trips.attachments import AttachmentIngestor, format_year_month
from tripflow.services.trips.errors import AttachmentUploadError
from tripflow.services.uploads.service import UploadError, UploadService, build_storage_path


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        upload_root=str(tmp_path / "storage"),
        upload_source_dir=str(tmp_path / "staging"),
    )


@pytest.fixture
def ingestor(upload_service, settings) -> AttachmentIngestor:
    return AttachmentIngestor(upload_service, settings=settings)


def test_format_year_month():
    assert format_year_month(datetime(2024, 3, 15)) == "032024"
    assert len(format_year_month(None)) == 6


def test_build_storage_path():
    organization_id = uuid.UUID("00000000-0000-0000-0000-000000000001")
    assert (
        build_storage_path("bill-of-ladings", organization_id, "052024", "O1_T1_a.jpg")
        == f"bill-of-ladings/{organization_id}/052024/O1_T1_a.jpg"
    )


async def test_existing_images_pass_through(ingestor, upload_service, organization_id):
    existing = uuid.uuid4()

    result = await ingestor.ingest_bill_of_lading_images(
        [AttachmentImage(id=existing), AttachmentImage(name="scan.png")],
        organization_id=organization_id,
        order_code="O001",
        trip_code="T002",
        order_date=datetime(2024, 5, 3),
    )

    assert result.existing_ids == [existing]
    assert len(result.new_ids) == 1
    assert result.all_ids[0] == existing
    [call] = upload_service.calls
    assert call["source_name"] == "scan.png"
    assert call["dest_name"] == "O001_T002_scan.png"
    assert call["year_month"] == "052024"


async def test_message_attachments_keep_names(ingestor, upload_service, organization_id, settings):
    result = await ingestor.ingest_message_attachments(
        ["a.jpg", "b.jpg"],
        organization_id=organization_id,
        order_date=datetime(2024, 1, 9),
    )

    assert len(result.new_ids) == 2
    assert [call["dest_name"] for call in upload_service.calls] == ["a.jpg", "b.jpg"]
    assert {call["folder"] for call in upload_service.calls} == {settings.internal_message_folder}
    assert {call["local_path"] for call in upload_service.calls} == {settings.upload_source_dir}


async def test_upload_errors_are_wrapped(settings, organization_id):
    failing = MagicMock()
    failing.upload_file = AsyncMock(side_effect=UploadError("disk full", path="x"))
    ingestor = AttachmentIngestor(failing, settings=settings)

    with pytest.raises(AttachmentUploadError) as exc_info:
        await ingestor.ingest_message_attachments(["a.jpg"], organization_id, None)

    assert exc_info.value.context["source_name"] == "a.jpg"


async def test_upload_service_streams_file(settings, organization_id, tmp_path):
    staging = tmp_path / "staging"
    staging.mkdir()
    (staging / "scan.jpg").write_bytes(b"x" * 70000)
    session = MagicMock()
    session.flush = AsyncMock()
    service = UploadService(session, settings=settings)

    upload = await service.upload_file(
        local_path=str(staging),
        source_name="scan.jpg",
        dest_name="O001_T001_scan.jpg",
        folder="bill-of-ladings",
        organization_id=organization_id,
        year_month="052024",
    )

    stored = tmp_path / "storage" / upload.path
    assert stored.read_bytes() == b"x" * 70000
    assert upload.size == 70000
    assert upload.mime_type == "image/jpeg"
    session.add.assert_called_once_with(upload)


async def test_upload_service_missing_source(settings, organization_id):
    session = MagicMock()
    session.flush = AsyncMock()
    service = UploadService(session, settings=settings)

    with pytest.raises(UploadError):
        await service.upload_file(
            local_path=settings.upload_source_dir,
            source_name="missing.jpg",
            dest_name="missing.jpg",
            folder="internal-messages",
            organization_id=organization_id,
            year_month="052024",
        )

    session.add.assert_not_called()
