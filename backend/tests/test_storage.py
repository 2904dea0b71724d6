"""
Tests for briefcast/storage.py against a mocked Supabase client.
"""

import re
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from briefcast.core.errors import SlugCollision, StorageFailure
from briefcast.episodes import ContentRecord, Coverage, DurationClass, PipelineOrchestrator
from briefcast.storage import ContentStore, get_public_url, upload_audio_to_storage

from conftest import BASE_URL


class PostgrestError(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


class StorageApiError(Exception):
    def __init__(self, message, code, status):
        super().__init__(message)
        self.code = code
        self.status = status


def make_record(slug="space-talk"):
    return ContentRecord(
        topic="astronomy",
        slug=slug,
        url=f"https://briefs.example.com/{slug}",
        script="Stars are far away.",
        audio_path=f"briefs/{slug}.mp3",
        audio_url="https://example.com/file.mp3",
        coverage=Coverage.FULL,
        word_count=4,
        created_at=datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
    )


OLD_ROW = {
    "id": 1,
    "topic": "tides",
    "slug": "tidal-pull",
    "url": "https://briefs.example.com/tidal-pull",
    "script": "The moon pulls the sea.",
    "audio_path": None,
    "audio_url": None,
    "created_at": "2024-01-10T08:00:00+00:00",
}


class TestAudioUpload:
    """Tests for audio upload helpers"""

    def test_upload_audio_to_storage(self, mock_supabase):
        path = upload_audio_to_storage(mock_supabase, b"fake audio data", "space-talk")
        assert path == "briefs/space-talk.mp3"
        mock_supabase.storage.from_.assert_called_with("episodes")
        kwargs = mock_supabase.storage.from_.return_value.upload.call_args.kwargs
        assert kwargs["file_options"]["content-type"] == "audio/mpeg"
        assert kwargs["file_options"]["upsert"] == "false"

    def test_existing_object_is_slug_collision(self, mock_supabase):
        mock_supabase.storage.from_.return_value.upload.side_effect = StorageApiError(
            "The resource already exists", code="Duplicate", status=409
        )

        with pytest.raises(SlugCollision):
            upload_audio_to_storage(mock_supabase, b"fake audio data", "space-talk")

    def test_upload_failure_returns_none(self, mock_supabase):
        mock_supabase.storage.from_.return_value.upload.side_effect = RuntimeError("bucket missing")
        assert upload_audio_to_storage(mock_supabase, b"data", "space-talk") is None

    def test_get_public_url(self, mock_supabase):
        url = get_public_url(mock_supabase, "episodes", "briefs/space-talk.mp3")
        assert url == "https://example.com/file.mp3"


class TestContentStore:
    """Tests for ContentStore"""

    @pytest.mark.asyncio
    async def test_exists(self, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value.data = [{"slug": "space-talk"}]
        store = ContentStore(mock_supabase)

        assert await store.exists("space-talk") is True
        mock_supabase.table.assert_called_with("content_records")
        mock_supabase.table.return_value.select.return_value.eq.assert_called_with("slug", "space-talk")

        chain.execute.return_value.data = []
        assert await store.exists("space-talk") is False

    @pytest.mark.asyncio
    async def test_exists_wraps_errors(self, mock_supabase):
        mock_supabase.table.side_effect = RuntimeError("network down")

        with pytest.raises(StorageFailure):
            await ContentStore(mock_supabase).exists("space-talk")

    @pytest.mark.asyncio
    async def test_insert_writes_row(self, mock_supabase):
        store = ContentStore(mock_supabase, table="briefs")

        await store.insert(make_record())

        mock_supabase.table.assert_called_with("briefs")
        row = mock_supabase.table.return_value.insert.call_args.args[0]
        assert row["slug"] == "space-talk"
        assert row["coverage"] == "full"
        assert row["created_at"].startswith("2024-01-15T10:00:00")

    @pytest.mark.asyncio
    async def test_insert_unique_violation_is_slug_collision(self, mock_supabase):
        mock_supabase.table.return_value.insert.return_value.execute.side_effect = PostgrestError(
            "duplicate key value violates unique constraint", code="23505"
        )

        with pytest.raises(SlugCollision):
            await ContentStore(mock_supabase).insert(make_record())

    @pytest.mark.asyncio
    async def test_insert_other_error_is_storage_failure(self, mock_supabase):
        mock_supabase.table.return_value.insert.return_value.execute.side_effect = PostgrestError(
            "permission denied", code="42501"
        )

        with pytest.raises(StorageFailure) as exc_info:
            await ContentStore(mock_supabase).insert(make_record())

        assert not isinstance(exc_info.value, SlugCollision)

    @pytest.mark.asyncio
    async def test_list_recent_orders_and_clamps(self, mock_supabase):
        select = mock_supabase.table.return_value.select.return_value
        select.order.return_value.limit.return_value.execute.return_value.data = [
            make_record().to_row(),
            OLD_ROW,
        ]
        store = ContentStore(mock_supabase)

        records = await store.list_recent(500)

        select.order.assert_called_with("created_at", desc=True)
        select.order.return_value.limit.assert_called_with(50)
        assert [r.slug for r in records] == ["space-talk", "tidal-pull"]

    @pytest.mark.asyncio
    async def test_old_rows_load_without_new_columns(self, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value.data = [OLD_ROW]

        record = await ContentStore(mock_supabase).lookup("tidal-pull")

        assert record.slug == "tidal-pull"
        assert record.coverage is None
        assert record.word_count is None
        assert record.audio_path is None

    @pytest.mark.asyncio
    async def test_lookup_missing(self, mock_supabase):
        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value.data = []

        assert await ContentStore(mock_supabase).lookup("nope") is None

    @pytest.mark.asyncio
    async def test_store_audio_and_public_url(self, mock_supabase):
        store = ContentStore(mock_supabase, bucket="audio")

        path = await store.store_audio("space-talk", b"mp3 bytes")

        assert path == "briefs/space-talk.mp3"
        assert store.public_audio_url(path) == "https://example.com/file.mp3"
        mock_supabase.storage.from_.assert_called_with("audio")

    @pytest.mark.asyncio
    async def test_store_audio_does_not_overwrite_taken_slug(self, mock_supabase):
        upload = mock_supabase.storage.from_.return_value.upload
        upload.side_effect = StorageApiError("The resource already exists", code="Duplicate", status="409")
        store = ContentStore(mock_supabase)

        with pytest.raises(SlugCollision):
            await store.store_audio("cosmic-drain", b"mp3 bytes")

        assert upload.call_count == 1
        assert upload.call_args.kwargs["file_options"]["upsert"] == "false"

    @pytest.mark.asyncio
    async def test_remove_audio(self, mock_supabase):
        store = ContentStore(mock_supabase)

        await store.remove_audio("briefs/space-talk.mp3")

        mock_supabase.storage.from_.return_value.remove.assert_called_with(["briefs/space-talk.mp3"])

    @pytest.mark.asyncio
    async def test_remove_audio_failure_is_logged_only(self, mock_supabase):
        mock_supabase.storage.from_.return_value.remove.side_effect = RuntimeError("bucket missing")

        await ContentStore(mock_supabase).remove_audio("briefs/space-talk.mp3")


class TestPipelineWithContentStore:
    """End-to-end persistence through ContentStore on a mocked client"""

    @pytest.mark.asyncio
    async def test_upload_race_remints_without_touching_existing_audio(
        self, mock_supabase, text_service, speech_service, sleep
    ):
        uploads = []

        def upload(path, file, file_options):
            uploads.append((path, file_options["upsert"]))
            if path == "briefs/cosmic-drain.mp3":
                raise StorageApiError("The resource already exists", code="Duplicate", status=409)

        mock_supabase.storage.from_.return_value.upload.side_effect = upload
        exists = mock_supabase.table.return_value.select.return_value.eq.return_value.limit.return_value
        exists.execute.side_effect = [
            Mock(data=[]),
            Mock(data=[{"slug": "cosmic-drain"}]),
            Mock(data=[]),
        ]
        orchestrator = PipelineOrchestrator.from_services(
            text_service, speech_service, ContentStore(mock_supabase), base_url=BASE_URL, sleep=sleep
        )

        result = await orchestrator.generate("black holes", DurationClass.SHORT)

        assert result.persisted is True
        assert re.match(r"^cosmic-drain-[a-z0-9]{4}$", result.slug)
        assert uploads == [
            ("briefs/cosmic-drain.mp3", "false"),
            (f"briefs/{result.slug}.mp3", "false"),
        ]
        row = mock_supabase.table.return_value.insert.call_args.args[0]
        assert row["slug"] == result.slug
        assert row["audio_path"] == f"briefs/{result.slug}.mp3"
