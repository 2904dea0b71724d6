"""
Supabase persistence for briefs.

Records live in the `content_records` table; audio files go to the
`episodes` storage bucket. supabase-py is synchronous, so every call is
pushed to a worker thread to keep the event loop free.
"""

import asyncio
import logging
from typing import List, Optional

from supabase import Client

from .core.errors import SlugCollision, StorageFailure
from .episodes.models import ContentRecord

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
DEFAULT_LIST_LIMIT = 10
MAX_LIST_LIMIT = 50


def _is_duplicate_object(error: Exception) -> bool:
    """Storage rejected the upload because the object path is taken."""
    status = str(getattr(error, "status", getattr(error, "statusCode", "")))
    code = str(getattr(error, "code", ""))
    return status == "409" or code == "Duplicate" or "already exists" in str(error).lower()


def upload_audio_to_storage(
    supabase: Client,
    audio_data: bytes,
    slug: str,
    bucket: str = "episodes"
) -> Optional[str]:
    """
    Upload audio file (MP3) to Supabase storage.

    Existing objects are never overwritten: the path belongs to whichever
    brief claimed the slug first.

    Args:
        supabase: Supabase client instance
        audio_data: MP3 audio data
        slug: Brief slug, used as the filename
        bucket: Supabase storage bucket name

    Returns:
        Storage path if successful, None otherwise

    Raises:
        SlugCollision: If an object already exists at the slug's path
    """
    storage_path = f"briefs/{slug}.mp3"

    try:
        supabase.storage.from_(bucket).upload(
            path=storage_path,
            file=audio_data,
            file_options={
                "content-type": "audio/mpeg",
                "upsert": "false"
            }
        )

        logger.info(f"Uploaded audio to storage: {bucket}/{storage_path}")
        return storage_path

    except Exception as e:
        if _is_duplicate_object(e):
            raise SlugCollision(f"Audio already exists for slug: {slug}") from e
        logger.error(f"Failed to upload audio to storage: {e}")
        return None


def get_public_url(
    supabase: Client,
    bucket: str,
    path: str
) -> str:
    """
    Get public URL for a storage object.

    Args:
        supabase: Supabase client instance
        bucket: Storage bucket name
        path: Object path within bucket

    Returns:
        Public URL for the object
    """
    return supabase.storage.from_(bucket).get_public_url(path)


class ContentStore:
    """Async facade over the content_records table and audio bucket."""

    def __init__(
        self,
        supabase: Client,
        table: str = "content_records",
        bucket: str = "episodes",
    ):
        self.supabase = supabase
        self.table = table
        self.bucket = bucket

    async def exists(self, slug: str) -> bool:
        """Check whether a record with this slug exists."""
        try:
            response = await asyncio.to_thread(
                lambda: self.supabase.table(self.table)
                .select("slug")
                .eq("slug", slug)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise StorageFailure(f"Slug lookup failed: {e}") from e
        return bool(response.data)

    async def insert(self, record: ContentRecord) -> None:
        """
        Insert a new record.

        Raises:
            SlugCollision: If the slug is already taken
            StorageFailure: On any other write error
        """
        try:
            await asyncio.to_thread(
                lambda: self.supabase.table(self.table)
                .insert(record.to_row())
                .execute()
            )
        except Exception as e:
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                raise SlugCollision(f"Slug already exists: {record.slug}") from e
            raise StorageFailure(f"Insert failed: {e}") from e

        logger.info(f"Stored content record: {record.slug}")

    async def list_recent(self, limit: int = DEFAULT_LIST_LIMIT) -> List[ContentRecord]:
        """Most recent records first. limit is clamped to [1, 50]."""
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        try:
            response = await asyncio.to_thread(
                lambda: self.supabase.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise StorageFailure(f"Listing failed: {e}") from e
        return [ContentRecord.from_row(row) for row in response.data or []]

    async def lookup(self, slug: str) -> Optional[ContentRecord]:
        try:
            response = await asyncio.to_thread(
                lambda: self.supabase.table(self.table)
                .select("*")
                .eq("slug", slug)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise StorageFailure(f"Lookup failed: {e}") from e

        if not response.data:
            return None
        return ContentRecord.from_row(response.data[0])

    async def store_audio(self, slug: str, payload: bytes) -> Optional[str]:
        """
        Upload MP3 audio, returning its storage path or None on failure.

        Raises:
            SlugCollision: If audio already exists for the slug
        """
        return await asyncio.to_thread(
            upload_audio_to_storage, self.supabase, payload, slug, self.bucket
        )

    async def remove_audio(self, path: str) -> None:
        """Delete an uploaded object. Failures are logged, not raised."""
        try:
            await asyncio.to_thread(
                lambda: self.supabase.storage.from_(self.bucket).remove([path])
            )
            logger.info(f"Removed orphaned audio: {self.bucket}/{path}")
        except Exception as e:
            logger.warning(f"Failed to remove audio {path}: {e}")

    def public_audio_url(self, path: str) -> str:
        return get_public_url(self.supabase, self.bucket, path)
