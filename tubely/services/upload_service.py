from __future__ import annotations

import asyncio
import secrets
import tempfile
import uuid
from pathlib import Path
from typing import BinaryIO, Callable

from fastapi import UploadFile
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.core.auth import AuthContext, authenticate
from tubely.core.config import Settings
from tubely.core.errors import BadRequest, Forbidden, Internal, NotFound, PayloadTooLarge
from tubely.core.logging import get_logger
from tubely.core.storage import Storage, StorageError
from tubely.db.models import Video
from tubely.media import MediaProbeError, MediaToolkit, MediaTranscodeError, classify_streams
from tubely.services.video_repository import VideoRepository

THUMBNAIL_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpeg",
}
VIDEO_CONTENT_TYPE = "video/mp4"
COPY_CHUNK_BYTES = 1024 * 1024


def parse_video_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except (TypeError, ValueError) as exc:
        raise BadRequest("invalid_video_id", "Invalid video ID.") from exc


def parse_media_type(content_type: str | None) -> str:
    """Return the bare, lower-cased media type of a Content-Type header value."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def random_token() -> str:
    """URL-safe, unpadded base64 of 32 random bytes."""
    return secrets.token_urlsafe(32)


class UploadService:
    def __init__(
        self,
        settings: Settings,
        storage: Storage,
        asset_storage: Storage,
        toolkit: MediaToolkit,
        session: AsyncSession,
    ):
        self.settings = settings
        self.storage = storage
        self.asset_storage = asset_storage
        self.toolkit = toolkit
        self.videos = VideoRepository(session)
        self.logger = get_logger(component="upload_service")

    async def create_video(self, *, context: AuthContext, title: str, description: str | None) -> Video:
        try:
            video = await self.videos.create(user_id=context.user_id, title=title, description=description)
        except SQLAlchemyError as exc:
            self.logger.exception("video_create_failed", user_id=str(context.user_id))
            raise Internal("video_create_failed", "Couldn't create video.") from exc
        self.logger.info("video_created", video_id=video.id, user_id=video.user_id)
        return video

    async def get_owned_video(
        self,
        raw_video_id: str,
        credentials: HTTPAuthorizationCredentials | None,
    ) -> Video:
        """Resolve a video the caller owns, checking id, credential, existence and ownership in that order."""
        video_id = parse_video_id(raw_video_id)
        context = authenticate(credentials, self.settings)

        try:
            video = await self.videos.get(video_id)
        except SQLAlchemyError as exc:
            self.logger.exception("video_lookup_failed", video_id=str(video_id))
            raise Internal("video_lookup_failed", "Couldn't find video.") from exc
        if video is None:
            raise NotFound("video_not_found", "Video not found.")
        if video.user_id != str(context.user_id):
            self.logger.warning("video_owner_mismatch", video_id=video.id, user_id=str(context.user_id))
            raise Forbidden("not_video_owner", "Only the video owner may change its assets.")
        return video

    async def upload_thumbnail(
        self,
        raw_video_id: str,
        credentials: HTTPAuthorizationCredentials | None,
        part: UploadFile | None,
    ) -> Video:
        video = await self.get_owned_video(raw_video_id, credentials)

        if part is None:
            raise BadRequest("missing_thumbnail", "Form field 'thumbnail' is required.")
        media_type = parse_media_type(part.content_type)
        if not media_type:
            raise BadRequest("missing_content_type", "Missing Content-Type for thumbnail.")
        extension = THUMBNAIL_EXTENSIONS.get(media_type)
        if extension is None:
            raise BadRequest("unsupported_media_type", "Thumbnail must be a PNG or JPEG image.")

        limit = self.settings.max_thumbnail_bytes
        try:
            payload = await part.read(limit + 1)
        finally:
            await part.close()
        if len(payload) > limit:
            raise PayloadTooLarge("upload_too_large", f"Thumbnail exceeds {limit} bytes.")

        key = f"{random_token()}.{extension}"
        try:
            await asyncio.to_thread(self.asset_storage.write_bytes, key, payload, content_type=media_type)
        except StorageError as exc:
            self.logger.exception("thumbnail_write_failed", video_id=video.id, key=key)
            raise Internal("thumbnail_write_failed", "Couldn't store thumbnail.") from exc

        self.logger.info("thumbnail_stored", video_id=video.id, key=key, size_bytes=len(payload))
        url = self.asset_storage.url_for(key)
        return await self._commit_url(video, "thumbnail_url", url, discard=lambda: self.asset_storage.delete(key))

    async def upload_video(
        self,
        raw_video_id: str,
        credentials: HTTPAuthorizationCredentials | None,
        part: UploadFile | None,
    ) -> Video:
        video = await self.get_owned_video(raw_video_id, credentials)

        if part is None:
            raise BadRequest("missing_video", "Form field 'video' is required.")
        if parse_media_type(part.content_type) != VIDEO_CONTENT_TYPE:
            raise BadRequest("unsupported_media_type", "Invalid file type. Video must be in mp4 format.")

        staged: Path | None = None
        processed: Path | None = None
        try:
            staged = await self._stage_upload(part)
            self.logger.info("video_staged", video_id=video.id, path=str(staged))

            try:
                streams = await asyncio.to_thread(self.toolkit.probe, staged)
                aspect = classify_streams(streams)
            except MediaProbeError as exc:
                self.logger.error("video_probe_failed", video_id=video.id, error=str(exc))
                raise Internal("media_probe_failed", "Couldn't get video aspect ratio.") from exc

            upload_path = staged
            if self.settings.faststart_enabled:
                try:
                    processed = await asyncio.to_thread(self.toolkit.faststart, staged)
                except MediaTranscodeError as exc:
                    self.logger.error("video_faststart_failed", video_id=video.id, error=str(exc))
                    raise Internal("media_transcode_failed", "Couldn't process video.") from exc
                upload_path = processed

            key = f"{aspect.value}/{random_token()}.mp4"
            try:
                await asyncio.to_thread(self.storage.upload_file, key, upload_path, content_type=VIDEO_CONTENT_TYPE)
            except StorageError as exc:
                self.logger.exception("video_upload_failed", video_id=video.id, key=key)
                raise Internal("storage_upload_failed", "Couldn't upload video.") from exc

            self.logger.info("video_stored", video_id=video.id, key=key, aspect=aspect.value)
            url = self.storage.url_for(key)
            return await self._commit_url(video, "video_url", url, discard=lambda: self.storage.delete(key))
        finally:
            await part.close()
            for path in (processed, staged):
                if path is not None:
                    await asyncio.to_thread(self._remove_staging_file, path)

    async def _stage_upload(self, part: UploadFile) -> Path:
        try:
            return await asyncio.to_thread(self._copy_to_staging, part.file, self.settings.max_video_bytes)
        except OSError as exc:
            self.logger.exception("video_staging_failed")
            raise Internal("staging_failed", "Couldn't save video file.") from exc

    def _copy_to_staging(self, source: BinaryIO, limit: int) -> Path:
        """Copy ``source`` into a fresh temp file, refusing more than ``limit`` bytes."""
        tmp_dir = str(self.settings.tmp_dir) if self.settings.tmp_dir else None
        source.seek(0)
        path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(delete=False, prefix="tubely-upload-", suffix=".mp4", dir=tmp_dir) as tmp:
                path = Path(tmp.name)
                written = 0
                while chunk := source.read(COPY_CHUNK_BYTES):
                    written += len(chunk)
                    if written > limit:
                        raise PayloadTooLarge("upload_too_large", f"Video exceeds {limit} bytes.")
                    tmp.write(chunk)
        except (PayloadTooLarge, OSError):
            self._remove_staging_file(path)
            raise
        return path

    async def _commit_url(self, video: Video, field: str, url: str, *, discard: Callable[[], None]) -> Video:
        """Point ``field`` at ``url``; if the record cannot be saved the stored object is discarded."""
        setattr(video, field, url)
        try:
            return await self.videos.update(video)
        except SQLAlchemyError as exc:
            self.logger.exception("video_update_failed", video_id=video.id, field=field)
            await self.videos.rollback()
            try:
                await asyncio.to_thread(discard)
            except StorageError:
                self.logger.exception("orphaned_object", url=url)
            raise Internal("video_update_failed", "Couldn't update video.") from exc

    def _remove_staging_file(self, path: Path | None) -> None:
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as cleanup_error:
            self.logger.warning("staging_cleanup_failed", path=str(path), error=str(cleanup_error))


__all__ = [
    "UploadService",
    "parse_video_id",
    "parse_media_type",
    "random_token",
    "THUMBNAIL_EXTENSIONS",
    "VIDEO_CONTENT_TYPE",
]
