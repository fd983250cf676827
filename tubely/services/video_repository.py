from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from tubely.db.models import Video


class VideoRepository:
    """Persistence for video records over an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, video_id: uuid.UUID) -> Video | None:
        return await self.session.get(Video, str(video_id))

    async def create(self, *, user_id: uuid.UUID, title: str, description: str | None = None) -> Video:
        video = Video(id=str(uuid.uuid4()), user_id=str(user_id), title=title, description=description)
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        return video

    async def update(self, video: Video) -> Video:
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        return video

    async def rollback(self) -> None:
        await self.session.rollback()


__all__ = ["VideoRepository"]
