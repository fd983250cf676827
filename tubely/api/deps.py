from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tubely.core.auth import AuthContext, get_auth_context
from tubely.core.config import Settings, get_settings
from tubely.core.storage import Storage
from tubely.media import MediaToolkit
from tubely.services.upload_service import UploadService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_storage(request: Request) -> Storage:
    storage: Storage = request.app.state.storage
    return storage


def get_asset_storage(request: Request) -> Storage:
    storage: Storage = request.app.state.asset_storage
    return storage


def get_media_toolkit(request: Request) -> MediaToolkit:
    toolkit: MediaToolkit = request.app.state.media_toolkit
    return toolkit


def get_app_settings() -> Settings:
    return get_settings()


async def get_upload_service(
    session: AsyncSession = Depends(get_session),
    storage: Storage = Depends(get_storage),
    asset_storage: Storage = Depends(get_asset_storage),
    toolkit: MediaToolkit = Depends(get_media_toolkit),
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[UploadService]:
    service = UploadService(settings, storage, asset_storage, toolkit, session)
    yield service


UploadServiceDependency = Annotated[UploadService, Depends(get_upload_service)]
AuthDependency = Annotated[AuthContext, Depends(get_auth_context)]


__all__ = [
    "get_session",
    "get_storage",
    "get_asset_storage",
    "get_media_toolkit",
    "get_app_settings",
    "get_upload_service",
    "UploadServiceDependency",
    "AuthDependency",
]
