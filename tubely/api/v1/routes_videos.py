from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.security import HTTPAuthorizationCredentials

from tubely.api import deps
from tubely.core.auth import security

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", response_model=schemas.VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: schemas.VideoCreateRequest,
    service: deps.UploadServiceDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await service.create_video(context=context, title=payload.title, description=payload.description)
    return schemas.VideoResponse.model_validate(video)


@router.get("/{video_id}", response_model=schemas.VideoResponse)
async def get_video(
    video_id: str,
    service: deps.UploadServiceDependency,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> schemas.VideoResponse:
    video = await service.get_owned_video(video_id, credentials)
    return schemas.VideoResponse.model_validate(video)


@router.post(
    "/{video_id}/thumbnail",
    response_model=schemas.VideoResponse,
    responses={400: {"model": schemas.ErrorResponse}, 401: {"model": schemas.ErrorResponse}},
)
async def upload_thumbnail(
    video_id: str,
    service: deps.UploadServiceDependency,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    thumbnail: UploadFile | None = File(default=None),
) -> schemas.VideoResponse:
    """Store a PNG/JPEG thumbnail for a video owned by the caller."""
    video = await service.upload_thumbnail(video_id, credentials, thumbnail)
    return schemas.VideoResponse.model_validate(video)


@router.post(
    "/{video_id}/video",
    response_model=schemas.VideoResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={400: {"model": schemas.ErrorResponse}, 401: {"model": schemas.ErrorResponse}},
)
async def upload_video(
    video_id: str,
    service: deps.UploadServiceDependency,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    video: UploadFile | None = File(default=None),
) -> schemas.VideoResponse:
    """Classify, fast-start and store an MP4 upload for a video owned by the caller."""
    record = await service.upload_video(video_id, credentials, video)
    return schemas.VideoResponse.model_validate(record)


__all__ = ["router"]
