from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tubely.api.deps import AuthDependency
from tubely.core.config import Settings, get_settings
from tubely.core.errors import Forbidden
from tubely.media import binary_available

from .schemas import EnvCheckResponse


router = APIRouter(prefix="/admin", tags=["admin"])


class DevTokenRequest(BaseModel):
    user_id: uuid.UUID = Field(..., examples=["2f0c9a52-6b8d-4d1e-9c55-1b7a6f0e1d2a"])
    scopes: list[str] = Field(default_factory=list)
    ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)


class DevTokenResponse(BaseModel):
    token: str


@router.get("/env-check", response_model=EnvCheckResponse, summary="Validate ffmpeg toolchain")
def env_check(context: AuthDependency) -> EnvCheckResponse:
    if "admin" not in context.scopes:
        raise Forbidden("admin_scope_required", "The admin scope is required.")

    return EnvCheckResponse(
        ffmpeg=binary_available(["ffmpeg", "-version"]),
        ffprobe=binary_available(["ffprobe", "-version"]),
    )


@router.post("/dev-token", response_model=DevTokenResponse, summary="Mint development JWT")
async def mint_dev_token(payload: DevTokenRequest, settings: Settings = Depends(get_settings)) -> DevTokenResponse:
    if settings.environment_lower not in {"development", "dev"}:
        raise Forbidden("dev_token_disabled", "Development tokens are disabled in this environment.")

    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=payload.ttl_minutes)
    claims: dict[str, object] = {
        "sub": str(payload.user_id),
        "scopes": payload.scopes,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if settings.jwt_issuer:
        claims["iss"] = settings.jwt_issuer
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience

    token = jwt.encode(claims, settings.secrets.jwt_secret, algorithm=settings.jwt_algorithm)
    return DevTokenResponse(token=token)


__all__ = ["router"]
