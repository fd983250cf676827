from __future__ import annotations

import uuid
from dataclasses import dataclass

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, get_settings
from .errors import Unauthorized


security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    user_id: uuid.UUID
    scopes: tuple[str, ...] = ()


def _decode_token(token: str, settings: Settings) -> dict:
    try:
        payload = jwt.decode(
            token,
            settings.secrets.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except jwt.ExpiredSignatureError as exc:
        raise Unauthorized("token_expired", "The bearer token has expired.") from exc
    except jwt.PyJWTError as exc:
        raise Unauthorized("invalid_token", "Couldn't validate the bearer token.") from exc
    return payload


def authenticate(credentials: HTTPAuthorizationCredentials | None, settings: Settings) -> AuthContext:
    """Validate a bearer credential and return the calling user."""
    if not credentials or not credentials.credentials:
        raise Unauthorized("missing_authorization", "Couldn't find a bearer token.")

    payload = _decode_token(credentials.credentials, settings)
    subject = payload.get("sub") or payload.get("user_id")
    try:
        user_id = uuid.UUID(str(subject))
    except (TypeError, ValueError) as exc:
        raise Unauthorized("invalid_token", "The bearer token does not name a user.") from exc

    scopes = tuple(payload.get("scopes") or [])
    return AuthContext(user_id=user_id, scopes=scopes)


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    context = authenticate(credentials, settings)
    request.state.auth = context
    return context


__all__ = ["AuthContext", "authenticate", "get_auth_context", "security"]
