from __future__ import annotations

import subprocess
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from vidhub.api.deps import CallerDependency, get_app_settings
from vidhub.core.config import Settings

from .schemas import EnvCheckResponse


router = APIRouter(prefix="/admin", tags=["admin"])


class DevTokenRequest(BaseModel):
    user_id: str = Field(..., examples=["user-123"])
    scopes: list[str] = Field(default_factory=list)


class DevTokenResponse(BaseModel):
    token: str


def _probe_binary(command: list[str]) -> bool:
    try:
        subprocess.run(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True)
        return True
    except (OSError, subprocess.CalledProcessError):
        return False


@router.get("/env-check", response_model=EnvCheckResponse, summary="Validate media engine toolchain")
async def env_check(caller: CallerDependency, settings: Settings = Depends(get_app_settings)) -> EnvCheckResponse:
    if "admin" not in caller.scopes:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin_scope_required")

    return EnvCheckResponse(
        ffmpeg=_probe_binary([settings.ffmpeg_binary, "-version"]),
        ffprobe=_probe_binary([settings.ffprobe_binary, "-version"]),
    )


@router.post("/dev-token", response_model=DevTokenResponse, summary="Mint development JWT")
async def mint_dev_token(payload: DevTokenRequest, settings: Settings = Depends(get_app_settings)) -> DevTokenResponse:
    if settings.environment_lower not in {"development", "dev"}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="dev_token_disabled")

    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(hours=1)
    claims: dict[str, object] = {
        "sub": payload.user_id,
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
