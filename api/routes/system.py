"""健康检查与客户端配置。"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_auth_service, get_notes_service, get_settings
from application.dto import ClientConfigDTO, HealthDTO
from application.services.auth_service import AuthService
from application.services.notes_service import NotesService
from core.config import Settings

router = APIRouter(tags=["系统"])


@router.get("/health", summary="健康检查", response_model=HealthDTO)
async def health_check(request: Request, settings: Settings = Depends(get_settings)):
    return HealthDTO(
        version=settings.VERSION,
        storage={
            "type": settings.storage.type,
            "urlMode": request.app.state.url_strategy.mode,
            "gallerySource": settings.gallery.source,
        },
    )


@router.get("/config", summary="客户端配置", response_model=ClientConfigDTO)
async def client_config(
    settings: Settings = Depends(get_settings),
    auth: AuthService = Depends(get_auth_service),
    notes: NotesService = Depends(get_notes_service),
):
    return ClientConfigDTO(
        public_url=settings.storage.public_base_url,
        max_upload_bytes=settings.upload.max_size,
        allowed_types=list(settings.upload.allowed_types),
        gate_enabled=auth.gate_enabled,
        notes_enabled=notes.enabled,
        gallery_source=settings.gallery.source,
    )
