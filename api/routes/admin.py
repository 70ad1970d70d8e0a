"""管理员路由：登录、登出、删除媒体与留言。"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, Request, Response

from api.dependencies import (
    admin_token,
    get_auth_service,
    get_media_service,
    get_notes_service,
    get_settings,
    get_storage_port,
    require_admin,
)
from application.dto import OkDTO, PasswordDTO, SessionStatusDTO
from application.ports.storage import StoragePort
from application.services.auth_service import AuthService
from application.services.media_service import MediaService
from application.services.notes_service import NotesService
from core.config import Settings

router = APIRouter(prefix="/admin", tags=["管理"])


@router.post("/login", summary="管理员登录", response_model=OkDTO)
async def login(
    payload: PasswordDTO,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    token = auth.login(payload.password)
    response.set_cookie(
        settings.auth.admin_cookie_name,
        token,
        max_age=settings.auth.session_ttl,
        httponly=True,
        samesite="lax",
        secure=settings.auth.cookie_secure,
    )
    return OkDTO()


@router.post("/logout", summary="管理员登出", response_model=OkDTO)
async def logout(
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    auth.logout(admin_token(request))
    response.delete_cookie(settings.auth.admin_cookie_name, httponly=True, samesite="lax")
    return OkDTO()


@router.get("/session", summary="会话状态", response_model=SessionStatusDTO)
async def session_status(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    return SessionStatusDTO(authenticated=auth.is_admin(admin_token(request)))


@router.delete(
    "/delete",
    summary="删除媒体",
    response_model=OkDTO,
    dependencies=[Depends(require_admin)],
)
async def delete_media(
    key: str = Query(..., min_length=1),
    service: MediaService = Depends(get_media_service),
    storage: StoragePort = Depends(get_storage_port),
):
    """Succeeds for keys that do not exist; re-list to confirm state."""
    await service.delete(storage, key)
    return OkDTO()


@router.delete(
    "/notes/{note_id}",
    summary="删除留言",
    response_model=OkDTO,
    dependencies=[Depends(require_admin)],
)
async def delete_note(
    note_id: str = Path(..., min_length=1, max_length=64),
    service: NotesService = Depends(get_notes_service),
):
    await service.delete_note(note_id)
    return OkDTO()
