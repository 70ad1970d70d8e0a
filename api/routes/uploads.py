"""上传相关路由：预签名、本地直传接收、外链提交与上传口令。"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import FileResponse

from api.dependencies import (
    contributor_id,
    get_auth_service,
    get_media_service,
    get_settings,
    get_storage_port,
    get_upload_service,
    require_upload_access,
)
from application.dto import (
    LedgerEntryDTO,
    LinkSubmitDTO,
    OkDTO,
    PasswordDTO,
    PresignResponseDTO,
    UploadReceiptDTO,
)
from application.ports.storage import StoragePort
from application.services.auth_service import AuthService
from application.services.media_service import MediaService
from application.services.upload_service import UploadAdmissionService
from core.config import Settings

router = APIRouter(tags=["上传"])


@router.get(
    "/presign",
    summary="申请直传凭证",
    response_model=PresignResponseDTO,
    response_model_exclude_none=True,
    dependencies=[Depends(require_upload_access)],
)
async def presign(
    request: Request,
    filename: Optional[str] = Query(default=None),
    content_type: Optional[str] = Query(default=None, alias="type"),
    size: Optional[str] = Query(default=None),
    service: UploadAdmissionService = Depends(get_upload_service),
    storage: StoragePort = Depends(get_storage_port),
):
    return await service.admit(
        storage,
        filename=filename,
        content_type=content_type,
        declared_size=size,
        contributor=contributor_id(request),
    )


@router.put(
    "/upload/{key:path}",
    summary="接收本地存储的直传文件",
    response_model=UploadReceiptDTO,
)
async def receive_upload(
    key: str,
    request: Request,
    expires: int = Query(...),
    sig: str = Query(..., min_length=1),
    service: UploadAdmissionService = Depends(get_upload_service),
    storage: StoragePort = Depends(get_storage_port),
):
    """Target of URLs signed by the local provider; the signature is the credential."""
    return await service.receive(
        storage,
        key=key,
        expires=expires,
        signature=sig,
        content_type=request.headers.get("content-type"),
        chunks=request.stream(),
    )


@router.get(
    "/media/{key:path}",
    summary="读取本地存储的媒体",
    response_class=FileResponse,
)
async def read_media(
    key: str,
    expires: int = Query(...),
    sig: str = Query(..., min_length=1),
    service: MediaService = Depends(get_media_service),
    storage: StoragePort = Depends(get_storage_port),
):
    path = service.open_local(storage, key, expires, sig)
    return FileResponse(path, filename=path.name, content_disposition_type="inline")


@router.post(
    "/links",
    summary="提交外部媒体链接",
    response_model=LedgerEntryDTO,
    dependencies=[Depends(require_upload_access)],
)
async def submit_link(
    payload: LinkSubmitDTO,
    request: Request,
    service: MediaService = Depends(get_media_service),
):
    return await service.submit_link(payload.url, payload.name, contributor_id(request))


@router.post(
    "/unlock",
    summary="输入上传口令",
    response_model=OkDTO,
)
async def unlock(
    payload: PasswordDTO,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    token = auth.unlock(payload.password)
    if token:
        response.set_cookie(
            settings.auth.upload_cookie_name,
            token,
            max_age=settings.auth.session_ttl,
            httponly=True,
            samesite="lax",
            secure=settings.auth.cookie_secure,
        )
    return OkDTO()
