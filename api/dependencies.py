"""
API依赖项 - 服务获取、存储与会话校验

Services are built once in ``create_app`` and kept on ``app.state``;
these helpers hand them to route functions.
"""
import hashlib
from typing import Optional

from fastapi import Depends, Request

from api.middleware import resolve_client_ip
from application.ports.storage import StoragePort
from application.services.auth_service import AuthService
from application.services.gallery_service import GalleryProjector
from application.services.media_service import MediaService
from application.services.notes_service import NotesService
from application.services.stats_service import StatsService
from application.services.upload_service import UploadAdmissionService
from core.config import Settings
from core.logging_config import get_logger
from domain.common.exceptions import BackendUnavailableException
from infrastructure.adapters.storage_port import StorageProviderPortAdapter
from infrastructure.external.storage import get_storage

logger = get_logger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_storage_port(request: Request) -> StoragePort:
    """Storage for operations that must fail loudly when it is unavailable."""
    port = getattr(request.app.state, "storage_port", None)
    if port is not None:
        return port
    try:
        provider = await get_storage()
    except Exception as exc:
        logger.error("storage_unavailable", error=str(exc))
        raise BackendUnavailableException() from exc
    return StorageProviderPortAdapter(provider)


async def get_optional_storage_port(request: Request) -> Optional[StoragePort]:
    """Storage for best-effort reads; None instead of an error."""
    try:
        return await get_storage_port(request)
    except BackendUnavailableException:
        return None


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_gallery_projector(request: Request) -> GalleryProjector:
    return request.app.state.gallery_projector


def get_upload_service(request: Request) -> UploadAdmissionService:
    return request.app.state.upload_service


def get_stats_service(request: Request) -> StatsService:
    return request.app.state.stats_service


def get_media_service(request: Request) -> MediaService:
    return request.app.state.media_service


def get_notes_service(request: Request) -> NotesService:
    return request.app.state.notes_service


def admin_token(request: Request) -> Optional[str]:
    return request.cookies.get(request.app.state.settings.auth.admin_cookie_name)


def upload_token(request: Request) -> Optional[str]:
    return request.cookies.get(request.app.state.settings.auth.upload_cookie_name)


async def require_admin(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> None:
    """管理员会话校验；失败时 401"""
    auth.require_admin(admin_token(request))


async def require_upload_access(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> None:
    """上传口令校验（未配置口令时放行）"""
    if auth.is_admin(admin_token(request)):
        return
    auth.require_upload(upload_token(request))


def contributor_id(request: Request) -> str:
    """Opaque, stable id for the uploading client; the IP itself is not stored."""
    ip = getattr(request.state, "client_ip", None) or resolve_client_ip(request)
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()[:16]
