"""画廊列表路由。"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from api.dependencies import get_gallery_projector, get_optional_storage_port
from application.dto import GalleryResponseDTO
from application.ports.storage import StoragePort
from application.services.gallery_service import GalleryProjector

router = APIRouter(tags=["画廊"])


@router.get(
    "/gallery",
    summary="列出最新媒体",
    response_model=GalleryResponseDTO,
)
async def list_gallery(
    projector: GalleryProjector = Depends(get_gallery_projector),
    storage: Optional[StoragePort] = Depends(get_optional_storage_port),
):
    """Newest items first. Never fails: an unreachable backend yields an empty list."""
    return await projector.project(storage)
