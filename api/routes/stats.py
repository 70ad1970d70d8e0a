"""上传统计路由。"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_stats_service, get_storage_port
from application.dto import StatsDTO
from application.ports.storage import StoragePort
from application.services.stats_service import StatsService

router = APIRouter(tags=["统计"])


@router.get("/stats", summary="读取统计", response_model=StatsDTO)
async def read_stats(service: StatsService = Depends(get_stats_service)):
    """Incremental counters; they approximate the bucket between resyncs."""
    return await service.snapshot()


@router.post("/sync-stats", summary="按实时列表重建统计", response_model=StatsDTO)
async def sync_stats(
    service: StatsService = Depends(get_stats_service),
    storage: StoragePort = Depends(get_storage_port),
):
    return await service.resync(storage)
