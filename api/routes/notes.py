"""留言路由（外部 REST 表的透传）。"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from api.dependencies import get_notes_service
from application.dto import NoteCreateDTO
from application.services.notes_service import NotesService

router = APIRouter(prefix="/notes", tags=["留言"])


@router.get("", summary="留言列表")
async def list_notes(service: NotesService = Depends(get_notes_service)) -> list[dict[str, Any]]:
    return await service.list_notes()


@router.post("", summary="发表留言", status_code=201)
async def create_note(
    payload: NoteCreateDTO,
    service: NotesService = Depends(get_notes_service),
) -> dict[str, Any]:
    return await service.create_note(payload)
