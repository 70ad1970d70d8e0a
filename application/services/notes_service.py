"""Guest notes stored in an external REST table."""
from __future__ import annotations

from typing import Any, Optional, Protocol

from application.dto import NoteCreateDTO
from core.logging_config import get_logger
from domain.common.exceptions import BackendUnavailableException, NotFoundException
from shared.codes import BusinessCode

logger = get_logger(__name__)


class NotesBackend(Protocol):
    async def list_notes(self) -> list[dict[str, Any]]: ...

    async def create_note(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def delete_note(self, note_id: str) -> None: ...


class NotesService:
    def __init__(self, backend: Optional[NotesBackend]):
        self.backend = backend

    @property
    def enabled(self) -> bool:
        return self.backend is not None

    def _require_backend(self) -> NotesBackend:
        if self.backend is None:
            raise NotFoundException("Notes are not enabled")
        return self.backend

    async def list_notes(self) -> list[dict[str, Any]]:
        backend = self._require_backend()
        try:
            return await backend.list_notes()
        except Exception as exc:
            logger.error("notes_list_failed", error=str(exc))
            raise BackendUnavailableException(
                "Notes are unavailable, please retry later", code=BusinessCode.NETWORK_ERROR
            ) from exc

    async def create_note(self, note: NoteCreateDTO) -> dict[str, Any]:
        backend = self._require_backend()
        payload = {"text": note.text}
        if note.author:
            payload["author"] = note.author
        try:
            created = await backend.create_note(payload)
        except Exception as exc:
            logger.error("notes_create_failed", error=str(exc))
            raise BackendUnavailableException(
                "Could not save the note, please retry later", code=BusinessCode.NETWORK_ERROR
            ) from exc
        logger.info("note_created", note_id=created.get("id"))
        return created

    async def delete_note(self, note_id: str) -> None:
        backend = self._require_backend()
        try:
            await backend.delete_note(note_id)
        except Exception as exc:
            logger.error("notes_delete_failed", note_id=note_id, error=str(exc))
            raise BackendUnavailableException(
                "Could not delete the note, please retry later", code=BusinessCode.NETWORK_ERROR
            ) from exc
        logger.info("note_deleted", note_id=note_id)
