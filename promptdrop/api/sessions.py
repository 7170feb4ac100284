"""In-memory upload sessions and their NDJSON event streams.

Each browser page owns one ``UploadSession`` wrapping a ``FileUpload``
component. Sessions live only in process memory and are dropped after
``settings.session_ttl`` seconds without activity.
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator
from typing import Any
from uuid import uuid4

from promptdrop.core.config import settings
from promptdrop.core.exceptions import SessionNotFoundError
from promptdrop.generation_logic.file_upload import FileUpload
from promptdrop.generation_logic.submission import GenerateFn
from promptdrop.models.upload_models import FileRecord
from promptdrop.models.upload_models import UploadSnapshot

__all__ = [
    "SessionStore",
    "UploadSession",
    "create_stream_event",
    "stream_session_events",
]

logger = logging.getLogger(__name__)


def create_stream_event(event_type: str, payload: dict[str, Any] | None = None) -> str:
    """Serialize one component event to an NDJSON line."""
    event: dict[str, Any] = {"type": event_type}
    if payload is not None:
        event["payload"] = payload
    return json.dumps(event) + "\n"


class UploadSession:
    def __init__(self, session_id: str, generate: GenerateFn) -> None:
        self.session_id = session_id
        self.last_seen = time.time()
        self._subscribers: list[asyncio.Queue] = []
        self.component = FileUpload(
            generate,
            constraint=settings.file_constraint(),
            on_files_change=self._log_files_change,
            on_event=self._publish,
            progress_interval=settings.progress_interval,
            component_id=session_id,
        )

    def touch(self) -> None:
        self.last_seen = time.time()

    def snapshot(self) -> UploadSnapshot:
        snapshot = self.component.snapshot()
        snapshot.session_id = self.session_id
        return snapshot

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def close(self) -> None:
        self.component.close()
        for queue in self._subscribers:
            queue.put_nowait(None)
        self._subscribers.clear()

    def _publish(self, event_type: str, payload: dict[str, Any]) -> None:
        for queue in self._subscribers:
            queue.put_nowait((event_type, payload))

    def _log_files_change(self, files: list[FileRecord]) -> None:
        logger.debug("[%s] Batch changed: %s", self.session_id, [f.name for f in files])


class SessionStore:
    """Holds the live upload sessions of this process."""

    def __init__(self, generate: GenerateFn, ttl: int | None = None) -> None:
        self._generate = generate
        self._ttl = ttl
        self._sessions: dict[str, UploadSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def ttl(self) -> int:
        return self._ttl if self._ttl is not None else settings.session_ttl

    def create(self) -> UploadSession:
        self.cleanup_expired()
        session = UploadSession(uuid4().hex, self._generate)
        self._sessions[session.session_id] = session
        logger.info("[%s] Upload session created (%d live)", session.session_id, len(self._sessions))
        return session

    def get(self, session_id: str) -> UploadSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Upload session {session_id} not found")
        session.touch()
        return session

    def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(f"Upload session {session_id} not found")
        session.close()
        logger.info("[%s] Upload session closed", session_id)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def cleanup_expired(self) -> list[str]:
        """Close sessions idle for longer than the TTL."""
        now = time.time()
        expired = [sid for sid, s in self._sessions.items() if now - s.last_seen > self.ttl]
        for session_id in expired:
            logger.info("[%s] Expiring idle upload session", session_id)
            self.close(session_id)
        return expired


async def stream_session_events(session: UploadSession) -> AsyncIterator[str]:
    """Yield a ``snapshot`` line, then one line per component event until the session closes."""
    queue = session.subscribe()
    try:
        yield create_stream_event("snapshot", session.snapshot().model_dump())
        while True:
            item = await queue.get()
            if item is None:
                yield create_stream_event("closed")
                return
            event_type, payload = item
            yield create_stream_event(event_type, payload)
    finally:
        session.unsubscribe(queue)
