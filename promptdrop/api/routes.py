import asyncio
import logging

from fastapi import APIRouter
from fastapi import Depends
from fastapi import File
from fastapi import HTTPException
from fastapi import UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from pydantic import Field as PydanticField

from promptdrop.api.sessions import SessionStore
from promptdrop.api.sessions import UploadSession
from promptdrop.api.sessions import stream_session_events
from promptdrop.core.exceptions import SessionNotFoundError
from promptdrop.core.exceptions import SubmissionInProgressError
from promptdrop.core.security import verify_api_key
from promptdrop.core.validation import sniff_mime_type
from promptdrop.models.upload_models import CandidateFile
from promptdrop.models.upload_models import FileRecord
from promptdrop.models.upload_models import UploadSnapshot
from promptdrop.services.llm import generate_text

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", dependencies=[Depends(verify_api_key)])


async def _generate(prompt: str, file: FileRecord) -> str:
    # generate_text is looked up on every call
    return await generate_text(prompt, file)


_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    global _store
    if _store is None:
        _store = SessionStore(_generate)
    return _store


def get_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> UploadSession:
    try:
        return store.get(session_id)
    except SessionNotFoundError as e:
        logger.warning("Unknown upload session requested: %s", session_id)
        raise HTTPException(status_code=404, detail=str(e)) from e


class PromptPayload(BaseModel):
    prompt: str = PydanticField(default="", description="Free-text prompt sent with the first file.")


@router.post("/sessions", status_code=201, response_model=UploadSnapshot)
async def create_session(store: SessionStore = Depends(get_session_store)) -> UploadSnapshot:
    """Open a new upload session and return its empty state."""
    return store.create().snapshot()


@router.get("/sessions/{session_id}", response_model=UploadSnapshot)
async def read_session(session: UploadSession = Depends(get_session)) -> UploadSnapshot:
    return session.snapshot()


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> None:
    try:
        store.close(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/sessions/{session_id}/files", response_model=UploadSnapshot)
async def drop_files(
    files: list[UploadFile] = File(...),
    session: UploadSession = Depends(get_session),
) -> UploadSnapshot:
    """Handle one drop/select event.

    Rejections are not HTTP errors: the combined admission message is returned
    in the ``error`` field of the state, replacing any previous one.
    """
    candidates: list[CandidateFile] = []
    for f_obj in files:
        filename = f_obj.filename or "unknown_file"
        contents = await f_obj.read()
        # libmagic is blocking
        mime_type = await asyncio.to_thread(sniff_mime_type, filename, contents, f_obj.content_type)
        candidates.append(
            CandidateFile(
                name=filename,
                size=len(contents),
                mime_type=mime_type,
                content=contents,
            )
        )
    logger.info("[%s] Drop event with %d file(s)", session.session_id, len(candidates))
    session.component.drop(candidates)
    return session.snapshot()


@router.delete("/sessions/{session_id}/files/{index}", response_model=UploadSnapshot)
async def remove_file(index: int, session: UploadSession = Depends(get_session)) -> UploadSnapshot:
    try:
        session.component.remove_file(index)
    except IndexError as e:
        logger.error("[%s] Remove with stale index %d: %s", session.session_id, index, e)
        raise HTTPException(status_code=404, detail=str(e)) from e
    return session.snapshot()


@router.delete("/sessions/{session_id}/files", response_model=UploadSnapshot)
async def clear_files(session: UploadSession = Depends(get_session)) -> UploadSnapshot:
    session.component.clear_all()
    return session.snapshot()


@router.put("/sessions/{session_id}/prompt", response_model=UploadSnapshot)
async def update_prompt(payload: PromptPayload, session: UploadSession = Depends(get_session)) -> UploadSnapshot:
    session.component.set_prompt(payload.prompt)
    return session.snapshot()


@router.post("/sessions/{session_id}/submit", response_model=UploadSnapshot)
async def submit(session: UploadSession = Depends(get_session)) -> UploadSnapshot:
    """Send the prompt and the first file to the model.

    A failed generation call is reported in ``submission.error``; the loading
    flag is always reset before this endpoint returns.
    """
    try:
        await session.component.submit()
    except SubmissionInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return session.snapshot()


@router.delete("/sessions/{session_id}/result", response_model=UploadSnapshot)
async def dismiss_result(session: UploadSession = Depends(get_session)) -> UploadSnapshot:
    session.component.dismiss_result()
    return session.snapshot()


@router.get("/sessions/{session_id}/events")
async def session_events(session: UploadSession = Depends(get_session)) -> StreamingResponse:
    """Stream component events as NDJSON.

    Potential Stream Events:
    - `snapshot`: Full state, sent first.
    - `files`: The batch changed (add, remove, clear).
    - `progress`: A simulated progress tick for one file.
    - `error`: The admission error message changed.
    - `submission`: Prompt, loading flag, result or error changed.
    - `closed`: The session was closed; the stream ends.
    """
    return StreamingResponse(stream_session_events(session), media_type="application/x-ndjson")
