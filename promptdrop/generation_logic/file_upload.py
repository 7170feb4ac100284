"""The upload component: admission, batch, progress and submission wired together.

A ``FileUpload`` instance is the state behind one upload widget. It is driven
through its operations (drop, remove, clear, prompt, submit, dismiss) and
reports every change through two callbacks:

- ``on_files_change(files)`` with the full current file list after each batch
  mutation;
- ``on_event(event_type, payload)`` with serializable payloads for ``files``,
  ``progress``, ``error`` and ``submission`` events.
"""

import logging
import random
from collections.abc import Callable
from typing import Any

from promptdrop.core.validation import FileConstraint
from promptdrop.core.validation import describe_accept
from promptdrop.core.validation import format_bytes
from promptdrop.core.validation import split_drop
from promptdrop.generation_logic.admission import evaluate_drop
from promptdrop.generation_logic.batch_state import BatchState
from promptdrop.generation_logic.batch_state import FilesChangeListener
from promptdrop.generation_logic.progress import DEFAULT_INTERVAL
from promptdrop.generation_logic.progress import ProgressSimulator
from promptdrop.generation_logic.submission import GenerateFn
from promptdrop.generation_logic.submission import SubmissionBridge
from promptdrop.models.upload_models import AdmissionDecision
from promptdrop.models.upload_models import CandidateFile
from promptdrop.models.upload_models import FileRecord
from promptdrop.models.upload_models import FileView
from promptdrop.models.upload_models import RejectedCandidate
from promptdrop.models.upload_models import SubmissionState
from promptdrop.models.upload_models import UploadSnapshot

__all__ = ["EventListener", "FileUpload"]

logger = logging.getLogger(__name__)

EventListener = Callable[[str, dict[str, Any]], None]


class FileUpload:
    def __init__(
        self,
        generate: GenerateFn,
        constraint: FileConstraint | None = None,
        on_files_change: FilesChangeListener | None = None,
        on_event: EventListener | None = None,
        disabled: bool = False,
        progress_interval: float = DEFAULT_INTERVAL,
        rng: random.Random | None = None,
        component_id: str | None = None,
    ) -> None:
        self.constraint = constraint or FileConstraint()
        self.disabled = disabled
        self.error: str | None = None
        self.component_id = component_id or "-"
        self._on_files_change = on_files_change
        self._on_event = on_event

        self.batch = BatchState(on_change=self._files_changed)
        self.progress = ProgressSimulator(self._progress_tick, interval=progress_interval, rng=rng)
        self.submission = SubmissionBridge(generate, self.batch, on_change=self._submission_changed)

    # ------------------------------------------------------------------
    # Drop handling
    # ------------------------------------------------------------------

    def drop(self, candidates: list[CandidateFile]) -> AdmissionDecision | None:
        """Run the per-file checks on raw candidates, then admit or reject them."""
        accepted, rejected = split_drop(candidates, self.constraint)
        return self.on_drop(accepted, rejected)

    def on_drop(
        self,
        accepted: list[CandidateFile],
        rejected: list[RejectedCandidate],
    ) -> AdmissionDecision | None:
        """Apply one drop event. Returns None when the component is disabled."""
        if self.disabled:
            logger.info("[%s] Ignoring drop of %d file(s): component disabled", self.component_id, len(accepted) + len(rejected))
            return None

        self._set_error(None)
        decision = evaluate_drop(accepted, rejected, len(self.batch), self.constraint)
        if not decision.admitted:
            logger.warning("[%s] Drop rejected: %s", self.component_id, decision.error)
            self._set_error(decision.error)
            return decision

        records = [FileRecord.from_candidate(c) for c in decision.accepted]
        self.batch.add(records)
        for record in records:
            self.progress.start(record.file_id)
        logger.info("[%s] Admitted %d file(s): %s", self.component_id, len(records), [r.name for r in records])
        return decision

    # ------------------------------------------------------------------
    # Batch editing
    # ------------------------------------------------------------------

    def remove_file(self, index: int) -> FileRecord:
        """Remove one file by its position in the current batch.

        Raises:
            IndexError: if ``index`` does not address a file of the current batch.
        """
        removed = self.batch.remove_at(index)
        self.progress.cancel(removed.file_id)
        return removed

    def clear_all(self) -> None:
        self.progress.cancel_all()
        self.batch.clear()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def set_prompt(self, prompt: str) -> None:
        self.submission.set_prompt(prompt)

    async def submit(self) -> str | None:
        return await self.submission.submit()

    def dismiss_result(self) -> None:
        self.submission.dismiss()

    def close(self) -> None:
        """Stop every ticker; the component must not be used afterwards."""
        self.progress.cancel_all()

    # ------------------------------------------------------------------
    # Serializable state
    # ------------------------------------------------------------------

    def snapshot(self) -> UploadSnapshot:
        progress = self.batch.progress
        files = []
        for index, record in enumerate(self.batch.files):
            value = progress.get(record.file_id)
            files.append(
                FileView(
                    index=index,
                    file_id=record.file_id,
                    name=record.name,
                    size=record.size,
                    size_label=format_bytes(record.size),
                    mime_type=record.mime_type,
                    progress=value,
                    uploading=value is not None and value < 100,
                )
            )
        submission = self.submission.state.model_copy()
        return UploadSnapshot(
            files=files,
            count=len(files),
            max_files=self.constraint.max_files,
            accept_hint=describe_accept(self.constraint),
            error=self.error,
            disabled=self.disabled,
            submission=submission,
            view="result" if submission.result else "batch",
        )

    # ------------------------------------------------------------------
    # Internal callbacks
    # ------------------------------------------------------------------

    def _set_error(self, error: str | None) -> None:
        if error == self.error:
            return
        self.error = error
        self._emit("error", {"message": error})

    def _files_changed(self, files: list[FileRecord]) -> None:
        if self._on_files_change is not None:
            self._on_files_change(files)
        self._emit("files", {"files": [f.model_dump() for f in files], "count": len(files)})

    def _progress_tick(self, file_id: str, value: int) -> None:
        if not self.batch.set_progress(file_id, value):
            return
        self._emit("progress", {"file_id": file_id, "progress": value})

    def _submission_changed(self, state: SubmissionState) -> None:
        self._emit("submission", state.model_dump())

    def _emit(self, event_type: str, payload: dict[str, Any]) -> None:
        if self._on_event is not None:
            self._on_event(event_type, payload)
