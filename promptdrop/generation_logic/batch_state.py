import logging
from collections.abc import Callable

from promptdrop.models.upload_models import FileRecord

__all__ = ["BatchState", "FilesChangeListener"]

logger = logging.getLogger(__name__)

FilesChangeListener = Callable[[list[FileRecord]], None]


class BatchState:
    """Ordered files of one upload component plus their progress entries.

    Every mutation notifies the listener with a copy of the full sequence.
    The ``max_files`` limit is enforced by the admission filter, not here.
    """

    def __init__(self, on_change: FilesChangeListener | None = None) -> None:
        self._files: list[FileRecord] = []
        self._progress: dict[str, int] = {}
        self._on_change = on_change

    def __len__(self) -> int:
        return len(self._files)

    @property
    def files(self) -> list[FileRecord]:
        return list(self._files)

    @property
    def progress(self) -> dict[str, int]:
        return dict(self._progress)

    def first(self) -> FileRecord | None:
        return self._files[0] if self._files else None

    def add(self, files: list[FileRecord]) -> None:
        """Append admitted files after the ones already held."""
        for record in files:
            self._files.append(record)
            self._progress[record.file_id] = 0
        logger.debug("Added %d file(s), batch now holds %d", len(files), len(self._files))
        self._notify()

    def remove_at(self, index: int) -> FileRecord:
        """Remove the file at ``index`` and its progress entry.

        Raises:
            IndexError: if ``index`` is not within ``0 <= index < len(self)``.
        """
        if not 0 <= index < len(self._files):
            raise IndexError(f"File index {index} out of range for batch of {len(self._files)}")
        removed = self._files.pop(index)
        self._progress.pop(removed.file_id, None)
        logger.debug("Removed %s (%s) at index %d", removed.name, removed.file_id, index)
        self._notify()
        return removed

    def clear(self) -> list[FileRecord]:
        removed = self._files
        self._files = []
        self._progress = {}
        logger.debug("Cleared batch (%d file(s) released)", len(removed))
        self._notify()
        return removed

    def set_progress(self, file_id: str, value: int) -> bool:
        """Record a progress value; unknown ids are ignored.

        Returns True when the entry exists and was updated.
        """
        current = self._progress.get(file_id)
        if current is None:
            return False
        self._progress[file_id] = max(current, min(value, 100))
        return True

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(list(self._files))
