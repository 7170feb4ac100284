from enum import Enum
from uuid import uuid4

from pydantic import BaseModel
from pydantic import Field


class CandidateFile(BaseModel):
    """A file proposed by a drop/select event, before admission."""

    name: str
    size: int = Field(ge=0)
    mime_type: str = ""
    content: bytes = Field(default=b"", repr=False, exclude=True)


class FileError(BaseModel):
    """Structured error attached to a rejected candidate (e.g. ``file-too-large``)."""

    code: str
    message: str


class RejectedCandidate(BaseModel):
    file: CandidateFile
    errors: list[FileError] = Field(min_length=1)


class FileRecord(BaseModel):
    """An admitted file held by the batch.

    ``file_id`` is assigned per admission, so two files sharing a name never
    share a progress entry.
    """

    file_id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    size: int
    mime_type: str
    content: bytes = Field(default=b"", repr=False, exclude=True)

    @classmethod
    def from_candidate(cls, candidate: CandidateFile) -> "FileRecord":
        return cls(
            name=candidate.name,
            size=candidate.size,
            mime_type=candidate.mime_type,
            content=candidate.content,
        )


class RejectionKind(str, Enum):
    TOO_LARGE = "too_large"
    INVALID_TYPE = "invalid_type"
    TOO_MANY_FILES = "too_many_files"
    OTHER = "other"


class RejectionReason(BaseModel):
    """Why one candidate (or a whole drop, when ``file_name`` is None) was refused."""

    kind: RejectionKind
    message: str
    file_name: str | None = None


class AdmissionDecision(BaseModel):
    """Outcome of evaluating one drop event against the constraint."""

    accepted: list[CandidateFile] = Field(default_factory=list)
    reasons: list[RejectionReason] = Field(default_factory=list)

    @property
    def admitted(self) -> bool:
        return not self.reasons

    @property
    def error(self) -> str | None:
        if not self.reasons:
            return None
        return " ".join(reason.message for reason in self.reasons)


class SubmissionState(BaseModel):
    prompt: str = ""
    is_loading: bool = False
    result: str | None = None
    error: str | None = None


class FileView(BaseModel):
    """Serializable view of one batch entry (payload omitted)."""

    index: int
    file_id: str
    name: str
    size: int
    size_label: str
    mime_type: str
    progress: int | None = None
    uploading: bool = False


class UploadSnapshot(BaseModel):
    """Complete, serializable state of an upload component."""

    files: list[FileView] = Field(default_factory=list)
    count: int = 0
    max_files: int
    accept_hint: str
    error: str | None = None
    disabled: bool = False
    submission: SubmissionState = Field(default_factory=SubmissionState)
    view: str = "batch"
    session_id: str | None = None
