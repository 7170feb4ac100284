"""Admission constraints and the per-file drop checks.

``split_drop`` plays the part of the browser's dropzone: it tags every candidate
with structured error codes (size, type, per-drop count) so that the admission
filter only has to turn those codes into user-facing messages.
"""

import logging

import magic
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from promptdrop.models.upload_models import CandidateFile
from promptdrop.models.upload_models import FileError
from promptdrop.models.upload_models import RejectedCandidate

logger = logging.getLogger(__name__)

# Error codes attached to rejected candidates
FILE_TOO_LARGE = "file-too-large"
FILE_INVALID_TYPE = "file-invalid-type"
TOO_MANY_FILES = "too-many-files"

DEFAULT_MAX_FILES: int = 5
DEFAULT_MAX_SIZE: int = 5 * 1024 * 1024  # 5 MB per file
DEFAULT_ACCEPT: dict[str, list[str]] = {
    "image/*": [".jpeg", ".jpg", ".png", ".gif"],
    "application/pdf": [".pdf"],
}

GENERIC_MIME_TYPES = {"", "application/octet-stream"}

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


class FileConstraint(BaseModel):
    """Immutable limits applied to every drop event of one upload component."""

    model_config = ConfigDict(frozen=True)

    max_files: int = Field(default=DEFAULT_MAX_FILES, gt=0)
    max_size: int = Field(default=DEFAULT_MAX_SIZE, gt=0)
    accept: dict[str, list[str]] = Field(default_factory=lambda: {k: list(v) for k, v in DEFAULT_ACCEPT.items()})


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Human-readable size, base 1024, trailing zeros trimmed (``1024 -> "1 KB"``)."""
    if num_bytes < 0:
        raise ValueError(f"Size cannot be negative: {num_bytes}")
    if num_bytes == 0:
        return "0 Bytes"
    dm = max(decimals, 0)

    unit = 0
    while unit < len(SIZE_UNITS) - 1 and num_bytes >= 1024 ** (unit + 1):
        unit += 1

    value = f"{num_bytes / 1024**unit:.{dm}f}"
    if "." in value:
        value = value.rstrip("0").rstrip(".")
    return f"{value} {SIZE_UNITS[unit]}"


def accepted_patterns(constraint: FileConstraint) -> list[str]:
    """Flattens the accept mapping into MIME patterns followed by extensions."""
    patterns = list(constraint.accept.keys())
    for extensions in constraint.accept.values():
        patterns.extend(extensions)
    return patterns


def describe_accept(constraint: FileConstraint) -> str:
    """Hint shown under the dropzone, e.g. ``.jpeg, .jpg, .pdf (Max 5 MB)``."""
    extensions = ", ".join(", ".join(exts) for exts in constraint.accept.values())
    return f"{extensions} (Max {format_bytes(constraint.max_size)})"


def matches_accept(name: str, mime_type: str, constraint: FileConstraint) -> bool:
    """True when the MIME type or the file extension matches any accepted pattern."""
    if not constraint.accept:
        return True

    lowered_name = name.lower()
    mime = (mime_type or "").lower()
    base_mime = mime.split("/", 1)[0]

    for pattern in accepted_patterns(constraint):
        pattern = pattern.strip().lower()
        if not pattern:
            continue
        if pattern.startswith("."):
            if lowered_name.endswith(pattern):
                return True
        elif pattern.endswith("/*"):
            if base_mime and base_mime == pattern[:-2]:
                return True
        elif mime == pattern:
            return True
    return False


def check_candidate(candidate: CandidateFile, constraint: FileConstraint) -> list[FileError]:
    """Collects the errors of a single candidate; oversize is reported first."""
    errors: list[FileError] = []
    if candidate.size > constraint.max_size:
        errors.append(FileError(code=FILE_TOO_LARGE, message=f"File is larger than {constraint.max_size} bytes"))
    if not matches_accept(candidate.name, candidate.mime_type, constraint):
        errors.append(
            FileError(
                code=FILE_INVALID_TYPE,
                message=f"File type must be one of {', '.join(accepted_patterns(constraint))}",
            )
        )
    return errors


def split_drop(
    candidates: list[CandidateFile],
    constraint: FileConstraint,
) -> tuple[list[CandidateFile], list[RejectedCandidate]]:
    """Splits one drop event into accepted candidates and tagged rejections.

    When more candidates pass the per-file checks than ``max_files`` allows in a
    single drop, all of them are rejected with ``too-many-files``.
    """
    accepted: list[CandidateFile] = []
    rejected: list[RejectedCandidate] = []

    for candidate in candidates:
        errors = check_candidate(candidate, constraint)
        if errors:
            logger.debug("Candidate %s failed checks: %s", candidate.name, [e.code for e in errors])
            rejected.append(RejectedCandidate(file=candidate, errors=errors))
        else:
            accepted.append(candidate)

    if len(accepted) > constraint.max_files:
        logger.debug("Drop of %d files exceeds max_files=%d", len(accepted), constraint.max_files)
        rejected.extend(
            RejectedCandidate(file=c, errors=[FileError(code=TOO_MANY_FILES, message="Too many files")]) for c in accepted
        )
        accepted = []

    return accepted, rejected


def sniff_mime_type(filename: str, content: bytes, declared: str | None) -> str:
    """Returns the declared MIME type, or detects it from content when it is generic."""
    if declared and declared.lower() not in GENERIC_MIME_TYPES:
        return declared
    try:
        detected = magic.from_buffer(content, mime=True)
    except Exception as e:
        logger.warning("MIME detection failed for %s: %s", filename, e)
        return declared or "application/octet-stream"
    logger.debug("Detected MIME type %s for %s", detected, filename)
    return detected
