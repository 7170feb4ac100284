"""Admission filter: turns a checked drop event into an admit/reject decision.

The per-file checks (size, type) have already been applied by
``promptdrop.core.validation.split_drop``; this module renders their error codes
into user-facing messages and applies the batch-wide count limit.
"""

import logging

from promptdrop.core.exceptions import AdmissionError
from promptdrop.core.validation import FILE_INVALID_TYPE
from promptdrop.core.validation import FILE_TOO_LARGE
from promptdrop.core.validation import FileConstraint
from promptdrop.core.validation import format_bytes
from promptdrop.models.upload_models import AdmissionDecision
from promptdrop.models.upload_models import CandidateFile
from promptdrop.models.upload_models import RejectedCandidate
from promptdrop.models.upload_models import RejectionKind
from promptdrop.models.upload_models import RejectionReason

__all__ = [
    "evaluate_drop",
    "raise_for_decision",
    "rejection_reason",
]

logger = logging.getLogger(__name__)


def rejection_reason(rejected: RejectedCandidate, constraint: FileConstraint) -> RejectionReason:
    """Message for one rejected candidate, chosen from its first error code."""
    name = rejected.file.name
    first = rejected.errors[0]
    if first.code == FILE_TOO_LARGE:
        return RejectionReason(
            kind=RejectionKind.TOO_LARGE,
            file_name=name,
            message=f"{name} is too large. Max size is {format_bytes(constraint.max_size)}.",
        )
    if first.code == FILE_INVALID_TYPE:
        return RejectionReason(
            kind=RejectionKind.INVALID_TYPE,
            file_name=name,
            message=f"{name} has an invalid file type.",
        )
    return RejectionReason(kind=RejectionKind.OTHER, file_name=name, message=f"{name}: {first.message}")


def evaluate_drop(
    accepted: list[CandidateFile],
    rejected: list[RejectedCandidate],
    current_count: int,
    constraint: FileConstraint,
) -> AdmissionDecision:
    """Decide which candidates of one drop event may enter the batch.

    Parameters
    ----------
    accepted: list[CandidateFile]
        Candidates that passed the per-file checks.
    rejected: list[RejectedCandidate]
        Candidates that failed them, each with at least one error.
    current_count: int
        Number of files already held by the batch.
    constraint: FileConstraint
        Limits of the component.

    Returns:
    -------
    AdmissionDecision
        Either the candidates to admit, or the rejection reasons. Any rejection
        refuses the whole event; nothing is partially admitted.
    """
    if rejected:
        reasons = [rejection_reason(r, constraint) for r in rejected]
        logger.info("Drop rejected: %d of %d candidates failed checks", len(rejected), len(rejected) + len(accepted))
        return AdmissionDecision(reasons=reasons)

    if current_count + len(accepted) > constraint.max_files:
        logger.info(
            "Drop rejected: %d held + %d dropped exceeds max_files=%d",
            current_count,
            len(accepted),
            constraint.max_files,
        )
        return AdmissionDecision(
            reasons=[
                RejectionReason(
                    kind=RejectionKind.TOO_MANY_FILES,
                    message=f"You can only upload a maximum of {constraint.max_files} files.",
                )
            ]
        )

    return AdmissionDecision(accepted=list(accepted))


def raise_for_decision(decision: AdmissionDecision) -> None:
    """Raise ``AdmissionError`` for callers that prefer exceptions to decisions."""
    if not decision.admitted:
        raise AdmissionError(decision.error or "", reasons=decision.reasons)
