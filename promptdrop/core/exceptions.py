"""Core custom exceptions for the application."""


class FileUploadError(Exception):
    """Base exception for upload component errors."""


class AdmissionError(FileUploadError):
    """Raised when a drop event is rejected by the admission rules.

    The message is the combined, user-facing text of every rejection reason.
    """

    def __init__(self, message: str, reasons: list | None = None) -> None:
        super().__init__(message)
        self.reasons = reasons or []


class ExternalCallFailure(FileUploadError):
    """The text-generation call failed (network, auth, malformed response)."""


class SubmissionInProgressError(FileUploadError):
    """A submission was requested while another one is still in flight."""


class SessionNotFoundError(FileUploadError):
    """No upload session exists for the given identifier."""
