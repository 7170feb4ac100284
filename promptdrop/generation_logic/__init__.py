"""Upload component logic package.

This package groups the pieces behind one upload widget: the admission filter,
the batch state, the cosmetic progress tickers and the submission bridge.
Keeping them here allows `promptdrop/api/routes.py` to stay focused on HTTP
routing while the component state lives in composable modules.
"""

from .admission import evaluate_drop  # noqa: F401
from .batch_state import BatchState  # noqa: F401

# Re-export most commonly-used helpers for convenience
from .file_upload import FileUpload  # noqa: F401
from .progress import ProgressSimulator  # noqa: F401
from .submission import SubmissionBridge  # noqa: F401
