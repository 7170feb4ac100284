import logging
from collections.abc import Awaitable
from collections.abc import Callable

from promptdrop.core.exceptions import ExternalCallFailure
from promptdrop.core.exceptions import SubmissionInProgressError
from promptdrop.generation_logic.batch_state import BatchState
from promptdrop.models.upload_models import FileRecord
from promptdrop.models.upload_models import SubmissionState

__all__ = ["EMPTY_BATCH_MESSAGE", "GenerateFn", "SubmissionBridge"]

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, FileRecord], Awaitable[str]]

EMPTY_BATCH_MESSAGE = "Add a file before submitting."


class SubmissionBridge:
    """Sends the prompt and the first batch file to the text-generation call.

    ``is_loading`` is true only while the call is pending; it is reset whatever
    the outcome. Failures of the call are kept as a displayable ``error``.
    """

    def __init__(
        self,
        generate: GenerateFn,
        batch: BatchState,
        on_change: Callable[[SubmissionState], None] | None = None,
    ) -> None:
        self._generate = generate
        self._batch = batch
        self._on_change = on_change
        self.state = SubmissionState()

    def set_prompt(self, prompt: str) -> None:
        self.state.prompt = prompt
        self._notify()

    async def submit(self) -> str | None:
        """Run one generation call and store its text as the result.

        Returns:
            The generated text, or None when nothing was sent or the call failed.

        Raises:
            SubmissionInProgressError: if a previous submission has not settled yet.
        """
        if self.state.is_loading:
            raise SubmissionInProgressError("A submission is already in progress.")

        first = self._batch.first()
        if first is None:
            logger.warning("Submit requested with an empty batch")
            self.state.error = EMPTY_BATCH_MESSAGE
            self._notify()
            return None

        self.state.error = None
        self.state.is_loading = True
        self._notify()
        logger.info("Submitting %s (%s, %d bytes) with a %d-char prompt", first.name, first.mime_type, first.size, len(self.state.prompt))
        try:
            result = await self._generate(self.state.prompt, first)
            self.state.result = result
        except ExternalCallFailure as e:
            logger.error("Text generation failed for %s: %s", first.name, e)
            self.state.error = f"Generation failed: {e}"
            return None
        except Exception as e:
            logger.exception("Unexpected error while generating text for %s", first.name)
            self.state.error = f"Generation failed: {e}"
            raise
        finally:
            self.state.is_loading = False
            self._notify()

        logger.info("Generation returned %d chars", len(result))
        return result

    def dismiss(self) -> None:
        """Drop the result and return to the batch view; prompt and files are kept."""
        self.state.result = None
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state.model_copy())
