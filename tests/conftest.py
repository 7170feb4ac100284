import random

import pytest

from promptdrop.models.upload_models import CandidateFile

MB = 1024 * 1024


# Fixture factory to create candidate files with a name, a size and a MIME type
@pytest.fixture
def make_candidate():
    def _make_candidate(name: str, size: int = 1024, mime_type: str = "image/png", content: bytes | None = None):
        return CandidateFile(
            name=name,
            size=size,
            mime_type=mime_type,
            content=content if content is not None else b"x" * min(size, 16),
        )

    return _make_candidate


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


# Fake text-generation call recording what it was sent
@pytest.fixture
def fake_generate():
    class FakeGenerate:
        def __init__(self):
            self.calls = []
            self.reply = "generated text"

        async def __call__(self, prompt, file):
            self.calls.append((prompt, file))
            return self.reply

    return FakeGenerate()
