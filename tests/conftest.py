import asyncio
import hashlib
import logging

import pytest

from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.storage.ArtifactStore import ArtifactStore
from shared.storage.DocumentResolver import DocumentResolver
from shared.storage.PromptStore import PromptStore


def run(coro):
    return asyncio.run(coro)


def fake_pdf(label: str) -> bytes:
    return f"%PDF-1.4\n% {label}\n%%EOF\n".encode()


def sha(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def fake_extract(data: bytes) -> str:
    """Stand-in for PDF text extraction: the label line of fake_pdf()."""
    return data.decode().splitlines()[1].lstrip("% ")


class FakeLLMClient:
    """Streams a fixed list of chunks, optionally failing after some of them."""

    def __init__(self, chunks: list[str], fail_after: int | None = None):
        self.chunks = chunks
        self.fail_after = fail_after
        self.prompts: list[str] = []
        self.closed_streams = 0
        self.chat_model = "fake"

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def do_stream_generate(self, prompt: str):
        self.prompts.append(prompt)
        try:
            for index, chunk in enumerate(self.chunks):
                if self.fail_after is not None and index == self.fail_after:
                    raise RuntimeError("backend dropped the connection")
                await asyncio.sleep(0)
                yield chunk
            if self.fail_after is not None and self.fail_after >= len(self.chunks):
                raise RuntimeError("backend dropped the connection")
        finally:
            self.closed_streams += 1


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("pdfman.tests")))


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def store(helper_config, data_dir) -> ArtifactStore:
    return ArtifactStore(helper_config=helper_config, data_dir=data_dir)


@pytest.fixture
def resolver(helper_config, store) -> DocumentResolver:
    return DocumentResolver(helper_config=helper_config, store=store)


@pytest.fixture
def prompt_store(helper_config, data_dir) -> PromptStore:
    prompts = PromptStore(helper_config=helper_config, data_dir=data_dir)
    run(prompts.boot())
    return prompts
