"""One summarize or chat request against the generative backend.

Lifecycle:

    IDLE → LOCATING_DOCUMENT → EXTRACTING_TEXT → BUILDING_PROMPT   (prepare)
         → STREAMING → FINALIZING → COMPLETED                      (stream)

Any error moves the session to FAILED. prepare() raises before a single
chunk is produced, so callers can still report a clean error. stream()
relays chunks as they arrive and, for summaries, writes the concatenated
text only after the backend stream ended normally. A caller that stops
consuming (disconnect, aclose, task cancellation) never causes a write.
"""

import asyncio
from contextlib import aclosing
from enum import Enum
from typing import AsyncIterator, Callable

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.exceptions.errors import GenerationFailedError, PdfManError
from shared.helper.HelperConfig import HelperConfig
from shared.storage.ArtifactStore import ArtifactStore
from shared.storage.DocumentResolver import DocumentResolver
from shared.storage.PromptStore import PromptStore

CHAT_FRAME = (
    "You are an assistant answering questions about a single PDF document. "
    "Answer using only the document text below. If the document does not contain "
    "the answer, say so.\n\n"
    "--- DOCUMENT START ---\n"
    "{document}\n"
    "--- DOCUMENT END ---\n\n"
    "Question: {message}"
)


class SessionKind(str, Enum):
    SUMMARY = "summary"
    CHAT = "chat"


class SessionState(str, Enum):
    IDLE = "idle"
    LOCATING_DOCUMENT = "locating_document"
    EXTRACTING_TEXT = "extracting_text"
    BUILDING_PROMPT = "building_prompt"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationSession:
    """Single-use: prepare() once, then consume stream() once."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: ArtifactStore,
        resolver: DocumentResolver,
        prompt_store: PromptStore,
        llm_client: LLMClientInterface,
        text_extractor: Callable[[bytes], str],
        kind: SessionKind,
        doc_hash: str,
        template_id: str | None = None,
        message: str | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._resolver = resolver
        self._prompt_store = prompt_store
        self._llm = llm_client
        self._extract = text_extractor

        self.kind = kind
        self.doc_hash = doc_hash
        self.template_id = template_id
        self.message = message

        self.state = SessionState.IDLE
        self.topic: str | None = None
        self.prompt: str | None = None
        self.output: str | None = None
        self.error: str | None = None

    ##########################################
    ################ CORE ####################
    ##########################################

    async def prepare(self) -> None:
        """Resolve the document, extract its text and build the prompt.

        Raises:
            DocumentNotFoundError: If the hash is unknown.
            UnreadablePdfError: If the PDF has no usable text.
            TemplateNotFoundError: If the summary template is missing.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Session for {self.doc_hash} was already prepared (state {self.state.value}).")
        try:
            self._set_state(SessionState.LOCATING_DOCUMENT)
            location = await self._resolver.locate(self.doc_hash)
            self.topic = location.topic

            self._set_state(SessionState.EXTRACTING_TEXT)
            data = await self._store.read_binary(self.topic, self.doc_hash)
            text = await asyncio.to_thread(self._extract, data)

            self._set_state(SessionState.BUILDING_PROMPT)
            self.prompt = await self._build_prompt(text)
        except PdfManError as e:
            self._fail(str(e))
            raise

    async def stream(self) -> AsyncIterator[str]:
        """Relay the backend's chunks and finalize after a normal end.

        Yields:
            str: Text chunks in arrival order.

        Raises:
            GenerationFailedError: If the backend fails before or during the stream.
        """
        if self.state is not SessionState.BUILDING_PROMPT or self.prompt is None:
            raise RuntimeError(f"Session for {self.doc_hash} is not ready to stream (state {self.state.value}).")

        self._set_state(SessionState.STREAMING)
        accumulator: list[str] = []
        try:
            async with aclosing(self._llm.do_stream_generate(self.prompt)) as chunks:
                async for chunk in chunks:
                    if not chunk:
                        continue
                    accumulator.append(chunk)
                    yield chunk
        except (GeneratorExit, asyncio.CancelledError):
            self._fail(f"Caller stopped consuming after {len(accumulator)} chunk(s).")
            raise
        except Exception as e:
            self._fail(str(e))
            raise GenerationFailedError(f"Failed to generate {self.kind.value}: {e}") from e

        self.output = "".join(accumulator)
        self._set_state(SessionState.FINALIZING)
        try:
            await self._finalize(self.output)
        except Exception as e:
            self._fail(str(e))
            raise
        self._set_state(SessionState.COMPLETED)
        self.logging.info(
            "%s for %s completed (%d chunk(s), %d chars).",
            self.kind.value.capitalize(),
            self.doc_hash,
            len(accumulator),
            len(self.output),
            color="green",
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _build_prompt(self, text: str) -> str:
        if self.kind is SessionKind.SUMMARY:
            template = await self._prompt_store.get(self.template_id)
            return self._prompt_store.render(template, text)
        return CHAT_FRAME.format(document=text, message=self.message)

    async def _finalize(self, output: str) -> None:
        """Persist a summary. Chat output is never stored."""
        if self.kind is not SessionKind.SUMMARY:
            return
        await self._store.write_derived_text(self.topic, self.doc_hash, output)
        self.logging.info("Summary stored for %s in '%s'.", self.doc_hash, self.topic)

    def _set_state(self, state: SessionState) -> None:
        self.logging.debug("Session %s/%s: %s → %s", self.kind.value, self.doc_hash[:12], self.state.value, state.value)
        self.state = state

    def _fail(self, reason: str) -> None:
        self.error = reason
        self.state = SessionState.FAILED
        self.logging.warning("%s for %s failed: %s", self.kind.value.capitalize(), self.doc_hash, reason)
