"""Generation service: creates sessions and manages stored summaries."""

from typing import Callable

from services.generation.GenerationSession import GenerationSession, SessionKind
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.exceptions.errors import InvalidInputError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperPdf import extract_text
from shared.storage.ArtifactStore import ArtifactStore
from shared.storage.DocumentResolver import DocumentResolver
from shared.storage.PromptStore import SUMMARIZE_TEMPLATE_ID, PromptStore


class GenerationService:
    """Entry point for summaries and chat on a document."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: ArtifactStore,
        resolver: DocumentResolver,
        prompt_store: PromptStore,
        llm_client: LLMClientInterface,
        text_extractor: Callable[[bytes], str] = extract_text,
    ) -> None:
        self._helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._store = store
        self._resolver = resolver
        self._prompt_store = prompt_store
        self._llm = llm_client
        self._extract = text_extractor

    ##########################################
    ############### SESSIONS #################
    ##########################################

    async def create_summary_session(self, doc_hash: str, template_id: str = SUMMARIZE_TEMPLATE_ID) -> GenerationSession:
        """Prepare a summarization. Errors surface here, before streaming starts.

        Args:
            doc_hash (str): The document to summarize.
            template_id (str): Prompt template to use.

        Returns:
            GenerationSession: A prepared session; iterate session.stream().
        """
        session = self._new_session(SessionKind.SUMMARY, doc_hash, template_id=template_id or SUMMARIZE_TEMPLATE_ID)
        await session.prepare()
        return session

    async def create_chat_session(self, doc_hash: str, message: str) -> GenerationSession:
        """Prepare a single chat turn about a document.

        Raises:
            InvalidInputError: If the message is empty.
        """
        if not message or not message.strip():
            raise InvalidInputError("Message must not be empty.")
        session = self._new_session(SessionKind.CHAT, doc_hash, message=message.strip())
        await session.prepare()
        return session

    ##########################################
    ############### SUMMARIES ################
    ##########################################

    async def get_summary(self, doc_hash: str) -> str:
        """Return the stored summary.

        Raises:
            DocumentNotFoundError: If the hash is unknown.
            SummaryNotFoundError: If no summary exists.
        """
        location = await self._resolver.locate(doc_hash)
        return await self._store.read_derived_text(location.topic, doc_hash)

    async def delete_summary(self, doc_hash: str) -> None:
        """Delete the stored summary.

        Raises:
            DocumentNotFoundError: If the hash is unknown.
            SummaryNotFoundError: If there is no summary to delete.
        """
        location = await self._resolver.locate(doc_hash)
        await self._store.delete_derived_text(location.topic, doc_hash)
        self.logging.info("Summary deleted for %s.", doc_hash)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _new_session(self, kind: SessionKind, doc_hash: str, template_id: str | None = None, message: str | None = None) -> GenerationSession:
        return GenerationSession(
            helper_config=self._helper_config,
            store=self._store,
            resolver=self._resolver,
            prompt_store=self._prompt_store,
            llm_client=self._llm,
            text_extractor=self._extract,
            kind=kind,
            doc_hash=doc_hash,
            template_id=template_id,
            message=message,
        )
