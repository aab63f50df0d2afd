from abc import abstractmethod
from contextlib import aclosing
from typing import AsyncIterator

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(helper_config=helper_config, transport=transport)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(
            f"{self.get_client_type().upper()}_CHAT_MODEL", default=self._get_default_chat_model()
        )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_chat_model(self) -> str:
        """Returns the model used when LLM_CHAT_MODEL is not set."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_stream(self) -> str:
        """Returns the endpoint path for streaming generation requests (e.g. "/api/chat")."""
        pass

    def _get_stream_params(self) -> dict | None:
        """Returns query parameters for the streaming request, if the backend needs any."""
        return None

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_stream_payload(self, prompt: str) -> dict:
        """Build the backend-specific request body for a streaming generation.

        Args:
            prompt (str): The complete prompt, sent as a single user message.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_stream_chunk(self, line: str) -> str | None:
        """Extract the text carried by one line of the streamed response.

        Args:
            line (str): One non-empty line of the response body.

        Returns:
            str | None: The text of the chunk, or None for lines without text
                (keep-alives, final statistics, ...).

        Raises:
            ValueError: If the line reports a backend error.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_stream_generate(self, prompt: str) -> AsyncIterator[str]:
        """Generate text for a prompt and yield it chunk by chunk as it arrives.

        Chunk boundaries carry no meaning; callers reassemble by concatenation.

        Args:
            prompt (str): The complete prompt.

        Yields:
            str: Non-empty text chunks.

        Raises:
            Exception: If the request fails before or during the stream.
        """
        self.logging.debug("Streaming generation via %s (model=%s, prompt=%d chars)", self._get_engine_name(), self.chat_model, len(prompt))
        lines = self.do_stream_request(
            method="POST",
            endpoint=self._get_endpoint_stream(),
            params=self._get_stream_params(),
            json=self.get_stream_payload(prompt),
        )
        # closing this generator must close the backend response right away
        async with aclosing(lines):
            async for line in lines:
                text = self.extract_stream_chunk(line)
                if text:
                    yield text
