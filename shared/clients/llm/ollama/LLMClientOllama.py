import json

import httpx

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(helper_config=helper_config, transport=transport)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:11434", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_chat_model(self) -> str:
        return "llama3.1"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:11434"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/tags"

    def _get_endpoint_stream(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_stream_payload(self, prompt: str) -> dict:
        """Build the Ollama chat request body.

        Args:
            prompt (str): The complete prompt.

        Returns:
            dict: {"model": "...", "messages": [...], "stream": True}
        """
        return {
            "model": self.chat_model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_stream_chunk(self, line: str) -> str | None:
        """Extract the text of one NDJSON line of an Ollama /api/chat stream.

        Each line looks like {"message": {"role": "assistant", "content": "..."}, "done": false}.
        The final line has "done": true and usually an empty content.

        Raises:
            ValueError: If the line is not JSON or carries an "error" field.
        """
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError("Ollama stream returned a line that is not JSON: %r" % line[:200]) from e
        if "error" in data:
            raise ValueError("Ollama reported an error mid-stream: %s" % data["error"])
        return data.get("message", {}).get("content") or None
