import json

import httpx

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientGemini(LLMClientInterface):
    """Google Gemini via the Generative Language REST API, streamed as server-sent events."""

    def __init__(self, helper_config: HelperConfig, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(helper_config=helper_config, transport=transport)
        self._base_url = self.get_config_val("BASE_URL", default="https://generativelanguage.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gemini"

    def _get_default_chat_model(self) -> str:
        return "gemini-2.5-flash"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://generativelanguage.googleapis.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"x-goog-api-key": self._api_key}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1beta/models"

    def _get_endpoint_stream(self) -> str:
        return f"/v1beta/models/{self.chat_model}:streamGenerateContent"

    def _get_stream_params(self) -> dict | None:
        return {"alt": "sse"}

    ################ PAYLOAD BUILDER ##################
    def get_stream_payload(self, prompt: str) -> dict:
        return {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_stream_chunk(self, line: str) -> str | None:
        """Extract the text of one SSE line of a streamGenerateContent response.

        Only "data: {...}" lines carry content; every event is a full
        GenerateContentResponse with the new text in candidates[0].content.parts.

        Raises:
            ValueError: If the event is not JSON, carries an "error" field, or the prompt was blocked.
        """
        if not line.startswith("data:"):
            return None
        raw = line[len("data:"):].strip()
        if not raw or raw == "[DONE]":
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError("Gemini stream returned an event that is not JSON: %r" % raw[:200]) from e
        if "error" in data:
            raise ValueError("Gemini reported an error mid-stream: %s" % data["error"].get("message", data["error"]))

        block_reason = data.get("promptFeedback", {}).get("blockReason")
        if block_reason:
            raise ValueError("Gemini blocked the prompt: %s" % block_reason)

        candidates = data.get("candidates") or []
        if not candidates:
            return None
        parts = candidates[0].get("content", {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts) or None
