from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base for HTTP backend clients.

    Settings live under ``<TYPE>_<ENGINE>_<KEY>`` (e.g. LLM_OLLAMA_BASE_URL),
    the request timeout under ``<TYPE>_TIMEOUT``. Every required setting is
    checked at construction so a misconfigured backend fails at startup.
    """

    def __init__(self, helper_config: HelperConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=120.0)

        # tests pass an httpx.MockTransport here
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """Read every required setting once.

        Raises:
            ValueError: If a mandatory setting is unset or has the wrong type.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Lowercase client family, e.g. "llm"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Lowercase backend name, e.g. "ollama"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings this backend reads, with their types and defaults."""
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read one backend setting.

        Args:
            raw_key (str): Key below the client prefix, e.g. "API_KEY".
            default (Any): Value when unset; None makes the setting mandatory.
            val_type (str): "string", "number", "bool" or "list".

        Raises:
            ValueError: For unknown value types or missing mandatory settings.
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        reader = readers.get(val_type)
        if reader is None:
            raise ValueError(
                f"Unsupported config value type '{val_type}' for '{raw_key}' of {self.get_client_type().upper()} client '{self.get_engine_name()}'."
            )
        return reader(self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers authenticating against the backend; empty when no key is configured."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """A cheap GET endpoint used to probe reachability, e.g. "/api/tags"."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_request_kwargs(
        self,
        endpoint: str,
        json: dict | None = None,
        params: dict | None = None,
        additional_headers: dict | None = None,
    ) -> dict:
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")

        path = endpoint.strip().lstrip("/")
        kwargs: dict = {
            "url": self._get_base_url().rstrip("/") + (f"/{path}" if path else ""),
            "headers": {**self._get_auth_header(), **(additional_headers or {})},
            "params": params,
        }
        if json is not None:
            kwargs["json"] = json
        return kwargs

    async def do_request(
        self,
        method: str = "GET",
        json: dict | None = None,
        params: dict | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send a buffered request to the backend.

        Args:
            method: HTTP method.
            json: JSON body.
            params: Query parameters.
            endpoint: Path below the base URL.
            additional_headers: Headers overriding the defaults.
            raise_on_error: Raise on a non-2xx status instead of returning the response.

        Raises:
            Exception: If the client was not booted, or on a non-2xx status with raise_on_error.
        """
        kwargs = self._build_request_kwargs(endpoint, json=json, params=params, additional_headers=additional_headers)
        response = await self._client.request(method, **kwargs)
        if raise_on_error and not response.is_success:
            self.logging.error("Request to %s failed with status %d: %s", kwargs["url"], response.status_code, response.text[:500])
            raise Exception(f"Request to {kwargs['url']} failed with status {response.status_code}")
        return response

    async def do_stream_request(
        self,
        method: str = "POST",
        json: dict | None = None,
        params: dict | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
    ) -> AsyncIterator[str]:
        """Send a request and yield the response body line by line as it arrives.

        Closing the generator early closes the connection, which abandons
        the request on the backend.

        Yields:
            str: One non-empty line of the response body.

        Raises:
            Exception: If the client was not booted or the backend answers with a non-2xx status.
        """
        kwargs = self._build_request_kwargs(endpoint, json=json, params=params, additional_headers=additional_headers)
        async with self._client.stream(method, **kwargs) as response:
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace")
                self.logging.error("Streaming request to %s failed with status %d: %s", kwargs["url"], response.status_code, body[:500])
                raise Exception(f"Streaming request to {kwargs['url']} failed with status {response.status_code}")
            async for line in response.aiter_lines():
                if line.strip():
                    yield line
