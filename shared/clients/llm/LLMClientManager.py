import importlib

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig

DEFAULT_ENGINE = "Gemini"


class LLMClientManager:
    """Builds the generative backend selected by LLM_ENGINE.

    Engines are found by naming convention: engine "ollama" lives in
    shared.clients.llm.ollama.LLMClientOllama as class LLMClientOllama.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        return self.helper_config.get_string_val("LLM_ENGINE", default=DEFAULT_ENGINE).lower().capitalize()

    def _initialize_client(self) -> LLMClientInterface:
        """Import and instantiate the configured engine.

        Raises:
            ValueError: If no client exists for the engine.
        """
        engine = self._get_engine_from_env()
        class_name = f"LLMClient{engine}"
        module_path = f"shared.clients.llm.{engine.lower()}.{class_name}"
        try:
            client_class = getattr(importlib.import_module(module_path), class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported LLM engine '%s'. Error: %s" % (engine, e))

        client = client_class(helper_config=self.helper_config)
        self.logging.info("Using LLM engine %s with model %s.", engine, client.chat_model)
        return client

    def get_client(self) -> LLMClientInterface:
        return self.client
