from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Describes one environment setting a client needs before it can boot.

    Attributes:
        env_key (str): Key suffix below the client prefix, e.g. "BASE_URL" for LLM_OLLAMA_BASE_URL.
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when unset. None marks the key as mandatory.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
