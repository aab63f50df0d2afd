"""Environment-backed settings for PDFMan."""

import logging
import os
from pathlib import Path
from typing import Any

_TRUE_VALUES = ("true", "1", "yes", "on")


class HelperConfig:
    """Typed access to environment variables.

    Created once at startup and handed to every store, client and service
    constructor, so nothing else reads the process environment directly.
    Key lookups are case-insensitive; an empty variable counts as unset.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string setting, stripped of surrounding whitespace.

        Raises:
            ValueError: If the variable is unset and there is no default.
        """
        key, raw = self._lookup(key, default)
        return raw.strip() if raw is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read an int (no decimal point) or float setting.

        Raises:
            ValueError: If the variable is unset without default, or not numeric.
        """
        key, raw = self._lookup(key, default)
        if raw is None:
            return default
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        key, raw = self._lookup(key, default)
        if raw is None:
            return default
        return raw.strip().lower() in _TRUE_VALUES

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list setting written as "[elem1,elem2,...]".

        Args:
            key (str): Environment variable name.
            default (list | None): Returned when the variable is unset.
            separator (str): Delimiter between elements.
            element_type (type): Each element is cast to this type.

        Returns:
            list: The parsed elements; blanks are skipped.

        Raises:
            ValueError: If the brackets are missing or an element cannot be cast.
        """
        key, raw = self._lookup(key, default)
        if raw is None:
            return default
        raw = raw.strip()
        if not (raw.startswith("[") and raw.endswith("]")):
            raise ValueError(f"Environment variable '{key}' must look like '[a{separator}b]'. Got: '{raw}'")
        try:
            return [element_type(item.strip()) for item in raw[1:-1].split(separator) if item.strip()]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key}' has an element that is not {element_type.__name__}: {e}")

    def get_path_val(self, key: str, default: Path | str | None = None) -> Path:
        """Read a path setting; relative values resolve against the working directory."""
        raw = self.get_string_val(key, default=None if default is None else str(default))
        return Path(raw).expanduser().resolve()

    def get_root_dir(self) -> Path:
        """ROOT_DIR, or the working directory."""
        return self.get_path_val("ROOT_DIR", default=os.getcwd())

    def get_data_dir(self) -> Path:
        """Directory that holds the topic partitions and the prompt file.

        Returns:
            Path: DATA_DIR, or <ROOT_DIR>/data when unset.
        """
        return self.get_path_val("DATA_DIR", default=self.get_root_dir() / "data")

    def get_logger(self) -> logging.Logger:
        return self._logger

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def _lookup(key: str, default: Any) -> tuple[str, str | None]:
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return key, raw
