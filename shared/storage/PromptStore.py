"""JSON-file backed prompt templates (<data_dir>/userprompt.json)."""

import asyncio
import json
import os
import tempfile
from pathlib import Path

from shared.exceptions.errors import InvalidInputError, ProtectedTemplateError, TemplateNotFoundError
from shared.helper.HelperConfig import HelperConfig

PROMPT_FILE_NAME = "userprompt.json"
SUMMARIZE_TEMPLATE_ID = "summarize"
CONTEXT_PLACEHOLDER = "{context}"

DEFAULT_TEMPLATES: dict[str, str] = {
    SUMMARIZE_TEMPLATE_ID: (
        "Summarize the following document in Markdown. Start with a one-paragraph overview, "
        "then list the key findings, methods and conclusions as bullet points.\n\n"
        "Document:\n" + CONTEXT_PLACEHOLDER
    ),
}


class PromptStore:
    """Keyed template storage. Last write wins; the summarize template cannot be deleted."""

    def __init__(self, helper_config: HelperConfig, data_dir: Path | None = None) -> None:
        self.logging = helper_config.get_logger()
        data_dir = Path(data_dir) if data_dir is not None else helper_config.get_data_dir()
        self._path = data_dir / PROMPT_FILE_NAME

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_path(self) -> Path:
        return self._path

    async def get(self, template_id: str) -> str:
        """Return the template text for template_id.

        Raises:
            TemplateNotFoundError: If no such template is stored.
        """
        templates = await self.list_templates()
        template = templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Prompt template '{template_id}' not found.")
        return template

    async def list_templates(self) -> dict[str, str]:
        return await asyncio.to_thread(self._load)

    ##########################################
    ################ SETTER ##################
    ##########################################

    async def boot(self) -> None:
        """Seed the default templates when no prompt file exists yet.

        An existing file is never touched, even if it lacks the summarize
        template: that is a configuration error summarization reports.
        """
        if await asyncio.to_thread(self._path.exists):
            return
        await asyncio.to_thread(self._save, dict(DEFAULT_TEMPLATES))
        self.logging.info("Seeded default prompt templates at %s", self._path)

    async def save(self, template_id: str, template: str) -> None:
        if not template_id or not template_id.strip():
            raise InvalidInputError("Template id must not be empty.")
        templates = await self.list_templates()
        templates[template_id] = template
        await asyncio.to_thread(self._save, templates)

    async def delete(self, template_id: str) -> None:
        """Remove a template.

        Raises:
            ProtectedTemplateError: For the summarize template.
            TemplateNotFoundError: If no such template is stored.
        """
        if template_id == SUMMARIZE_TEMPLATE_ID:
            raise ProtectedTemplateError(f"Prompt template '{template_id}' cannot be deleted.")
        templates = await self.list_templates()
        if template_id not in templates:
            raise TemplateNotFoundError(f"Prompt template '{template_id}' not found.")
        del templates[template_id]
        await asyncio.to_thread(self._save, templates)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def render(template: str, context: str) -> str:
        """Insert the document text at the context placeholder.

        Plain replacement, so other braces in the template stay as they are.
        """
        return template.replace(CONTEXT_PLACEHOLDER, context)

    def _load(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Prompt file {self._path} must contain a JSON object.")
        return {str(key): str(value) for key, value in data.items()}

    def _save(self, templates: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(templates, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
