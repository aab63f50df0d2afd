"""Filesystem-backed store for topics, manifests, PDFs and summaries.

Layout below the data directory:

    <data_dir>/<topic>/<hash>.json   manifest (Document)
    <data_dir>/<topic>/<hash>.pdf    original bytes
    <data_dir>/<topic>/<hash>.md     summary (optional)

Topics are plain directories. There is no index: counts and listings are
computed by scanning, so they always reflect the filesystem at call time.
"""

import asyncio
import json
import locale
import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError

from shared.exceptions.errors import (
    AlreadyExistsError,
    DestinationNotFoundError,
    DocumentNotFoundError,
    InconsistencyError,
    InvalidNameError,
    SummaryNotFoundError,
    TopicNotEmptyError,
    TopicNotFoundError,
)
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, TopicSummary

MANIFEST_SUFFIX = ".json"
BINARY_SUFFIX = ".pdf"
DERIVED_TEXT_SUFFIX = ".md"

_HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def is_valid_hash(doc_hash: str) -> bool:
    """True for a lowercase hex SHA-256 digest."""
    return bool(_HASH_PATTERN.match(doc_hash or ""))


class ArtifactStore:
    """Owns the on-disk layout. Every public method is a coroutine; the
    blocking filesystem work runs in a worker thread."""

    def __init__(self, helper_config: HelperConfig, data_dir: Path | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._data_dir = Path(data_dir) if data_dir is not None else helper_config.get_data_dir()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    @staticmethod
    def validate_topic_name(name: str) -> str:
        """Reject names that could escape the data directory.

        Args:
            name (str): The requested topic name.

        Returns:
            str: The name, unchanged.

        Raises:
            InvalidNameError: If the name is empty or contains '/', '\\' or '..'.
        """
        if not name or not name.strip():
            raise InvalidNameError("Topic name must not be empty.")
        if "/" in name or "\\" in name or ".." in name or name == "." or "\x00" in name:
            raise InvalidNameError(f"Invalid topic name '{name}'.")
        return name

    @staticmethod
    def _validate_hash(doc_hash: str) -> str:
        if not is_valid_hash(doc_hash):
            raise DocumentNotFoundError(f"Document '{doc_hash}' not found.")
        return doc_hash

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_data_dir(self) -> Path:
        return self._data_dir

    def get_topic_path(self, topic: str) -> Path:
        return self._data_dir / self.validate_topic_name(topic)

    def get_manifest_path(self, topic: str, doc_hash: str) -> Path:
        return self.get_topic_path(topic) / f"{self._validate_hash(doc_hash)}{MANIFEST_SUFFIX}"

    def get_binary_path(self, topic: str, doc_hash: str) -> Path:
        return self.get_topic_path(topic) / f"{self._validate_hash(doc_hash)}{BINARY_SUFFIX}"

    def get_derived_text_path(self, topic: str, doc_hash: str) -> Path:
        return self.get_topic_path(topic) / f"{self._validate_hash(doc_hash)}{DERIVED_TEXT_SUFFIX}"

    ##########################################
    ################ TOPICS ##################
    ##########################################

    async def boot(self) -> None:
        """Create the data directory if it does not exist yet."""
        await asyncio.to_thread(self._data_dir.mkdir, parents=True, exist_ok=True)
        self.logging.info("Artifact store ready at %s", self._data_dir)

    async def list_topics(self) -> list[TopicSummary]:
        """Return every topic partition with its current manifest count.

        Returns:
            list[TopicSummary]: Topics sorted by name.
        """
        return await asyncio.to_thread(self._list_topics)

    async def topic_exists(self, name: str) -> bool:
        return await asyncio.to_thread(self.get_topic_path(name).is_dir)

    async def create_topic(self, name: str, strict: bool = False) -> None:
        """Create a topic partition.

        Args:
            name (str): The topic name.
            strict (bool): Raise if the topic already exists instead of succeeding silently.

        Raises:
            InvalidNameError: If the name is not acceptable.
            AlreadyExistsError: If strict is set and the topic exists.
        """
        path = self.get_topic_path(name)
        if strict and await asyncio.to_thread(path.exists):
            raise AlreadyExistsError(f"Topic '{name}' already exists.")
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
        self.logging.info("Topic '%s' created.", name)

    async def delete_topic(self, name: str) -> None:
        """Remove an empty topic partition.

        Raises:
            TopicNotFoundError: If the topic does not exist.
            TopicNotEmptyError: If at least one manifest remains in it.
            InconsistencyError: If the directory holds subdirectories or cannot be removed.
        """
        path = self.get_topic_path(name)
        await asyncio.to_thread(self._delete_topic, name, path)
        self.logging.info("Topic '%s' deleted.", name)

    async def rename_topic(self, old_name: str, new_name: str) -> None:
        """Rename a topic. Contained documents move along, their hashes stay.

        Raises:
            TopicNotFoundError: If old_name does not exist.
            AlreadyExistsError: If new_name is already taken.
        """
        old_path = self.get_topic_path(old_name)
        new_path = self.get_topic_path(new_name)
        await asyncio.to_thread(self._rename_topic, old_name, new_name, old_path, new_path)
        self.logging.info("Topic '%s' renamed to '%s'.", old_name, new_name)

    ##########################################
    ############## DOCUMENTS #################
    ##########################################

    async def list_documents(self, topic: str) -> list[Document]:
        """Return all manifests of a topic, newest year first, then by title.

        Raises:
            TopicNotFoundError: If the topic does not exist.
        """
        path = self.get_topic_path(topic)
        documents = await asyncio.to_thread(self._read_all_manifests, topic, path)
        return self.sort_documents(documents)

    async def has_manifest(self, topic: str, doc_hash: str) -> bool:
        return await asyncio.to_thread(self.get_manifest_path(topic, doc_hash).is_file)

    async def read_manifest(self, topic: str, doc_hash: str) -> Document:
        """Load a manifest.

        Raises:
            DocumentNotFoundError: If no manifest exists for the hash in the topic.
        """
        path = self.get_manifest_path(topic, doc_hash)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            raise DocumentNotFoundError(f"Document '{doc_hash}' not found in topic '{topic}'.")
        return Document.model_validate(json.loads(raw))

    async def write_manifest(self, topic: str, doc_hash: str, document: Document) -> None:
        """Overwrite the manifest completely. Merging is the caller's job."""
        if document.hash != doc_hash:
            raise ValueError(f"Manifest hash '{document.hash}' does not match target '{doc_hash}'.")
        payload = json.dumps(document.to_manifest(), indent=2, ensure_ascii=False).encode("utf-8")
        await asyncio.to_thread(self._atomic_write, self.get_manifest_path(topic, doc_hash), payload)

    async def has_binary(self, topic: str, doc_hash: str) -> bool:
        return await asyncio.to_thread(self.get_binary_path(topic, doc_hash).is_file)

    async def read_binary(self, topic: str, doc_hash: str) -> bytes:
        """Load the original PDF bytes.

        Raises:
            DocumentNotFoundError: If the binary is missing.
        """
        try:
            return await asyncio.to_thread(self.get_binary_path(topic, doc_hash).read_bytes)
        except FileNotFoundError:
            raise DocumentNotFoundError(f"PDF for document '{doc_hash}' not found in topic '{topic}'.")

    async def write_binary(self, topic: str, doc_hash: str, data: bytes) -> None:
        await asyncio.to_thread(self._atomic_write, self.get_binary_path(topic, doc_hash), data)

    async def delete_binary(self, topic: str, doc_hash: str) -> None:
        """Remove a binary without touching anything else. Missing files are ignored."""
        await asyncio.to_thread(self.get_binary_path(topic, doc_hash).unlink, missing_ok=True)

    async def has_derived_text(self, topic: str, doc_hash: str) -> bool:
        return await asyncio.to_thread(self.get_derived_text_path(topic, doc_hash).is_file)

    async def read_derived_text(self, topic: str, doc_hash: str) -> str:
        """Load the summary of a document.

        Raises:
            SummaryNotFoundError: If the document has no summary.
        """
        try:
            return await asyncio.to_thread(self.get_derived_text_path(topic, doc_hash).read_text, encoding="utf-8")
        except FileNotFoundError:
            raise SummaryNotFoundError(f"Summary for document '{doc_hash}' not found.")

    async def write_derived_text(self, topic: str, doc_hash: str, text: str) -> None:
        """Replace the summary of a document. Earlier content is discarded."""
        await asyncio.to_thread(self._atomic_write, self.get_derived_text_path(topic, doc_hash), text.encode("utf-8"))

    async def delete_derived_text(self, topic: str, doc_hash: str) -> None:
        """Remove the summary of a document.

        Raises:
            SummaryNotFoundError: If there is nothing to delete.
        """
        try:
            await asyncio.to_thread(self.get_derived_text_path(topic, doc_hash).unlink)
        except FileNotFoundError:
            raise SummaryNotFoundError(f"Summary for document '{doc_hash}' not found.")

    async def delete_document(self, topic: str, doc_hash: str) -> None:
        """Remove manifest, binary and summary of a document.

        All three removals are attempted. A missing manifest or binary is
        logged as a warning, a missing summary is expected. Any other
        failure is raised after the remaining parts were handled.

        Raises:
            InconsistencyError: If one of the files could not be removed.
        """
        paths = {
            "manifest": self.get_manifest_path(topic, doc_hash),
            "binary": self.get_binary_path(topic, doc_hash),
            "summary": self.get_derived_text_path(topic, doc_hash),
        }
        failures = await asyncio.to_thread(self._delete_document_files, topic, doc_hash, paths)
        if failures:
            self.logging.error("Document %s in '%s' only partially deleted: %s", doc_hash, topic, "; ".join(failures))
            raise InconsistencyError(f"Document '{doc_hash}' could not be fully deleted: {'; '.join(failures)}")
        self.logging.info("Document %s deleted from topic '%s'.", doc_hash, topic)

    async def move_document(self, doc_hash: str, from_topic: str, to_topic: str) -> None:
        """Relocate a document with all its artifacts to another topic.

        The binary and summary move first, the manifest last, so the hash
        never becomes discoverable in the destination before its binary is
        there. A failure rolls back the parts that already moved.

        Raises:
            DestinationNotFoundError: If to_topic does not exist.
            AlreadyExistsError: If to_topic already holds this hash.
            DocumentNotFoundError: If the manifest is missing in from_topic.
            InconsistencyError: If a partial move could not be rolled back.
        """
        if not await self.topic_exists(to_topic):
            raise DestinationNotFoundError(f"Destination topic '{to_topic}' does not exist.")
        if from_topic == to_topic:
            return
        if not await self.has_manifest(from_topic, doc_hash):
            raise DocumentNotFoundError(f"Document '{doc_hash}' not found in topic '{from_topic}'.")
        if await self.has_manifest(to_topic, doc_hash):
            raise AlreadyExistsError(f"Document '{doc_hash}' already exists in topic '{to_topic}'.")

        steps = [
            (self.get_binary_path(from_topic, doc_hash), self.get_binary_path(to_topic, doc_hash), True),
            (self.get_derived_text_path(from_topic, doc_hash), self.get_derived_text_path(to_topic, doc_hash), False),
            (self.get_manifest_path(from_topic, doc_hash), self.get_manifest_path(to_topic, doc_hash), True),
        ]
        await asyncio.to_thread(self._move_files, doc_hash, steps)
        self.logging.info("Document %s moved from '%s' to '%s'.", doc_hash, from_topic, to_topic)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def sort_documents(documents: list[Document]) -> list[Document]:
        """Order by year descending (missing year lowest), then title ascending.

        Upload order breaks remaining ties: the list is first ordered by upload
        date and the final sort is stable.
        """
        by_upload = sorted(documents, key=lambda doc: doc.upload_date or "")
        return sorted(
            by_upload,
            key=lambda doc: (
                -(doc.year if doc.year is not None else -1_000_000),
                locale.strxfrm((doc.title or "").casefold()),
            ),
        )

    def _list_topics(self) -> list[TopicSummary]:
        if not self._data_dir.is_dir():
            return []
        topics: list[TopicSummary] = []
        for entry in sorted(self._data_dir.iterdir(), key=lambda p: p.name):
            if not entry.is_dir():
                continue
            try:
                doc_count = sum(1 for child in entry.iterdir() if child.name.endswith(MANIFEST_SUFFIX))
            except OSError as e:
                self.logging.warning("Could not read topic '%s': %s", entry.name, e)
                doc_count = 0
            topics.append(TopicSummary(name=entry.name, doc_count=doc_count))
        return topics

    def _manifest_files(self, path: Path) -> list[Path]:
        return [child for child in path.iterdir() if child.name.endswith(MANIFEST_SUFFIX) and child.is_file()]

    def _delete_topic(self, name: str, path: Path) -> None:
        if not path.is_dir():
            raise TopicNotFoundError(f"Topic '{name}' not found.")
        if self._manifest_files(path):
            raise TopicNotEmptyError(f"Cannot delete topic '{name}' with documents.")
        subdirectories = sorted(child.name for child in path.iterdir() if child.is_dir())
        if subdirectories:
            raise InconsistencyError(
                f"Topic '{name}' contains unexpected directories ({', '.join(subdirectories)}) and was not deleted."
            )
        # orphaned artifacts without a manifest do not count as documents
        for leftover in [child for child in path.iterdir() if child.is_file()]:
            self.logging.warning("Removing orphaned file '%s' from topic '%s'.", leftover.name, name)
            leftover.unlink()
        try:
            path.rmdir()
        except OSError as e:
            raise InconsistencyError(f"Topic '{name}' could not be removed: {e}") from e

    def _rename_topic(self, old_name: str, new_name: str, old_path: Path, new_path: Path) -> None:
        if not old_path.is_dir():
            raise TopicNotFoundError(f"Topic '{old_name}' not found.")
        if new_path.exists():
            raise AlreadyExistsError(f"Topic '{new_name}' already exists.")
        old_path.rename(new_path)

    def _read_all_manifests(self, topic: str, path: Path) -> list[Document]:
        if not path.is_dir():
            raise TopicNotFoundError(f"Topic '{topic}' not found.")
        documents: list[Document] = []
        for manifest in self._manifest_files(path):
            try:
                documents.append(Document.model_validate(json.loads(manifest.read_text(encoding="utf-8"))))
            except (json.JSONDecodeError, ValidationError, UnicodeDecodeError) as e:
                self.logging.warning("Skipping unreadable manifest %s in topic '%s': %s", manifest.name, topic, e)
        return documents

    def _delete_document_files(self, topic: str, doc_hash: str, paths: dict[str, Path]) -> list[str]:
        failures: list[str] = []
        for part, path in paths.items():
            try:
                path.unlink()
            except FileNotFoundError:
                if part != "summary":
                    self.logging.warning("Document %s in '%s' has no %s file.", doc_hash, topic, part)
            except OSError as e:
                failures.append(f"{part}: {e}")
        return failures

    def _move_files(self, doc_hash: str, steps: list[tuple[Path, Path, bool]]) -> None:
        moved: list[tuple[Path, Path]] = []
        try:
            for source, target, required in steps:
                if not source.exists():
                    if required:
                        raise FileNotFoundError(f"{source.name} is missing")
                    continue
                os.replace(source, target)
                moved.append((source, target))
        except OSError as e:
            self.logging.error("Moving document %s failed after %d file(s): %s", doc_hash, len(moved), e)
            rollback_errors: list[str] = []
            for source, target in reversed(moved):
                try:
                    os.replace(target, source)
                except OSError as rollback_error:
                    rollback_errors.append(f"{target.name}: {rollback_error}")
            if rollback_errors:
                raise InconsistencyError(
                    f"Document '{doc_hash}' is split between topics, rollback failed: {'; '.join(rollback_errors)}"
                ) from e
            raise InconsistencyError(f"Document '{doc_hash}' could not be moved: {e}") from e

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        """Write to a hidden temp file next to path, then swap it into place."""
        if not path.parent.is_dir():
            raise TopicNotFoundError(f"Topic '{path.parent.name}' not found.")
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
