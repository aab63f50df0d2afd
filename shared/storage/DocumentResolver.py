"""Locate the topic that owns a document hash."""

import asyncio

from shared.exceptions.errors import DocumentNotFoundError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentLocation
from shared.storage.ArtifactStore import MANIFEST_SUFFIX, ArtifactStore, is_valid_hash


class DocumentResolver:
    """Maps a bare hash to its topic by scanning every partition.

    Cost is linear in the number of topics. Hash uniqueness means a correct
    store holds at most one match; a second match is reported as an
    integrity violation and the first topic in name order wins.
    """

    def __init__(self, helper_config: HelperConfig, store: ArtifactStore) -> None:
        self.logging = helper_config.get_logger()
        self._store = store

    async def locate(self, doc_hash: str) -> DocumentLocation:
        """Find the topic holding the manifest for doc_hash.

        Args:
            doc_hash (str): Hex SHA-256 of the document bytes.

        Returns:
            DocumentLocation: The owning topic and the manifest path.

        Raises:
            DocumentNotFoundError: If no topic holds the hash.
        """
        if not is_valid_hash(doc_hash):
            raise DocumentNotFoundError(f"Document '{doc_hash}' not found.")

        matches = await asyncio.to_thread(self._scan, doc_hash)
        if not matches:
            raise DocumentNotFoundError(f"Document '{doc_hash}' not found.")
        if len(matches) > 1:
            self.logging.error(
                "Integrity violation: document %s exists in %d topics (%s). Using '%s'.",
                doc_hash,
                len(matches),
                ", ".join(location.topic for location in matches),
                matches[0].topic,
            )
        return matches[0]

    async def find(self, doc_hash: str) -> DocumentLocation | None:
        """Like locate(), but returns None instead of raising."""
        try:
            return await self.locate(doc_hash)
        except DocumentNotFoundError:
            return None

    def _scan(self, doc_hash: str) -> list[DocumentLocation]:
        data_dir = self._store.get_data_dir()
        if not data_dir.is_dir():
            return []
        matches: list[DocumentLocation] = []
        for entry in sorted(data_dir.iterdir(), key=lambda p: p.name):
            if not entry.is_dir():
                continue
            manifest_path = entry / f"{doc_hash}{MANIFEST_SUFFIX}"
            if manifest_path.is_file():
                matches.append(DocumentLocation(topic=entry.name, manifest_path=manifest_path))
        return matches
