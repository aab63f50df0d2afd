"""Library service: topic and hash-addressed document operations.

Callers address documents by hash only; the owning topic is resolved on
every call, so moves and topic renames never invalidate a hash.
"""

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, DocumentUpdate, DocumentView, TopicSummary
from shared.storage.ArtifactStore import ArtifactStore
from shared.storage.DocumentResolver import DocumentResolver

# fields a caller may clear by sending null
_NULLABLE_FIELDS = {"year", "source_url"}


class LibraryService:
    """Thin orchestration over ArtifactStore and DocumentResolver."""

    def __init__(self, helper_config: HelperConfig, store: ArtifactStore, resolver: DocumentResolver) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._resolver = resolver

    ##########################################
    ################ TOPICS ##################
    ##########################################

    async def list_topics(self) -> list[TopicSummary]:
        return await self._store.list_topics()

    async def create_topic(self, name: str) -> None:
        await self._store.create_topic(name)

    async def delete_topic(self, name: str) -> None:
        await self._store.delete_topic(name)

    async def rename_topic(self, name: str, new_name: str) -> None:
        await self._store.rename_topic(name, new_name)

    ##########################################
    ############## DOCUMENTS #################
    ##########################################

    async def list_documents(self, topic: str) -> list[DocumentView]:
        documents = await self._store.list_documents(topic)
        return [await self._to_view(topic, document) for document in documents]

    async def get_document(self, doc_hash: str) -> DocumentView:
        """Load a document wherever it lives.

        Raises:
            DocumentNotFoundError: If the hash is unknown.
        """
        location = await self._resolver.locate(doc_hash)
        document = await self._store.read_manifest(location.topic, doc_hash)
        return await self._to_view(location.topic, document)

    async def get_pdf(self, doc_hash: str) -> bytes:
        location = await self._resolver.locate(doc_hash)
        return await self._store.read_binary(location.topic, doc_hash)

    async def update_document(self, doc_hash: str, update: DocumentUpdate) -> DocumentView:
        """Merge the sent fields onto the stored manifest.

        Only fields present in the request are applied; the hash is never
        part of an update.
        """
        location = await self._resolver.locate(doc_hash)
        current = await self._store.read_manifest(location.topic, doc_hash)
        changes = {
            key: value
            for key, value in update.model_dump(exclude_unset=True).items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        merged = Document.model_validate({**current.model_dump(), **changes, "hash": doc_hash})
        await self._store.write_manifest(location.topic, doc_hash, merged)
        self.logging.info("Document %s updated (%s).", doc_hash, ", ".join(sorted(changes)) or "no fields")
        return await self._to_view(location.topic, merged)

    async def delete_document(self, doc_hash: str) -> None:
        location = await self._resolver.locate(doc_hash)
        await self._store.delete_document(location.topic, doc_hash)

    async def move_document(self, doc_hash: str, new_topic: str) -> DocumentView:
        """Move a document to an existing topic.

        Raises:
            DocumentNotFoundError: If the hash is unknown.
            DestinationNotFoundError: If new_topic does not exist.
        """
        location = await self._resolver.locate(doc_hash)
        await self._store.move_document(doc_hash, location.topic, new_topic)
        document = await self._store.read_manifest(new_topic, doc_hash)
        return await self._to_view(new_topic, document)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _to_view(self, topic: str, document: Document) -> DocumentView:
        has_summary = await self._store.has_derived_text(topic, document.hash)
        return DocumentView(**document.model_dump(), topic=topic, has_summary=has_summary)
