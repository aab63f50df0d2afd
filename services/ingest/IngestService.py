"""Ingest pipeline.

Turns uploaded or downloaded PDF bytes into a stored document. The SHA-256
of the bytes is the document's identity; bytes already known anywhere in
the library are never stored twice.
"""

import hashlib
import posixpath
import re
from datetime import datetime, timezone
from urllib.parse import unquote, urlparse

from shared.clients.web.WebClient import WebClient
from shared.exceptions.errors import InvalidInputError, TopicNotFoundError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, IngestResult
from shared.storage.ArtifactStore import ArtifactStore
from shared.storage.DocumentResolver import DocumentResolver

_PDF_SUFFIX = re.compile(r"\.pdf$", re.IGNORECASE)
UNTITLED = "Untitled"


class IngestService:
    """Hashes, deduplicates and persists incoming PDFs."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store: ArtifactStore,
        resolver: DocumentResolver,
        web_client: WebClient,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._resolver = resolver
        self._web = web_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_ingest_bytes(self, topic: str, data: bytes, filename: str | None) -> IngestResult:
        """Store uploaded bytes under topic.

        Args:
            topic (str): Target topic; must exist.
            data (bytes): The PDF bytes.
            filename (str | None): Client-side file name, used for the title.

        Returns:
            IngestResult: The stored or already existing document.
        """
        return await self._ingest(topic, data, title=self.title_from_filename(filename), source_url=None)

    async def do_ingest_url(self, topic: str, url: str) -> IngestResult:
        """Download a PDF and store it under topic.

        Raises:
            InvalidInputError: If the URL is empty.
            SourceFetchFailedError: If the download fails or is not a PDF.
        """
        if not url or not url.strip():
            raise InvalidInputError("URL is required.")
        url = url.strip()
        # validate before the download so a bad topic costs no traffic
        await self._require_topic(topic)
        data = await self._web.do_fetch_pdf(url)
        return await self._ingest(topic, data, title=self.title_from_url(url), source_url=url)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def compute_hash(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def title_from_filename(filename: str | None) -> str:
        """File name without directories and without a trailing .pdf."""
        base = posixpath.basename((filename or "").replace("\\", "/"))
        return _PDF_SUFFIX.sub("", base).strip() or UNTITLED

    @staticmethod
    def title_from_url(url: str) -> str:
        """Last path segment of the URL, percent-decoded, without .pdf."""
        base = posixpath.basename(unquote(urlparse(url).path))
        return _PDF_SUFFIX.sub("", base).strip() or UNTITLED

    async def _require_topic(self, topic: str) -> None:
        if not await self._store.topic_exists(topic):
            raise TopicNotFoundError(f"Topic '{topic}' not found.")

    async def _ingest(self, topic: str, data: bytes, title: str, source_url: str | None) -> IngestResult:
        if not data:
            raise InvalidInputError("No file content received.")
        await self._require_topic(topic)

        doc_hash = self.compute_hash(data)
        existing = await self._resolver.find(doc_hash)
        if existing is not None:
            document = await self._store.read_manifest(existing.topic, doc_hash)
            if existing.topic != topic:
                self.logging.info(
                    "Duplicate upload of %s into '%s': already stored in '%s'.", doc_hash, topic, existing.topic
                )
            else:
                self.logging.info("Duplicate upload of %s into '%s'.", doc_hash, topic)
            return IngestResult(document=document, topic=existing.topic, is_duplicate=True)

        now = datetime.now(timezone.utc)
        document = Document(
            hash=doc_hash,
            title=title,
            authors=[],
            year=now.year,
            tags=[],
            source_url=source_url,
            upload_date=now.isoformat().replace("+00:00", "Z"),
        )

        await self._store.write_binary(topic, doc_hash, data)
        try:
            await self._store.write_manifest(topic, doc_hash, document)
        except Exception:
            # never leave a binary without its manifest behind
            await self._store.delete_binary(topic, doc_hash)
            raise

        self.logging.info("Stored document %s (%r, %d bytes) in '%s'.", doc_hash, title, len(data), topic, color="green")
        return IngestResult(document=document, topic=topic, is_duplicate=False)
