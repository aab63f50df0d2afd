"""Pydantic models for document data.

Hierarchy:
  Document         : the manifest persisted as <topic>/<hash>.json.
  DocumentUpdate   : partial metadata edit, merged onto an existing manifest.
  DocumentView     : manifest plus location and derived flags, returned to callers.
  TopicSummary     : one entry of the topic listing.
  DocumentLocation : result of resolving a hash to its owning topic.
  IngestResult     : outcome of an upload or URL ingest.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value):
    # edit forms send "" for a cleared year
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Document(BaseModel):
    """Metadata record of a single PDF.

    The hash is the SHA-256 of the original bytes and never changes.
    Everything else is freely editable.
    """

    model_config = ConfigDict(populate_by_name=True)

    hash: str
    title: str = "Untitled"
    authors: list[str] = []
    year: int | None = None
    tags: list[str] = []
    source_url: str | None = None
    upload_date: str | None = Field(default=None, alias="uploadDate")

    @field_validator("year", mode="before")
    @classmethod
    def blank_year_to_none(cls, value):
        return _blank_to_none(value)

    def to_manifest(self) -> dict:
        """Serialise using the on-disk key names (uploadDate, not upload_date)."""
        return self.model_dump(by_alias=True)


class DocumentUpdate(BaseModel):
    """Metadata edit. Only explicitly sent fields are applied."""

    title: str | None = None
    authors: list[str] | None = None
    year: int | None = None
    tags: list[str] | None = None
    source_url: str | None = None

    @field_validator("year", mode="before")
    @classmethod
    def blank_year_to_none(cls, value):
        return _blank_to_none(value)


class DocumentView(Document):
    """A manifest as seen by callers, with the owning topic and summary flag."""

    topic: str
    has_summary: bool = False


class TopicSummary(BaseModel):
    name: str
    doc_count: int


class DocumentLocation(BaseModel):
    topic: str
    manifest_path: Path


class IngestResult(BaseModel):
    document: Document
    topic: str
    is_duplicate: bool
