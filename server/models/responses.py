from pydantic import BaseModel

from shared.models.document import DocumentView


class MessageResponse(BaseModel):
    message: str


class IngestResponse(BaseModel):
    document: DocumentView
    is_duplicate: bool
