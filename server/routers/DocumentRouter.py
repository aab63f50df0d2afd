from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from server.models.requests import MoveRequest, UrlIngestRequest
from server.models.responses import IngestResponse, MessageResponse
from shared.models.document import DocumentUpdate, DocumentView, IngestResult

router = APIRouter(tags=["documents"])


async def _ingest_response(request: Request, result: IngestResult) -> JSONResponse:
    """201 for a new document, 200 pointing at the existing one for a duplicate."""
    view = await request.app.state.library_service.get_document(result.document.hash)
    body = IngestResponse(document=view, is_duplicate=result.is_duplicate)
    return JSONResponse(
        status_code=200 if result.is_duplicate else 201,
        content=body.model_dump(mode="json", by_alias=True),
    )


@router.post("/api/topics/{topic_name}/documents/upload")
async def upload_document(request: Request, topic_name: str, file: UploadFile = File(...)) -> JSONResponse:
    """Store an uploaded PDF (multipart field "file") in a topic.

    Args:
        request (Request): FastAPI request (provides app.state.ingest_service).
        topic_name (str): Target topic.
        file (UploadFile): The uploaded PDF.

    Returns:
        JSONResponse: The stored document and whether it was a duplicate.
    """
    data = await file.read()
    result = await request.app.state.ingest_service.do_ingest_bytes(topic_name, data, file.filename)
    return await _ingest_response(request, result)


@router.post("/api/topics/{topic_name}/documents/url")
async def ingest_url(request: Request, topic_name: str, body: UrlIngestRequest) -> JSONResponse:
    """Download a PDF from a URL and store it in a topic."""
    result = await request.app.state.ingest_service.do_ingest_url(topic_name, body.url)
    return await _ingest_response(request, result)


@router.get("/api/documents/{doc_hash}")
async def get_document(request: Request, doc_hash: str) -> DocumentView:
    return await request.app.state.library_service.get_document(doc_hash)


@router.put("/api/documents/{doc_hash}")
async def update_document(request: Request, doc_hash: str, body: DocumentUpdate) -> DocumentView:
    """Merge the sent metadata fields onto the document."""
    return await request.app.state.library_service.update_document(doc_hash, body)


@router.delete("/api/documents/{doc_hash}")
async def delete_document(request: Request, doc_hash: str) -> MessageResponse:
    """Delete a document together with its PDF and summary."""
    await request.app.state.library_service.delete_document(doc_hash)
    return MessageResponse(message="Document deleted successfully.")


@router.patch("/api/documents/{doc_hash}")
async def move_document(request: Request, doc_hash: str, body: MoveRequest) -> DocumentView:
    """Move a document into another existing topic."""
    return await request.app.state.library_service.move_document(doc_hash, body.new_topic)


@router.get("/api/pdfs/{doc_hash}")
async def get_pdf(request: Request, doc_hash: str) -> Response:
    data = await request.app.state.library_service.get_pdf(doc_hash)
    return Response(content=data, media_type="application/pdf")
