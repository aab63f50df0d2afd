"""Summary and chat endpoints.

Sessions are prepared before the response starts, so a missing document,
an unreadable PDF or a missing template still produce a proper error
status. Once streaming has begun the status is 200; a backend failure then
aborts the connection instead of ending the body normally.
"""

from fastapi import APIRouter, Body, Request
from fastapi.responses import PlainTextResponse, StreamingResponse

from server.models.requests import ChatRequest, SummarizeRequest
from server.models.responses import MessageResponse

router = APIRouter(tags=["generation"])

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


@router.get("/api/summaries/{doc_hash}", response_class=PlainTextResponse)
async def get_summary(request: Request, doc_hash: str) -> PlainTextResponse:
    summary = await request.app.state.generation_service.get_summary(doc_hash)
    return PlainTextResponse(summary, media_type="text/markdown; charset=utf-8")


@router.delete("/api/summaries/{doc_hash}")
async def delete_summary(request: Request, doc_hash: str) -> MessageResponse:
    """Delete the summary of a document. Answers 404 when there is none."""
    await request.app.state.generation_service.delete_summary(doc_hash)
    return MessageResponse(message="Summary deleted successfully.")


@router.post("/api/summarize/{doc_hash}")
async def summarize(request: Request, doc_hash: str, body: SummarizeRequest | None = Body(default=None)) -> StreamingResponse:
    """Generate a summary and stream it as plain text.

    The summary replaces any previous one once the stream completes.

    Args:
        request (Request): FastAPI request (provides app.state.generation_service).
        doc_hash (str): The document to summarize.
        body (SummarizeRequest | None): Optional template selection.

    Returns:
        StreamingResponse: The summary text, chunk by chunk.
    """
    template_id = body.template_id if body is not None else "summarize"
    session = await request.app.state.generation_service.create_summary_session(doc_hash, template_id)
    return StreamingResponse(session.stream(), media_type=STREAM_MEDIA_TYPE)


@router.post("/api/chat/{doc_hash}")
async def chat(request: Request, doc_hash: str, body: ChatRequest) -> StreamingResponse:
    """Answer one question about a document, streamed. Nothing is stored."""
    session = await request.app.state.generation_service.create_chat_session(doc_hash, body.message)
    return StreamingResponse(session.stream(), media_type=STREAM_MEDIA_TYPE)
