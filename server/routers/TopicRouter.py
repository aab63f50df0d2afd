from fastapi import APIRouter, Request

from server.models.requests import TopicCreateRequest, TopicRenameRequest
from server.models.responses import MessageResponse
from shared.models.document import DocumentView, TopicSummary

router = APIRouter(prefix="/api/topics", tags=["topics"])


@router.get("")
async def list_topics(request: Request) -> list[TopicSummary]:
    """List all topics with their document counts."""
    return await request.app.state.library_service.list_topics()


@router.post("", status_code=201)
async def create_topic(request: Request, body: TopicCreateRequest) -> MessageResponse:
    """Create a topic. Creating an existing topic succeeds silently.

    Args:
        request (Request): FastAPI request (provides app.state.library_service).
        body (TopicCreateRequest): JSON body with topicName.

    Returns:
        MessageResponse: Confirmation message.
    """
    await request.app.state.library_service.create_topic(body.topic_name)
    return MessageResponse(message="Topic created successfully.")


@router.delete("/{topic_name}")
async def delete_topic(request: Request, topic_name: str) -> MessageResponse:
    """Delete an empty topic. Answers 409 while documents remain in it."""
    await request.app.state.library_service.delete_topic(topic_name)
    return MessageResponse(message="Topic deleted successfully.")


@router.patch("/{topic_name}")
async def rename_topic(request: Request, topic_name: str, body: TopicRenameRequest) -> MessageResponse:
    """Rename a topic; its documents keep their hashes."""
    await request.app.state.library_service.rename_topic(topic_name, body.new_name)
    return MessageResponse(message=f"Topic renamed to {body.new_name}.")


@router.get("/{topic_name}/documents")
async def list_documents(request: Request, topic_name: str) -> list[DocumentView]:
    """List the documents of a topic, newest year first, then by title."""
    return await request.app.state.library_service.list_documents(topic_name)
