from pydantic import BaseModel, ConfigDict, Field


class TopicCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic_name: str = Field(alias="topicName")


class TopicRenameRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_name: str = Field(alias="newName")


class UrlIngestRequest(BaseModel):
    url: str


class MoveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_topic: str = Field(alias="newTopic")


class SummarizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    template_id: str = Field(default="summarize", alias="templateId")


class ChatRequest(BaseModel):
    message: str
