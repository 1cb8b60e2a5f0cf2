from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _require_text(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped


# --- Requests ---


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        return _require_text(value)


class PriorMessage(BaseModel):
    role: str = "user"
    content: str = ""


class ContinueConversationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    summary: str = ""
    previous_messages: list[PriorMessage] = Field(default_factory=list, alias="previousMessages")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        return _require_text(value)


# --- Responses ---


class CitationModel(BaseModel):
    number: int
    source: str
    url: str


class ConversationResponse(BaseModel):
    id: str
    query: str
    summary: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class MessageResponse(BaseModel):
    id: str | None = None
    conversation_id: str
    role: str
    content: str
    citations: list[CitationModel] = Field(default_factory=list)
    visualization_data: dict[str, Any] | None = None
    visualization_context: dict[str, Any] | None = None
    timestamp: str | None = None


class ConversationDetailResponse(BaseModel):
    conversation: ConversationResponse
    messages: list[MessageResponse]


class ContinueConversationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    citations: list[CitationModel] = Field(default_factory=list)
    visualization_data: dict[str, Any] | None = Field(default=None, alias="visualizationData")
    visualization_context: dict[str, Any] | None = Field(
        default=None, alias="visualizationContext"
    )
    conversation_id: str = Field(alias="conversationId")
