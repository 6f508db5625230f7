"""
Chat model definitions.

Request/response shapes for the browser chat endpoint. Incoming messages follow
the UI message format: a role plus a list of typed parts.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from rorie.models.enums import MessageRole


class MessagePart(BaseModel):
    """One segment of a UI message. Only ``text`` parts carry content for the model."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., description="Part type (text, reasoning, file, ...)")
    text: Optional[str] = Field(None, description="Text content for text parts")


class UIMessage(BaseModel):
    """A chat message as submitted by the browser."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, description="Client-side message ID")
    role: MessageRole
    parts: list[MessagePart] = Field(default_factory=list)

    def text_content(self) -> str:
        """Concatenate the text-bearing parts, trimmed."""
        return "".join(
            part.text for part in self.parts if part.type == "text" and part.text
        ).strip()


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""

    model_config = ConfigDict(extra="allow")

    messages: list[UIMessage] = Field(..., min_length=1, description="Full conversation history")

    @property
    def last_message(self) -> UIMessage:
        return self.messages[-1]


class RateLimitedResponse(BaseModel):
    """Body returned with HTTP 429 once a session has used its quota."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = "rate_limited"
    message: str
    book_link: str = Field(..., alias="bookLink")
    limit: int
    used: int


class QuotaResponse(BaseModel):
    """Current quota of the caller's session."""

    limit: int
    used: int
    remaining: int


class HistoryMessage(BaseModel):
    """Persisted message returned to the browser for restoring the list."""

    id: int
    role: MessageRole
    content: str
