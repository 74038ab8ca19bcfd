"""Conversation turns and their content blocks."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class CodeContent(BaseModel):
    type: Literal["code"] = "code"
    text: str


class ImageContent(BaseModel):
    """Inline image, base64 without the data URL prefix."""

    type: Literal["image"] = "image"
    image: str
    mime_type: str = "image/png"


class FileContent(BaseModel):
    """Inline file, base64 encoded."""

    type: Literal["file"] = "file"
    data: str
    mime_type: str = "application/pdf"
    filename: str | None = None


class StorageFileContent(BaseModel):
    """Reference to a file held in blob storage; resolved before any LLM call."""

    type: Literal["storage-file"] = "storage-file"
    storage_path: str
    mime_type: str = "application/pdf"
    filename: str = "document.pdf"
    size: int = 0


MessageContent = Annotated[
    TextContent | CodeContent | ImageContent | FileContent | StorageFileContent,
    Field(discriminator="type"),
]


class Message(BaseModel):
    """One conversation turn.

    Assistant turns may carry a snapshot of the fragment they produced and
    its execution result.
    """

    role: Literal["user", "assistant"]
    content: list[MessageContent]
    object: dict[str, Any] | None = None
    result: dict[str, Any] | None = None


def dump_messages(messages: list[Message]) -> list[dict[str, Any]]:
    return [m.model_dump(mode="json", exclude_none=True) for m in messages]


def load_messages(raw: list[dict[str, Any]] | None) -> list[Message]:
    return [Message.model_validate(m) for m in raw or []]
