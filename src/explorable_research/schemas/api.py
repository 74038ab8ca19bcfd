"""Request bodies and response payloads of the HTTP API."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..llm.catalog import ModelConfig
from ..models.project import ProjectStatus
from .fragment import Fragment
from .project import ProjectRecord

MAX_IMAGES = 8
MAX_INSTRUCTION_LENGTH = 10_000
IMAGE_MIME_PATTERN = r"(?i)^image/(png|jpeg|jpg|gif|webp)$"


class ImageAttachment(BaseModel):
    """Base64 image attached to a generation request."""

    model_config = ConfigDict(populate_by_name=True)

    data: str = Field(min_length=1)
    mime_type: str = Field(alias="mimeType", pattern=IMAGE_MIME_PATTERN)
    filename: str | None = None


class _GenerationOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    images: list[ImageAttachment] = Field(default_factory=list, max_length=MAX_IMAGES)
    model: str | None = None
    # "model_config" is reserved on pydantic models
    llm_config: ModelConfig | None = Field(default=None, alias="model_config")
    include_code: bool = False
    include_messages: bool = False


class CreateProjectRequest(_GenerationOptions):
    """Body of POST /api/v1/projects/create and create-async."""

    arxiv_url: str | None = None
    pdf_file: str | None = None  # base64
    pdf_filename: str | None = None
    instruction: str | None = Field(default=None, max_length=MAX_INSTRUCTION_LENGTH)
    template: Literal["html-developer", "explorable-research-developer"] = (
        "explorable-research-developer"
    )

    @model_validator(mode="after")
    def _check_source(self) -> "CreateProjectRequest":
        if not self.arxiv_url and not self.pdf_file:
            raise ValueError("Either arxiv_url or pdf_file must be provided")
        if self.pdf_file and not self.pdf_filename:
            raise ValueError("pdf_filename is required when pdf_file is provided")
        return self


class ContinueProjectRequest(_GenerationOptions):
    """Body of POST /api/v1/projects/{id}/continue and continue-async."""

    instruction: str = Field(min_length=1, max_length=MAX_INSTRUCTION_LENGTH)

    @field_validator("instruction")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Instruction is required")
        return v


class CreateFromFragmentRequest(BaseModel):
    """Body of POST /api/projects: store a ready-made fragment and run it."""

    fragment: Fragment
    title: str | None = None
    description: str | None = None
    messages: list[dict[str, Any]] = Field(default_factory=list)


class ArxivRequest(BaseModel):
    url: str = Field(min_length=1)


class PdfUploadRequest(BaseModel):
    data: str = Field(min_length=1)  # base64
    filename: str = Field(min_length=1)
    mime_type: str = Field(default="application/pdf", alias="mimeType")

    model_config = ConfigDict(populate_by_name=True)


def _timestamp(value) -> str | None:
    return value.isoformat() if value is not None else None


def project_payload(
    record: ProjectRecord,
    include_code: bool = False,
    include_messages: bool = False,
) -> dict[str, Any]:
    """Full project record as returned by the synchronous endpoints."""
    payload: dict[str, Any] = {
        "id": record.id,
        "status": record.status.value,
        "title": record.title,
        "description": record.description,
        "created_at": _timestamp(record.created_at),
        "updated_at": _timestamp(record.updated_at),
        "preview_url": record.preview_url,
        "sandbox_id": record.sandbox_id,
        "template": record.template,
    }
    if record.status == ProjectStatus.FAILED:
        payload["error_message"] = record.error_message
    if include_code and record.fragment:
        payload["code"] = record.fragment.get("code")
    if include_messages:
        payload["messages"] = [
            {"role": m.get("role"), "content": m.get("content", [])}
            for m in record.messages or []
        ]
    return payload


def status_payload(record: ProjectRecord) -> dict[str, Any]:
    """Polling view: preview fields only when ready, error only when failed."""
    payload: dict[str, Any] = {
        "id": record.id,
        "status": record.status.value,
        "created_at": _timestamp(record.created_at),
        "updated_at": _timestamp(record.updated_at),
    }
    if record.title:
        payload["title"] = record.title
    if record.description:
        payload["description"] = record.description
    if record.template:
        payload["template"] = record.template
    if record.status == ProjectStatus.READY:
        if record.preview_url:
            payload["preview_url"] = record.preview_url
        if record.sandbox_id:
            payload["sandbox_id"] = record.sandbox_id
    if record.status == ProjectStatus.FAILED and record.error_message:
        payload["error_message"] = record.error_message
    return payload
