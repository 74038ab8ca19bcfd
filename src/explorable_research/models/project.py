"""Project model."""

from enum import Enum
import uuid

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ProjectStatus(str, Enum):
    """Generation pipeline status.

    Advances linearly; ``failed`` may follow any state.
    """

    CREATED = "created"
    GENERATING_CODE = "generating_code"
    CREATING_SANDBOX = "creating_sandbox"
    INSTALLING_DEPENDENCIES = "installing_dependencies"
    EXECUTING_CODE = "executing_code"
    READY = "ready"
    FAILED = "failed"


class Project(Base):
    """Project model - one generation pipeline run and its artifact."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(255), index=True)

    title: Mapped[str] = mapped_column(String(512), default="Untitled Project")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    template: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(50), default=ProjectStatus.CREATED.value)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Latest generated fragment and its execution result
    fragment: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    result: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Sanitized conversation history, no inline binary content
    messages: Mapped[list | None] = mapped_column(JSON, nullable=True)
