"""Project record as seen by the pipeline and the HTTP layer."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..models.project import ProjectStatus
from . import execution


class ProjectRecord(BaseModel):
    """Snapshot of a persisted project row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: str | None = None
    template: str | None = None
    status: ProjectStatus
    error_message: str | None = None
    fragment: dict[str, Any] | None = None
    result: dict[str, Any] | None = None
    messages: list[dict[str, Any]] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def preview_url(self) -> str | None:
        return execution.preview_url(self.result)

    @property
    def sandbox_id(self) -> str | None:
        return execution.sandbox_id(self.result)
