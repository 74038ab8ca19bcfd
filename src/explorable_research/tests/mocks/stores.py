from datetime import UTC, datetime
from enum import Enum
from typing import Any
import uuid

from explorable_research.models.project import ProjectStatus
from explorable_research.schemas.project import ProjectRecord
from explorable_research.stores.blobs import BlobNotFoundError, build_storage_path, owner_of
from explorable_research.stores.projects import UPDATABLE_FIELDS


class MockProjectStore:
    """In-memory ProjectStore. Status writes are appended to ``events``."""

    def __init__(self, events: list[tuple[str, Any]] | None = None):
        self.events = events if events is not None else []
        self.rows: dict[str, dict[str, Any]] = {}

    def statuses(self, project_id: str | None = None) -> list[str]:
        found = []
        for kind, detail in self.events:
            if kind != "status":
                continue
            pid, status = detail
            if project_id is None or pid == project_id:
                found.append(status)
        return found

    async def insert(
        self,
        user_id: str,
        *,
        title: str = "Untitled Project",
        description: str | None = None,
        template: str | None = None,
        status: ProjectStatus = ProjectStatus.CREATED,
        fragment: dict | None = None,
        result: dict | None = None,
        messages: list | None = None,
    ) -> ProjectRecord:
        now = datetime.now(UTC)
        row = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "title": title,
            "description": description,
            "template": template,
            "status": status,
            "error_message": None,
            "fragment": fragment,
            "result": result,
            "messages": messages,
            "created_at": now,
            "updated_at": now,
        }
        self.rows[row["id"]] = row
        self.events.append(("status", (row["id"], status.value)))
        return ProjectRecord.model_validate(row)

    async def get(self, project_id: str, user_id: str) -> ProjectRecord | None:
        row = self.rows.get(project_id)
        if row is None or row["user_id"] != user_id:
            return None
        return ProjectRecord.model_validate(row)

    async def list_for_user(self, user_id: str) -> list[ProjectRecord]:
        rows = [r for r in self.rows.values() if r["user_id"] == user_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [ProjectRecord.model_validate(r) for r in rows]

    async def update(self, project_id: str, **fields: Any) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update project fields: {sorted(unknown)}")
        row = self.rows.get(project_id)
        if row is None:
            return
        for key, value in fields.items():
            row[key] = ProjectStatus(value) if key == "status" else value
        row["updated_at"] = datetime.now(UTC)
        if "status" in fields:
            status = fields["status"]
            self.events.append(
                ("status", (project_id, status.value if isinstance(status, Enum) else status))
            )

    async def delete(self, project_id: str, user_id: str) -> bool:
        row = self.rows.get(project_id)
        if row is None or row["user_id"] != user_id:
            return False
        del self.rows[project_id]
        return True

    async def claim_ready(self, project_id: str, user_id: str) -> bool:
        row = self.rows.get(project_id)
        if row is None or row["user_id"] != user_id or row["status"] != ProjectStatus.READY:
            return False
        row["status"] = ProjectStatus.CREATED
        row["error_message"] = None
        self.events.append(("status", (project_id, ProjectStatus.CREATED.value)))
        return True


class MockBlobStore:
    """In-memory BlobStore."""

    def __init__(self):
        self.blobs: dict[str, tuple[bytes, str]] = {}
        self._counter = 0

        # Behavior Configuration
        self.fail_put: Exception | None = None
        self.fail_get: Exception | None = None

    async def put(
        self, user_id: str, filename: str, data: bytes, content_type: str = "application/pdf"
    ) -> str:
        if self.fail_put is not None:
            raise self.fail_put
        self._counter += 1
        path = build_storage_path(user_id, filename, timestamp_ms=self._counter)
        self.blobs[path] = (data, content_type)
        return path

    async def get(self, path: str) -> tuple[bytes, str]:
        if self.fail_get is not None:
            raise self.fail_get
        if path not in self.blobs:
            raise BlobNotFoundError(path)
        return self.blobs[path]

    async def delete(self, path: str) -> bool:
        return self.blobs.pop(path, None) is not None

    def paths_for(self, user_id: str) -> list[str]:
        return [p for p in self.blobs if owner_of(p) == user_id]


class MockUserStore:
    """Maps plaintext keys straight to user ids."""

    def __init__(self, keys: dict[str, str] | None = None):
        self.keys = dict(keys or {})

    async def authenticate(self, token: str) -> str | None:
        return self.keys.get(token)
