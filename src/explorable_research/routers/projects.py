"""Project CRUD router for the caller's own projects."""

from fastapi import APIRouter, Depends, Response, status
import structlog

from ..capabilities import Capabilities
from ..dependencies import get_capabilities, get_current_user_id
from ..errors import ApiError, ErrorCode
from ..schemas.api import CreateFromFragmentRequest, project_payload
from ..schemas.results import Failure

logger = structlog.get_logger()

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
async def list_projects(
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    """List the caller's projects, newest first."""
    records = await caps.projects.list_for_user(user_id)
    return {"success": True, "projects": [project_payload(r) for r in records]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project_from_fragment(
    body: CreateFromFragmentRequest,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    """Store a ready-made fragment and deploy it in the background."""
    record = await caps.processor.process_fragment_async(
        user_id,
        body.fragment,
        title=body.title,
        description=body.description,
        messages=body.messages,
    )
    if isinstance(record, Failure):
        raise ApiError.from_failure(record)
    return {"success": True, "id": record.id, "status": record.status.value}


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    record = await caps.projects.get(project_id, user_id)
    if record is None:
        raise ApiError(ErrorCode.NOT_FOUND, "Project not found")
    payload = project_payload(record, include_code=True, include_messages=True)
    payload["fragment"] = record.fragment
    return {"success": True, "project": payload}


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> Response:
    """Delete a project; its sandbox is killed first when it has one."""
    if not await caps.processor.delete(project_id, user_id):
        raise ApiError(ErrorCode.NOT_FOUND, "Project not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
