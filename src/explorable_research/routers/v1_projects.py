"""Public v1 project API: create, continue and poll generation runs."""

import base64
import binascii

from fastapi import APIRouter, Depends, status
import structlog

from ..capabilities import Capabilities
from ..dependencies import get_capabilities, get_current_user_id
from ..errors import ApiError, ErrorCode
from ..pipeline.project_processor import GenerationOptions
from ..pipeline.source_resolver import ArxivSource, Source, UploadedPdf
from ..schemas.api import (
    ContinueProjectRequest,
    CreateProjectRequest,
    project_payload,
    status_payload,
)
from ..schemas.project import ProjectRecord
from ..schemas.results import Failure

logger = structlog.get_logger()

router = APIRouter(prefix="/v1/projects", tags=["v1-projects"])


def _source_from_request(body: CreateProjectRequest) -> Source:
    if body.arxiv_url:
        return ArxivSource(reference=body.arxiv_url)
    try:
        data = base64.b64decode(body.pdf_file or "", validate=True)
    except (binascii.Error, ValueError) as e:
        raise ApiError(ErrorCode.INVALID_FORMAT, "Invalid base64-encoded PDF") from e
    return UploadedPdf(data=data, filename=body.pdf_filename or "document.pdf")


def _options(body: CreateProjectRequest | ContinueProjectRequest) -> GenerationOptions:
    return GenerationOptions(
        instruction=body.instruction,
        images=body.images,
        model=body.model,
        model_config=body.llm_config,
    )


def _unwrap(outcome: ProjectRecord | Failure) -> ProjectRecord:
    if isinstance(outcome, Failure):
        raise ApiError.from_failure(outcome)
    return outcome


@router.post("/create")
async def create_project(
    body: CreateProjectRequest,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    """Create a project and wait for it to be ready."""
    logger.info("v1_create_requested", has_arxiv=bool(body.arxiv_url), template=body.template)
    record = _unwrap(
        await caps.processor.create_sync(
            user_id, _source_from_request(body), body.template, _options(body)
        )
    )
    return {
        "success": True,
        "project": project_payload(record, body.include_code, body.include_messages),
    }


@router.post("/create-async", status_code=status.HTTP_201_CREATED)
async def create_project_async(
    body: CreateProjectRequest,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    """Create a project and return at once; poll the status endpoint."""
    record = _unwrap(
        await caps.processor.create_async(
            user_id, _source_from_request(body), body.template, _options(body)
        )
    )
    return {"success": True, "id": record.id, "status": record.status.value}


@router.post("/{project_id}/continue")
async def continue_project(
    project_id: str,
    body: ContinueProjectRequest,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    """Regenerate a ready project from a follow-up instruction and wait."""
    record = _unwrap(await caps.processor.continue_sync(project_id, user_id, _options(body)))
    return {
        "success": True,
        "project": project_payload(record, body.include_code, body.include_messages),
    }


@router.post("/{project_id}/continue-async", status_code=status.HTTP_202_ACCEPTED)
async def continue_project_async(
    project_id: str,
    body: ContinueProjectRequest,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    record = _unwrap(await caps.processor.continue_async(project_id, user_id, _options(body)))
    return {"success": True, "id": record.id, "status": record.status.value}


@router.get("/{project_id}/status")
async def get_project_status(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    record = await caps.projects.get(project_id, user_id)
    if record is None:
        raise ApiError(ErrorCode.NOT_FOUND, "Project not found")
    return {"success": True, "project": status_payload(record)}
