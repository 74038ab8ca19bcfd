"""ArXiv lookup router."""

from fastapi import APIRouter, Depends

from ..capabilities import Capabilities
from ..dependencies import get_capabilities, get_optional_user_id
from ..errors import ApiError
from ..pipeline.source_resolver import ArxivSource
from ..schemas.api import ArxivRequest
from ..schemas.results import Failure

router = APIRouter(tags=["arxiv"])


@router.post("/arxiv")
async def resolve_arxiv(
    body: ArxivRequest,
    user_id: str | None = Depends(get_optional_user_id),
    caps: Capabilities = Depends(get_capabilities),
) -> dict:
    """Fetch a paper and its metadata.

    Authenticated callers get a stored PDF reference (10 MB ceiling);
    anonymous callers get the PDF inline (3.3 MB ceiling).
    """
    blob_store = caps.blobs if user_id else None
    resolved = await caps.resolver.resolve(ArxivSource(body.url), user_id, blob_store)
    if isinstance(resolved, Failure):
        raise ApiError.from_failure(resolved)
    return {
        "success": True,
        "arxiv_id": resolved.arxiv_id,
        "title": resolved.title,
        "abstract": resolved.abstract,
        "pdf": resolved.pdf.model_dump(),
    }
