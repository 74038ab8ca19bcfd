"""Turns an ArXiv reference or uploaded PDF bytes into a PDF reference plus metadata."""

import base64
from dataclasses import dataclass

import httpx
import structlog

from ..clients.arxiv import ArxivClient, ArxivMetadata, extract_arxiv_id
from ..config import MEGABYTE
from ..errors import ErrorCode
from ..schemas.results import Failure, InlinePdf, ResolvedSource, StoredPdf
from ..stores.blobs import BlobStore
from .strategy import first_success

logger = structlog.get_logger()

PDF_MIME_TYPE = "application/pdf"
STORAGE_FAILED_MESSAGE = (
    "Failed to store PDF. Please try again or contact support if the issue persists."
)


@dataclass(frozen=True)
class ArxivSource:
    """ArXiv URL or bare id, as typed by the user."""

    reference: str


@dataclass(frozen=True)
class UploadedPdf:
    data: bytes
    filename: str


Source = ArxivSource | UploadedPdf


def too_large_message(size: int, limit: int) -> str:
    return (
        f"PDF is too large ({size / MEGABYTE:.1f}MB). "
        f"Maximum size is {limit / MEGABYTE:.1f}MB."
    )


class SourceResolver:
    """Resolves paper sources.

    With a blob store and a user, PDFs up to ``max_pdf_size`` are stored and
    returned by path. Without storage, PDFs up to ``inline_pdf_max_size``
    are returned inline as base64.
    """

    def __init__(self, arxiv: ArxivClient, max_pdf_size: int, inline_pdf_max_size: int):
        self.arxiv = arxiv
        self.max_pdf_size = max_pdf_size
        self.inline_pdf_max_size = inline_pdf_max_size

    def size_limit(self, can_store: bool) -> int:
        return self.max_pdf_size if can_store else self.inline_pdf_max_size

    async def resolve(
        self,
        source: Source,
        user_id: str | None = None,
        blob_store: BlobStore | None = None,
    ) -> ResolvedSource | Failure:
        can_store = bool(user_id) and blob_store is not None

        arxiv_id: str | None = None
        metadata: ArxivMetadata | None = None

        if isinstance(source, ArxivSource):
            arxiv_id = extract_arxiv_id(source.reference)
            if arxiv_id is None:
                return Failure(
                    error="Invalid ArXiv URL or ID format", error_code=ErrorCode.INVALID_URL
                )
            try:
                fetched = await self.arxiv.fetch_pdf(arxiv_id)
            except httpx.HTTPError as e:
                logger.error(
                    "arxiv_pdf_fetch_failed",
                    arxiv_id=arxiv_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return Failure(
                    error=f"Failed to fetch ArXiv paper: {e}", error_code=ErrorCode.FETCH_FAILED
                )
            if fetched is None:
                return Failure(
                    error="ArXiv paper not found. Please check the ID or URL.",
                    error_code=ErrorCode.NOT_FOUND,
                )
            data, filename = fetched
        else:
            data, filename = source.data, source.filename

        limit = self.size_limit(can_store)
        if len(data) > limit:
            return Failure(error=too_large_message(len(data), limit), error_code=ErrorCode.TOO_LARGE)

        if arxiv_id is not None:
            metadata = await self.arxiv.fetch_metadata(arxiv_id)

        if can_store:
            pdf = await first_success(
                lambda: self._store(blob_store, user_id, data, filename),
                lambda: self._inline_fallback(data, filename),
                step="pdf_storage",
            )
        else:
            pdf = self._inline(data, filename)

        if isinstance(pdf, Failure):
            return pdf

        logger.info(
            "source_resolved",
            arxiv_id=arxiv_id,
            pdf_kind=pdf.kind,
            size=len(data),
        )
        return ResolvedSource(
            pdf=pdf,
            arxiv_id=arxiv_id,
            title=metadata.title if metadata else None,
            abstract=metadata.abstract if metadata else "",
        )

    async def _store(
        self, blob_store: BlobStore, user_id: str, data: bytes, filename: str
    ) -> StoredPdf | Failure:
        try:
            path = await blob_store.put(user_id, filename, data, PDF_MIME_TYPE)
        except Exception as e:
            logger.error("pdf_store_failed", error=str(e), error_type=type(e).__name__)
            return Failure(error=str(e), error_code=ErrorCode.STORAGE_FAILED)
        return StoredPdf(storage_path=path, filename=filename, size=len(data))

    async def _inline_fallback(self, data: bytes, filename: str) -> InlinePdf | Failure:
        if len(data) > self.inline_pdf_max_size:
            return Failure(error=STORAGE_FAILED_MESSAGE, error_code=ErrorCode.STORAGE_FAILED)
        return self._inline(data, filename)

    @staticmethod
    def _inline(data: bytes, filename: str) -> InlinePdf:
        return InlinePdf(
            data=base64.b64encode(data).decode("ascii"),
            filename=filename,
            size=len(data),
        )
