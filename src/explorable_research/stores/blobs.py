"""Blob storage for PDFs, kept in the ``pdf_blobs`` table."""

import re
import time

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from ..models import PdfBlob

logger = structlog.get_logger()

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.\-]")


class BlobNotFoundError(LookupError):
    """No blob stored under the requested path."""


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def build_storage_path(user_id: str, filename: str, timestamp_ms: int | None = None) -> str:
    """``<user_id>/<timestamp_ms>-<sanitized filename>``"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{user_id}/{timestamp_ms}-{sanitize_filename(filename)}"


def owner_of(path: str) -> str:
    """User id a storage path belongs to."""
    return path.split("/", 1)[0]


class BlobStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def put(
        self,
        user_id: str,
        filename: str,
        data: bytes,
        content_type: str = "application/pdf",
    ) -> str:
        path = build_storage_path(user_id, filename)
        blob = PdfBlob(
            path=path,
            user_id=user_id,
            filename=filename,
            mime_type=content_type,
            size=len(data),
            data=data,
        )
        async with self._session_maker() as session:
            session.add(blob)
            await session.commit()

        logger.info("blob_stored", path=path, size=len(data))
        return path

    async def get(self, path: str) -> tuple[bytes, str]:
        """Return ``(data, mime_type)``.

        Raises:
            BlobNotFoundError: if nothing is stored under ``path``.
        """
        async with self._session_maker() as session:
            blob = await session.get(PdfBlob, path)
            if blob is None:
                raise BlobNotFoundError(path)
            return blob.data, blob.mime_type

    async def delete(self, path: str) -> bool:
        async with self._session_maker() as session:
            result = await session.execute(delete(PdfBlob).where(PdfBlob.path == path))
            await session.commit()
        return result.rowcount > 0
