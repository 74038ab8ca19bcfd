"""Database models package."""

from .api_key import APIKey
from .base import Base
from .project import Project, ProjectStatus
from .pdf_blob import PdfBlob

__all__ = [
    "APIKey",
    "Base",
    "Project",
    "ProjectStatus",
    "PdfBlob",
]
