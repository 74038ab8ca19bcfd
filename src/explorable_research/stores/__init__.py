"""Persistence capabilities: projects, PDF blobs, API keys."""

from .blobs import BlobNotFoundError, BlobStore, build_storage_path
from .projects import ProjectStore
from .users import UserStore

__all__ = ["BlobNotFoundError", "BlobStore", "ProjectStore", "UserStore", "build_storage_path"]
