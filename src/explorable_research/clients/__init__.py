"""Clients for external services."""

from .arxiv import ArxivClient, ArxivMetadata, extract_arxiv_id
from .sandbox import (
    CodeExecution,
    E2BSandboxHandle,
    E2BSandboxProvider,
    SandboxHandle,
    SandboxProvider,
)

__all__ = [
    "ArxivClient",
    "ArxivMetadata",
    "CodeExecution",
    "E2BSandboxHandle",
    "E2BSandboxProvider",
    "SandboxHandle",
    "SandboxProvider",
    "extract_arxiv_id",
]
