"""Routers package."""

from . import arxiv, health, models, pdf, projects, v1_projects

__all__ = [
    "arxiv",
    "health",
    "models",
    "pdf",
    "projects",
    "v1_projects",
]
