"""Generation pipeline components."""

from .fragment_generator import FragmentGenerator
from .project_processor import GenerationOptions, ProjectProcessor
from .sandbox_orchestrator import SandboxOrchestrator
from .source_resolver import ArxivSource, SourceResolver, UploadedPdf
from .templates import TemplateRegistry

__all__ = [
    "ArxivSource",
    "FragmentGenerator",
    "GenerationOptions",
    "ProjectProcessor",
    "SandboxOrchestrator",
    "SourceResolver",
    "TemplateRegistry",
    "UploadedPdf",
]
