"""Capability objects built once per process and shared by request handlers."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from .clients.arxiv import ArxivClient
from .clients.sandbox import E2BSandboxProvider
from .config import Settings
from .database import create_engine, create_session_maker
from .llm.factory import LLMFactory
from .pipeline.fragment_generator import FragmentGenerator
from .pipeline.project_processor import ProjectProcessor
from .pipeline.sandbox_orchestrator import SandboxOrchestrator
from .pipeline.source_resolver import SourceResolver
from .pipeline.templates import TemplateRegistry
from .stores.blobs import BlobStore
from .stores.projects import ProjectStore
from .stores.users import UserStore


@dataclass
class Capabilities:
    projects: ProjectStore
    blobs: BlobStore
    users: UserStore
    resolver: SourceResolver
    sandboxes: SandboxOrchestrator
    templates: TemplateRegistry
    processor: ProjectProcessor
    arxiv: ArxivClient | None = None
    engine: AsyncEngine | None = None

    async def aclose(self) -> None:
        await self.processor.drain()
        if self.arxiv is not None:
            await self.arxiv.close()
        if self.engine is not None:
            await self.engine.dispose()


def build_capabilities(settings: Settings) -> Capabilities:
    """Wire stores, clients and pipeline components from settings."""
    engine = create_engine(settings.database_url)
    session_maker = create_session_maker(engine)

    projects = ProjectStore(session_maker)
    blobs = BlobStore(session_maker)
    users = UserStore(session_maker)

    arxiv = ArxivClient(
        base_url=settings.arxiv_base_url,
        user_agent=settings.arxiv_user_agent,
        timeout=settings.http_timeout_seconds,
    )
    resolver = SourceResolver(
        arxiv,
        max_pdf_size=settings.max_pdf_size,
        inline_pdf_max_size=settings.inline_pdf_max_size,
    )
    generator = FragmentGenerator(
        LLMFactory(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            app_name=settings.openrouter_app_name,
            site_url=settings.openrouter_site_url,
        ),
        max_retries=settings.generation_max_retries,
    )
    sandboxes = SandboxOrchestrator(
        E2BSandboxProvider(
            api_key=settings.e2b_api_key,
            command_timeout_seconds=settings.sandbox_command_timeout_seconds,
        ),
        timeout_seconds=settings.sandbox_timeout_seconds,
    )
    templates = TemplateRegistry(settings.environment)

    processor = ProjectProcessor(
        projects=projects,
        resolver=resolver,
        generator=generator,
        sandboxes=sandboxes,
        templates=templates,
        blob_store=blobs,
        default_model=settings.default_model,
    )
    return Capabilities(
        projects=projects,
        blobs=blobs,
        users=users,
        resolver=resolver,
        sandboxes=sandboxes,
        templates=templates,
        processor=processor,
        arxiv=arxiv,
        engine=engine,
    )
