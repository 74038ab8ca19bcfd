import os

import pytest

# Settings require a database URL; tests never reach a real server
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from explorable_research.config import MEGABYTE  # noqa: E402
from explorable_research.pipeline.fragment_generator import FragmentGenerator  # noqa: E402
from explorable_research.pipeline.project_processor import ProjectProcessor  # noqa: E402
from explorable_research.pipeline.sandbox_orchestrator import SandboxOrchestrator  # noqa: E402
from explorable_research.pipeline.source_resolver import SourceResolver  # noqa: E402
from explorable_research.pipeline.templates import TemplateRegistry  # noqa: E402
from explorable_research.tests.mocks.arxiv import MockArxivClient  # noqa: E402
from explorable_research.tests.mocks.llm import MockLLMFactory  # noqa: E402
from explorable_research.tests.mocks.sandbox import MockSandboxProvider  # noqa: E402
from explorable_research.tests.mocks.stores import MockBlobStore, MockProjectStore  # noqa: E402

MAX_PDF_SIZE = 10 * MEGABYTE
INLINE_PDF_MAX_SIZE = int(3.3 * MEGABYTE)


@pytest.fixture
def events():
    """Shared, ordered log of status writes, sandbox calls and LLM calls."""
    return []


@pytest.fixture
def sandbox_provider(events):
    return MockSandboxProvider(events)


@pytest.fixture
def llm_factory(events):
    return MockLLMFactory(events=events)


@pytest.fixture
def arxiv():
    client = MockArxivClient()
    client.add_paper(
        "2301.00001",
        title="Attention Is All You Need",
        abstract="We propose a new simple network architecture, the Transformer.",
    )
    return client


@pytest.fixture
def blob_store():
    return MockBlobStore()


@pytest.fixture
def project_store(events):
    return MockProjectStore(events)


@pytest.fixture
def resolver(arxiv):
    return SourceResolver(arxiv, max_pdf_size=MAX_PDF_SIZE, inline_pdf_max_size=INLINE_PDF_MAX_SIZE)


@pytest.fixture
def orchestrator(sandbox_provider):
    return SandboxOrchestrator(sandbox_provider, timeout_seconds=600)


@pytest.fixture
def processor(project_store, resolver, llm_factory, orchestrator, blob_store):
    return ProjectProcessor(
        projects=project_store,
        resolver=resolver,
        generator=FragmentGenerator(llm_factory),
        sandboxes=orchestrator,
        templates=TemplateRegistry("production"),
        blob_store=blob_store,
    )
