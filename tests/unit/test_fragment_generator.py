"""Tests for FragmentGenerator and message conversion."""

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
import pytest

from explorable_research.errors import ErrorCode
from explorable_research.llm.catalog import ModelConfig
from explorable_research.llm.factory import LLMFactory
from explorable_research.pipeline.fragment_generator import (
    FragmentGenerator,
    resolve_storage_files,
    to_langchain_messages,
)
from explorable_research.pipeline.templates import TemplateRegistry
from explorable_research.schemas.messages import (
    FileContent,
    ImageContent,
    Message,
    StorageFileContent,
    TextContent,
)
from explorable_research.schemas.results import Failure
from explorable_research.tests.mocks.llm import MockLLMFactory, make_fragment
from explorable_research.tests.mocks.stores import MockBlobStore

MODEL = "google/gemini-3-pro-preview"


def _storage_turn(path: str = "user-1/1-paper.pdf") -> Message:
    return Message(
        role="user",
        content=[
            StorageFileContent(storage_path=path, filename="paper.pdf"),
            TextContent(text="Build it"),
        ],
    )


class TestResolveStorageFiles:
    @pytest.mark.asyncio
    async def test_downloads_and_inlines(self):
        blobs = MockBlobStore()
        path = await blobs.put("user-1", "paper.pdf", b"%PDF")

        [message] = await resolve_storage_files([_storage_turn(path)], blobs)

        block = message.content[0]
        assert isinstance(block, FileContent)
        assert block.data == "JVBERg=="
        assert block.filename == "paper.pdf"
        assert block.mime_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_missing_blob_becomes_placeholder(self):
        [message] = await resolve_storage_files([_storage_turn()], MockBlobStore())

        assert message.content[0] == TextContent(text="[PDF: paper.pdf - failed to load]")
        assert message.content[1].text == "Build it"

    @pytest.mark.asyncio
    async def test_no_blob_store_becomes_placeholder(self):
        [message] = await resolve_storage_files([_storage_turn()], None)

        assert message.content[0].type == "text"


def test_to_langchain_messages():
    messages = [
        Message(
            role="user",
            content=[
                FileContent(data="JVBERg==", filename="paper.pdf"),
                ImageContent(image="iVBORw0KGgo=", mime_type="image/png"),
                TextContent(text="Build it"),
            ],
        ),
        Message(role="assistant", content=[TextContent(text="Here you go")]),
    ]

    human, ai = to_langchain_messages(messages)

    assert isinstance(human, HumanMessage)
    assert human.content == [
        {
            "type": "file",
            "file": {"filename": "paper.pdf", "file_data": "data:application/pdf;base64,JVBERg=="},
        },
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,iVBORw0KGgo="}},
        {"type": "text", "text": "Build it"},
    ]
    assert isinstance(ai, AIMessage)
    assert ai.content == "Here you go"


class TestFragmentGenerator:
    @pytest.fixture
    def templates(self):
        return TemplateRegistry().resolve("explorable-research-developer")

    @pytest.mark.asyncio
    async def test_returns_fragment(self, templates):
        factory = MockLLMFactory()
        generator = FragmentGenerator(factory, max_retries=3)
        config = ModelConfig(temperature=0.2)

        outcome = await generator.generate(
            [Message(role="user", content=[TextContent(text="Build it")])],
            templates,
            MODEL,
            config,
        )

        assert not isinstance(outcome, Failure)
        assert outcome.fragment == factory.fragment
        assert factory.created == [(MODEL, config, 3)]
        assert factory.structured_kwargs == [{"method": "function_calling", "include_raw": True}]

    @pytest.mark.asyncio
    async def test_system_prompt_lists_templates(self, templates):
        factory = MockLLMFactory()

        await FragmentGenerator(factory).generate(
            [Message(role="user", content=[TextContent(text="Build it")])], templates, MODEL
        )

        system, human = factory.invocations[0]
        assert isinstance(system, SystemMessage)
        assert "explorable-research-developer" in system.content
        assert isinstance(human, HumanMessage)

    @pytest.mark.asyncio
    async def test_storage_files_are_resolved_before_the_call(self, templates):
        factory = MockLLMFactory()
        blobs = MockBlobStore()
        path = await blobs.put("user-1", "paper.pdf", b"%PDF")

        await FragmentGenerator(factory).generate(
            [_storage_turn(path)], templates, MODEL, None, blobs
        )

        _, human = factory.invocations[0]
        assert human.content[0]["type"] == "file"

    @pytest.mark.asyncio
    async def test_llm_error_is_generation_failed(self, templates):
        factory = MockLLMFactory()
        factory.fail_exception = RuntimeError("rate limited")

        outcome = await FragmentGenerator(factory).generate([], templates, MODEL)

        assert outcome.error_code == ErrorCode.GENERATION_FAILED
        assert outcome.error == "Failed to generate fragment: rate limited"

    @pytest.mark.asyncio
    async def test_missing_api_key_is_generation_failed(self, templates):
        outcome = await FragmentGenerator(LLMFactory(api_key="")).generate([], templates, MODEL)

        assert outcome.error_code == ErrorCode.GENERATION_FAILED
        assert "OPENROUTER_API_KEY" in outcome.error

    @pytest.mark.asyncio
    async def test_unparsed_output_is_invalid_response(self, templates):
        factory = MockLLMFactory()
        factory.fragment = None
        factory.parsing_error = ValueError("missing field: code")

        outcome = await FragmentGenerator(factory).generate([], templates, MODEL)

        assert outcome.error_code == ErrorCode.INVALID_RESPONSE
        assert outcome.error == "Failed to generate fragment: empty response"


def test_make_fragment_is_valid():
    assert make_fragment().template == "explorable-research-developer"
