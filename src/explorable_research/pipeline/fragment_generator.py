"""Fragment generation: conversation in, structured code bundle out."""

import base64
from collections.abc import Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
import structlog

from ..errors import ErrorCode
from ..llm.catalog import ModelConfig
from ..llm.factory import LLMFactory
from ..schemas.fragment import Fragment
from ..schemas.messages import (
    CodeContent,
    FileContent,
    ImageContent,
    Message,
    MessageContent,
    StorageFileContent,
    TextContent,
)
from ..schemas.results import Failure, GeneratedFragment
from ..stores.blobs import BlobStore
from .prompt import to_prompt
from .templates import Template

logger = structlog.get_logger()


async def resolve_storage_files(
    messages: Sequence[Message], blob_store: BlobStore | None
) -> list[Message]:
    """Replace every storage-file block with an inline file block.

    A block that cannot be downloaded (or any block when there is no blob
    store) becomes a text placeholder; generation continues without it.
    """
    resolved: list[Message] = []
    for message in messages:
        content: list[MessageContent] = []
        for block in message.content:
            if isinstance(block, StorageFileContent):
                content.append(await _download(block, blob_store))
            else:
                content.append(block)
        resolved.append(message.model_copy(update={"content": content}))
    return resolved


async def _download(block: StorageFileContent, blob_store: BlobStore | None) -> MessageContent:
    placeholder = TextContent(text=f"[PDF: {block.filename} - failed to load]")
    if blob_store is None:
        return placeholder
    try:
        data, mime_type = await blob_store.get(block.storage_path)
    except Exception as e:
        logger.warning(
            "storage_file_download_failed",
            storage_path=block.storage_path,
            error=str(e),
            error_type=type(e).__name__,
        )
        return placeholder
    return FileContent(
        data=base64.b64encode(data).decode("ascii"),
        mime_type=mime_type or block.mime_type,
        filename=block.filename,
    )


def _user_part(block: MessageContent) -> dict | None:
    if isinstance(block, TextContent | CodeContent):
        return {"type": "text", "text": block.text}
    if isinstance(block, ImageContent):
        url = block.image
        if not url.startswith("data:"):
            url = f"data:{block.mime_type};base64,{url}"
        return {"type": "image_url", "image_url": {"url": url}}
    if isinstance(block, FileContent):
        return {
            "type": "file",
            "file": {
                "filename": block.filename or "document.pdf",
                "file_data": f"data:{block.mime_type};base64,{block.data}",
            },
        }
    # Unresolved storage references are never sent
    return None


def to_langchain_messages(messages: Sequence[Message]) -> list[BaseMessage]:
    """Convert resolved turns. Assistant turns keep their text only."""
    converted: list[BaseMessage] = []
    for message in messages:
        if message.role == "user":
            parts = [p for p in (_user_part(b) for b in message.content) if p is not None]
            converted.append(HumanMessage(content=parts))
        else:
            text = "\n\n".join(
                b.text for b in message.content if isinstance(b, TextContent | CodeContent)
            )
            converted.append(AIMessage(content=text))
    return converted


class FragmentGenerator:
    """Calls the LLM with the Fragment schema as its required output."""

    def __init__(self, llm_factory: LLMFactory, max_retries: int = 2):
        self.llm_factory = llm_factory
        self.max_retries = max_retries

    async def generate(
        self,
        messages: Sequence[Message],
        templates: dict[str, Template],
        model: str,
        model_config: ModelConfig | None = None,
        blob_store: BlobStore | None = None,
    ) -> GeneratedFragment | Failure:
        try:
            resolved = await resolve_storage_files(messages, blob_store)
            llm = self.llm_factory.create_llm(model, model_config, max_retries=self.max_retries)
            structured = llm.with_structured_output(
                Fragment, method="function_calling", include_raw=True
            )
            output = await structured.ainvoke(
                [SystemMessage(content=to_prompt(templates)), *to_langchain_messages(resolved)]
            )
        except Exception as e:
            logger.error(
                "fragment_generation_failed",
                model=model,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return Failure(
                error=f"Failed to generate fragment: {e}",
                error_code=ErrorCode.GENERATION_FAILED,
            )

        fragment = output.get("parsed") if isinstance(output, dict) else output
        if not isinstance(fragment, Fragment):
            parsing_error = output.get("parsing_error") if isinstance(output, dict) else None
            logger.warning(
                "fragment_response_invalid",
                model=model,
                parsing_error=str(parsing_error) if parsing_error else None,
            )
            return Failure(
                error="Failed to generate fragment: empty response",
                error_code=ErrorCode.INVALID_RESPONSE,
            )

        logger.info(
            "fragment_generated",
            model=model,
            template=fragment.template,
            has_additional_dependencies=fragment.has_additional_dependencies,
        )
        return GeneratedFragment(fragment=fragment)
