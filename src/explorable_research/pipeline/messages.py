"""Conversation assembly for initial generations and continuations.

Pure data transformations; nothing here performs I/O.
"""

from collections.abc import Sequence

from ..schemas.api import ImageAttachment
from ..schemas.fragment import Fragment
from ..schemas.messages import (
    FileContent,
    ImageContent,
    Message,
    MessageContent,
    StorageFileContent,
    TextContent,
)
from ..schemas.results import PdfReference, StoredPdf

DEFAULT_INSTRUCTION = (
    "Please create an interactive explorable research visualization from this research paper."
)
IMAGE_PLACEHOLDER = "[Image uploaded]"


def _image_blocks(images: Sequence[ImageAttachment] | None) -> list[MessageContent]:
    return [ImageContent(image=i.data, mime_type=i.mime_type.lower()) for i in images or []]


def _pdf_block(pdf: PdfReference) -> MessageContent:
    if isinstance(pdf, StoredPdf):
        return StorageFileContent(
            storage_path=pdf.storage_path,
            mime_type=pdf.mime_type,
            filename=pdf.filename,
            size=pdf.size,
        )
    return FileContent(data=pdf.data, mime_type=pdf.mime_type, filename=pdf.filename)


def paper_header(title: str | None, abstract: str | None) -> str:
    if not title and not abstract:
        return ""
    header = f'Research Paper: "{title or "Untitled"}"\n\n'
    if abstract:
        header += f"Abstract: {abstract}\n\n"
    return header


def build_initial_messages(
    pdf: PdfReference | None = None,
    images: Sequence[ImageAttachment] | None = None,
    instruction: str | None = None,
    title: str | None = None,
    abstract: str | None = None,
) -> list[Message]:
    """One user turn: [PDF], images, then the instruction text."""
    content: list[MessageContent] = []
    if pdf is not None:
        content.append(_pdf_block(pdf))
    content.extend(_image_blocks(images))

    text = paper_header(title, abstract) + (instruction or DEFAULT_INSTRUCTION)
    content.append(TextContent(text=text))

    return [Message(role="user", content=content)]


def summarize_fragment(fragment: Fragment) -> str:
    code = fragment.bundle().render()
    return (
        f"I created an interactive visualization with the following code:\n\n"
        f"```\n{code}\n```\n\n{fragment.commentary}"
    )


def append_continuation(
    existing: Sequence[Message],
    instruction: str,
    images: Sequence[ImageAttachment] | None = None,
    previous_fragment: Fragment | None = None,
) -> list[Message]:
    """Return ``existing`` plus a summary of the previous fragment and the new user turn."""
    messages = list(existing)
    if previous_fragment is not None:
        messages.append(
            Message(role="assistant", content=[TextContent(text=summarize_fragment(previous_fragment))])
        )

    content = _image_blocks(images)
    content.append(TextContent(text=instruction))
    messages.append(Message(role="user", content=content))
    return messages


def _sanitize_block(block: MessageContent) -> MessageContent:
    if isinstance(block, ImageContent):
        return TextContent(text=IMAGE_PLACEHOLDER)
    if isinstance(block, FileContent):
        return TextContent(text=f"[File uploaded: {block.filename or 'document'}]")
    return block


def sanitize_messages_for_storage(messages: Sequence[Message]) -> list[Message]:
    """Replace inline image and file payloads with short text placeholders.

    Storage-file blocks are references without bytes and are kept, so a
    continuation can resolve the PDF again. Idempotent.
    """
    return [
        m.model_copy(update={"content": [_sanitize_block(b) for b in m.content]})
        for m in messages
    ]

