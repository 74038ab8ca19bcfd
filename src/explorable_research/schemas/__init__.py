"""Pydantic schemas."""

from .api import (
    ArxivRequest,
    ContinueProjectRequest,
    CreateFromFragmentRequest,
    CreateProjectRequest,
    ImageAttachment,
    PdfUploadRequest,
    project_payload,
    status_payload,
)
from .execution import (
    ExecutionResult,
    ExecutionResultInterpreter,
    ExecutionResultWeb,
    RuntimeErrorInfo,
    dump_execution_result,
    parse_execution_result,
)
from .fragment import CodeBundle, FileEntry, Fragment, MultiFile, SingleFile, SourceFile
from .messages import (
    CodeContent,
    FileContent,
    ImageContent,
    Message,
    MessageContent,
    StorageFileContent,
    TextContent,
    dump_messages,
    load_messages,
)
from .project import ProjectRecord
from .results import (
    Failure,
    GeneratedFragment,
    InlinePdf,
    PdfReference,
    ResolvedSource,
    SandboxExecution,
    StoredPdf,
)

__all__ = [
    "ArxivRequest",
    "CodeBundle",
    "CodeContent",
    "ContinueProjectRequest",
    "CreateFromFragmentRequest",
    "CreateProjectRequest",
    "ExecutionResult",
    "ExecutionResultInterpreter",
    "ExecutionResultWeb",
    "Failure",
    "FileContent",
    "FileEntry",
    "Fragment",
    "GeneratedFragment",
    "ImageAttachment",
    "ImageContent",
    "InlinePdf",
    "Message",
    "MessageContent",
    "MultiFile",
    "PdfReference",
    "PdfUploadRequest",
    "ProjectRecord",
    "ResolvedSource",
    "RuntimeErrorInfo",
    "SandboxExecution",
    "SingleFile",
    "SourceFile",
    "StorageFileContent",
    "StoredPdf",
    "TextContent",
    "dump_execution_result",
    "dump_messages",
    "load_messages",
    "parse_execution_result",
    "project_payload",
    "status_payload",
]
