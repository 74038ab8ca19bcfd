"""Typed component results.

Every pipeline component returns either its own success model or a shared
``Failure``; exceptions do not cross component boundaries unless unexpected.
"""

from typing import Literal

from pydantic import BaseModel

from ..errors import ErrorCode
from .execution import ExecutionResultInterpreter, ExecutionResultWeb
from .fragment import Fragment


class Failure(BaseModel):
    success: Literal[False] = False
    error: str
    error_code: ErrorCode


class StoredPdf(BaseModel):
    kind: Literal["storage"] = "storage"
    storage_path: str
    filename: str
    size: int
    mime_type: str = "application/pdf"


class InlinePdf(BaseModel):
    kind: Literal["inline"] = "inline"
    data: str  # base64
    filename: str
    size: int
    mime_type: str = "application/pdf"


PdfReference = StoredPdf | InlinePdf


class ResolvedSource(BaseModel):
    success: Literal[True] = True
    pdf: StoredPdf | InlinePdf
    arxiv_id: str | None = None
    title: str | None = None
    abstract: str = ""


class GeneratedFragment(BaseModel):
    success: Literal[True] = True
    fragment: Fragment


class SandboxExecution(BaseModel):
    success: Literal[True] = True
    result: ExecutionResultWeb | ExecutionResultInterpreter
