"""Sandbox execution results, discriminated by template kind."""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Discriminator, Tag, TypeAdapter
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    # Persisted as sbxId / runtimeError / cellResults
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class RuntimeErrorInfo(_CamelModel):
    name: str
    value: str
    traceback: str = ""


class ExecutionResultWeb(_CamelModel):
    """A served template: the fragment is reachable at a URL."""

    sbx_id: str
    template: str
    url: str


class ExecutionResultInterpreter(_CamelModel):
    """An interpreter template: the fragment was run and its output captured."""

    sbx_id: str
    template: str
    stdout: list[str] = []
    stderr: list[str] = []
    runtime_error: RuntimeErrorInfo | None = None
    cell_results: list[dict[str, Any]] = []


def _result_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "web" if "url" in value else "interpreter"
    return "web" if isinstance(value, ExecutionResultWeb) else "interpreter"


ExecutionResult = Annotated[
    Annotated[ExecutionResultWeb, Tag("web")]
    | Annotated[ExecutionResultInterpreter, Tag("interpreter")],
    Discriminator(_result_kind),
]

_execution_result_adapter: TypeAdapter[ExecutionResult] = TypeAdapter(ExecutionResult)


def parse_execution_result(data: dict[str, Any]) -> ExecutionResultWeb | ExecutionResultInterpreter:
    return _execution_result_adapter.validate_python(data)


def dump_execution_result(result: ExecutionResultWeb | ExecutionResultInterpreter) -> dict:
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


def preview_url(result: dict[str, Any] | None) -> str | None:
    """URL of a stored web result; interpreter results have none."""
    if not result:
        return None
    return result.get("url") or None


def sandbox_id(result: dict[str, Any] | None) -> str | None:
    if not result:
        return None
    return result.get("sbxId") or None
