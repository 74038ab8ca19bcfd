"""Code sandbox capability backed by E2B."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from e2b_code_interpreter import AsyncSandbox
import structlog

logger = structlog.get_logger()

_RESULT_FORMATS = (
    "text",
    "html",
    "markdown",
    "svg",
    "png",
    "jpeg",
    "pdf",
    "latex",
    "json",
    "javascript",
    "chart",
    "is_main_result",
    "extra",
)


@dataclass
class CodeExecution:
    """Output of one ``run_code`` call."""

    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)
    error: dict[str, str] | None = None
    results: list[dict[str, Any]] = field(default_factory=list)


class SandboxHandle(Protocol):
    """A live sandbox instance."""

    @property
    def sandbox_id(self) -> str: ...

    async def run_command(self, command: str) -> None: ...

    async def write_file(self, path: str, content: str) -> None: ...

    async def run_code(self, code: str) -> CodeExecution: ...

    def host(self, port: int) -> str: ...


class SandboxProvider(Protocol):
    async def create(
        self, template: str, metadata: dict[str, str], timeout_seconds: int
    ) -> SandboxHandle: ...

    async def connect(self, sandbox_id: str) -> SandboxHandle: ...

    async def kill(self, sandbox_id: str) -> bool: ...


def _serialize_result(result: Any) -> dict[str, Any]:
    data = {}
    for name in _RESULT_FORMATS:
        value = getattr(result, name, None)
        if value is None:
            continue
        if not isinstance(value, str | int | float | bool | dict | list):
            value = str(value)
        data[name] = value
    return data


class E2BSandboxHandle:
    def __init__(self, sandbox: AsyncSandbox, command_timeout: float):
        self._sandbox = sandbox
        self._command_timeout = command_timeout

    @property
    def sandbox_id(self) -> str:
        return self._sandbox.sandbox_id

    async def run_command(self, command: str) -> None:
        # Raises CommandExitException on a non-zero exit code
        await self._sandbox.commands.run(command, timeout=self._command_timeout)

    async def write_file(self, path: str, content: str) -> None:
        await self._sandbox.files.write(path, content)

    async def run_code(self, code: str) -> CodeExecution:
        execution = await self._sandbox.run_code(code)
        error = None
        if execution.error is not None:
            error = {
                "name": execution.error.name,
                "value": execution.error.value,
                "traceback": execution.error.traceback,
            }
        return CodeExecution(
            stdout=list(execution.logs.stdout),
            stderr=list(execution.logs.stderr),
            error=error,
            results=[_serialize_result(r) for r in execution.results],
        )

    def host(self, port: int) -> str:
        return self._sandbox.get_host(port)


class E2BSandboxProvider:
    """Creates, reconnects to and kills E2B sandboxes."""

    def __init__(self, api_key: str, command_timeout_seconds: float = 300):
        self.api_key = api_key
        self.command_timeout_seconds = command_timeout_seconds

    async def create(
        self, template: str, metadata: dict[str, str], timeout_seconds: int
    ) -> E2BSandboxHandle:
        sandbox = await AsyncSandbox.create(
            template=template,
            metadata=metadata,
            timeout=timeout_seconds,
            api_key=self.api_key,
        )
        logger.info("sandbox_created", sandbox_id=sandbox.sandbox_id, template=template)
        return E2BSandboxHandle(sandbox, self.command_timeout_seconds)

    async def connect(self, sandbox_id: str) -> E2BSandboxHandle:
        sandbox = await AsyncSandbox.connect(sandbox_id, api_key=self.api_key)
        logger.info("sandbox_connected", sandbox_id=sandbox_id)
        return E2BSandboxHandle(sandbox, self.command_timeout_seconds)

    async def kill(self, sandbox_id: str) -> bool:
        """Kill a sandbox by id. Failures are logged and reported as False."""
        try:
            killed = await AsyncSandbox.kill(sandbox_id, api_key=self.api_key)
        except Exception as e:
            logger.warning(
                "sandbox_kill_failed",
                sandbox_id=sandbox_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        logger.info("sandbox_killed", sandbox_id=sandbox_id, killed=killed)
        return bool(killed)
