"""Runs a fragment in a sandbox and reports where (or what) it produced."""

from collections.abc import Awaitable, Callable

import structlog

from ..clients.sandbox import SandboxHandle, SandboxProvider
from ..errors import ErrorCode
from ..models.project import ProjectStatus
from ..schemas.execution import ExecutionResultInterpreter, ExecutionResultWeb, RuntimeErrorInfo
from ..schemas.fragment import Fragment
from ..schemas.results import Failure, SandboxExecution
from .strategy import first_success
from .templates import is_interpreter_template

logger = structlog.get_logger()

DEFAULT_WEB_PORT = 80

StageCallback = Callable[[ProjectStatus], Awaitable[None]]


async def _no_stage(status: ProjectStatus) -> None:
    return None


class SandboxOrchestrator:
    """Provisions sandboxes, installs dependencies, deploys and runs code.

    ``on_stage`` is awaited before each stage's external call so a status
    poller sees the stage in flight.
    """

    def __init__(self, provider: SandboxProvider, timeout_seconds: int = 600):
        self.provider = provider
        self.timeout_seconds = timeout_seconds

    async def create_from_fragment(
        self,
        fragment: Fragment,
        user_id: str = "",
        on_stage: StageCallback = _no_stage,
    ) -> SandboxExecution | Failure:
        await on_stage(ProjectStatus.CREATING_SANDBOX)
        sandbox = await self._create(fragment, user_id)
        if isinstance(sandbox, Failure):
            return sandbox
        return await self._deploy(sandbox, fragment, on_stage)

    async def update_code(
        self,
        existing_sandbox_id: str | None,
        fragment: Fragment,
        user_id: str = "",
        on_stage: StageCallback = _no_stage,
    ) -> SandboxExecution | Failure:
        """Deploy into the existing sandbox, or a fresh one if it is gone.

        Only acquisition falls back: once code is being deployed, a failure
        is reported as is.
        """
        if not existing_sandbox_id:
            return await self.create_from_fragment(fragment, user_id, on_stage)

        await on_stage(ProjectStatus.CREATING_SANDBOX)
        sandbox = await first_success(
            lambda: self._connect(existing_sandbox_id),
            lambda: self._create(fragment, user_id),
            step="sandbox_reuse",
        )
        if isinstance(sandbox, Failure):
            return sandbox
        return await self._deploy(sandbox, fragment, on_stage)

    async def _create(self, fragment: Fragment, user_id: str) -> SandboxHandle | Failure:
        try:
            return await self.provider.create(
                fragment.template,
                metadata={"template": fragment.template, "userID": user_id},
                timeout_seconds=self.timeout_seconds,
            )
        except Exception as e:
            logger.error(
                "sandbox_creation_failed",
                template=fragment.template,
                error=str(e),
                error_type=type(e).__name__,
            )
            return Failure(
                error=f"Failed to create sandbox: {e}",
                error_code=ErrorCode.SANDBOX_CREATION_FAILED,
            )

    async def _connect(self, sandbox_id: str) -> SandboxHandle | Failure:
        try:
            return await self.provider.connect(sandbox_id)
        except Exception as e:
            # Expired sandboxes are routine
            return Failure(
                error=f"Failed to connect to sandbox: {e}",
                error_code=ErrorCode.SANDBOX_CREATION_FAILED,
            )

    async def _deploy(
        self, sandbox: SandboxHandle, fragment: Fragment, on_stage: StageCallback
    ) -> SandboxExecution | Failure:
        try:
            outcome = await self._run_stages(sandbox, fragment, on_stage)
        except Exception:
            await self._cleanup(sandbox.sandbox_id)
            raise

        if isinstance(outcome, Failure):
            await self._cleanup(sandbox.sandbox_id)
        return outcome

    async def _run_stages(
        self, sandbox: SandboxHandle, fragment: Fragment, on_stage: StageCallback
    ) -> SandboxExecution | Failure:
        sandbox_id = sandbox.sandbox_id

        if fragment.has_additional_dependencies and fragment.install_dependencies_command:
            await on_stage(ProjectStatus.INSTALLING_DEPENDENCIES)
            try:
                await sandbox.run_command(fragment.install_dependencies_command)
            except Exception as e:
                logger.error("dependency_install_failed", sandbox_id=sandbox_id, error=str(e))
                return Failure(
                    error=f"Failed to install dependencies: {e}",
                    error_code=ErrorCode.DEPENDENCY_INSTALL_FAILED,
                )

        await on_stage(ProjectStatus.EXECUTING_CODE)
        bundle = fragment.bundle()
        try:
            for source in bundle.files:
                await sandbox.write_file(source.path, source.content)
        except Exception as e:
            logger.error("code_write_failed", sandbox_id=sandbox_id, error=str(e))
            return Failure(
                error=f"Failed to write code to sandbox: {e}",
                error_code=ErrorCode.CODE_WRITE_FAILED,
            )

        if is_interpreter_template(fragment.template):
            try:
                execution = await sandbox.run_code(bundle.entrypoint().content)
            except Exception as e:
                logger.error("code_execution_failed", sandbox_id=sandbox_id, error=str(e))
                return Failure(
                    error=f"Code execution failed: {e}",
                    error_code=ErrorCode.EXECUTION_FAILED,
                )
            result = ExecutionResultInterpreter(
                sbx_id=sandbox_id,
                template=fragment.template,
                stdout=execution.stdout,
                stderr=execution.stderr,
                runtime_error=RuntimeErrorInfo(**execution.error) if execution.error else None,
                cell_results=execution.results,
            )
        else:
            host = sandbox.host(fragment.port or DEFAULT_WEB_PORT)
            result = ExecutionResultWeb(
                sbx_id=sandbox_id, template=fragment.template, url=f"https://{host}"
            )

        logger.info("sandbox_deployed", sandbox_id=sandbox_id, template=fragment.template)
        return SandboxExecution(result=result)

    async def _cleanup(self, sandbox_id: str) -> None:
        # Best effort: the original failure is what the caller sees
        try:
            killed = await self.provider.kill(sandbox_id)
        except Exception as e:
            logger.warning("sandbox_cleanup_failed", sandbox_id=sandbox_id, error=str(e))
            return
        logger.info("sandbox_cleanup", sandbox_id=sandbox_id, killed=killed)

    async def kill(self, sandbox_id: str) -> bool:
        return await self.provider.kill(sandbox_id)
