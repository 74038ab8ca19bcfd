"""Project pipeline: drives a project from its source to a running preview.

Status advances ``created -> generating_code -> creating_sandbox ->
[installing_dependencies] -> executing_code -> ready``; ``failed`` may follow
any state. Every status is persisted before the work of that step starts.
"""

import asyncio
from collections.abc import Coroutine, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from ..clients.arxiv import extract_arxiv_id
from ..errors import ErrorCode
from ..llm.catalog import ModelConfig, get_default_model, get_model_by_id
from ..logging_config import bind_project
from ..models.project import ProjectStatus
from ..schemas.api import ImageAttachment
from ..schemas.execution import dump_execution_result
from ..schemas.fragment import Fragment
from ..schemas.messages import Message, TextContent, dump_messages, load_messages
from ..schemas.project import ProjectRecord
from ..schemas.results import Failure, ResolvedSource
from ..stores.blobs import BlobStore
from ..stores.projects import ProjectStore
from .fragment_generator import FragmentGenerator
from .messages import append_continuation, build_initial_messages, sanitize_messages_for_storage
from .sandbox_orchestrator import SandboxOrchestrator
from .source_resolver import (
    ArxivSource,
    Source,
    SourceResolver,
    UploadedPdf,
    too_large_message,
)
from .templates import Template, TemplateRegistry

logger = structlog.get_logger()

UNTITLED = "Untitled Project"
DESCRIPTION_FROM_ABSTRACT_CHARS = 200
INTERNAL_FAILURE_MESSAGE = "Internal error while processing project"
GENERATED_COMMENTARY = "Generated interactive visualization."
UPDATED_COMMENTARY = "Updated interactive visualization."


@dataclass
class GenerationOptions:
    """Caller-controlled knobs shared by create and continue."""

    instruction: str | None = None
    images: Sequence[ImageAttachment] = field(default_factory=list)
    model: str | None = None
    model_config: ModelConfig | None = None


@dataclass
class _Run:
    """Everything one generation run needs after its preconditions passed."""

    project_id: str
    user_id: str
    model: str
    model_config: ModelConfig | None
    template_id: str
    templates: dict[str, Template]
    prompt: list[Message]
    history: list[Message]
    fallback_title: str
    fallback_description: str | None = None
    previous_sandbox_id: str | None = None
    is_continuation: bool = False


def title_from_filename(filename: str | None) -> str | None:
    if not filename:
        return None
    stem = filename[:-4] if filename.lower().endswith(".pdf") else filename
    title = stem.replace("-", " ").replace("_", " ").strip()
    return title or None


def fallback_title(resolved: ResolvedSource) -> str:
    return resolved.title or title_from_filename(resolved.pdf.filename) or UNTITLED


def fallback_description(resolved: ResolvedSource) -> str | None:
    return resolved.abstract[:DESCRIPTION_FROM_ABSTRACT_CHARS] or None


class ProjectProcessor:
    """Coordinates source resolution, generation and sandbox deployment.

    The ``*_sync`` methods run the whole pipeline and return the terminal
    record or the failure. The ``*_async`` methods validate, persist a
    ``created`` project, schedule the run as a background task, and return
    at once.
    """

    def __init__(
        self,
        projects: ProjectStore,
        resolver: SourceResolver,
        generator: FragmentGenerator,
        sandboxes: SandboxOrchestrator,
        templates: TemplateRegistry,
        blob_store: BlobStore | None = None,
        default_model: str = "google/gemini-3-pro-preview",
    ):
        self.projects = projects
        self.resolver = resolver
        self.generator = generator
        self.sandboxes = sandboxes
        self.templates = templates
        self.blob_store = blob_store
        self.default_model = default_model
        self._tasks: set[asyncio.Task] = set()

    # -- entry points -----------------------------------------------------

    async def create_sync(
        self, user_id: str, source: Source, template: str, options: GenerationOptions
    ) -> ProjectRecord | Failure:
        checked = self._check_generation(template, options)
        if isinstance(checked, Failure):
            return checked
        model, templates, template_id = checked

        resolved = await self.resolver.resolve(source, user_id, self.blob_store)
        if isinstance(resolved, Failure):
            return resolved

        record = await self.projects.insert(
            user_id, title=fallback_title(resolved), template=template_id
        )
        bind_project(record.id)
        run = self._initial_run(record.id, user_id, model, templates, template_id, resolved, options)
        return await self._execute_sync(run)

    async def create_async(
        self, user_id: str, source: Source, template: str, options: GenerationOptions
    ) -> ProjectRecord | Failure:
        checked = self._check_generation(template, options)
        if isinstance(checked, Failure):
            return checked
        model, templates, template_id = checked

        precheck = self._precheck_source(source, user_id)
        if precheck is not None:
            return precheck

        record = await self.projects.insert(user_id, template=template_id)

        async def run_pipeline() -> None:
            # Resolution runs while the project is still `created`
            resolved = await self.resolver.resolve(source, user_id, self.blob_store)
            if isinstance(resolved, Failure):
                await self._fail(record.id, resolved)
                return
            await self.projects.update(record.id, title=fallback_title(resolved))
            run = self._initial_run(
                record.id, user_id, model, templates, template_id, resolved, options
            )
            await self._execute(run)

        self._spawn(record.id, run_pipeline())
        return record

    async def continue_sync(
        self, project_id: str, user_id: str, options: GenerationOptions
    ) -> ProjectRecord | Failure:
        run = await self._prepare_continuation(project_id, user_id, options)
        if isinstance(run, Failure):
            return run
        bind_project(project_id)
        return await self._execute_sync(run)

    async def continue_async(
        self, project_id: str, user_id: str, options: GenerationOptions
    ) -> ProjectRecord | Failure:
        run = await self._prepare_continuation(project_id, user_id, options)
        if isinstance(run, Failure):
            return run
        record = await self.projects.get(project_id, user_id)
        if record is None:
            return _not_found()
        self._spawn(project_id, self._execute(run))
        return record

    async def process_fragment_async(
        self,
        user_id: str,
        fragment: Fragment,
        title: str | None = None,
        description: str | None = None,
        messages: list[dict[str, Any]] | None = None,
    ) -> ProjectRecord | Failure:
        """Store a caller-supplied fragment and deploy it in the background.

        No generation happens; the first status after ``created`` is
        ``creating_sandbox``. Unknown templates are rejected before anything
        is persisted.
        """
        templates = self.templates.resolve(fragment.template)
        if templates is None:
            return _template_not_found(fragment.template)
        template_id = next(iter(templates))
        fragment = fragment.model_copy(update={"template": template_id})

        record = await self.projects.insert(
            user_id,
            title=title or fragment.title or UNTITLED,
            description=description or fragment.description or None,
            template=template_id,
            fragment=fragment.model_dump(mode="json"),
            messages=dump_messages(sanitize_messages_for_storage(load_messages(messages))),
        )

        async def deploy() -> None:
            outcome = await self.sandboxes.create_from_fragment(
                fragment, user_id, on_stage=self._stage_writer(record.id)
            )
            if isinstance(outcome, Failure):
                await self._fail(record.id, outcome)
                return
            await self.projects.update(
                record.id,
                status=ProjectStatus.READY,
                result=dump_execution_result(outcome.result),
                error_message=None,
            )
            logger.info("project_ready", project_id=record.id)

        self._spawn(record.id, deploy())
        return record

    async def delete(self, project_id: str, user_id: str) -> bool:
        """Delete a project, killing its sandbox first (best effort)."""
        record = await self.projects.get(project_id, user_id)
        if record is None:
            return False
        if record.sandbox_id:
            await self.sandboxes.kill(record.sandbox_id)
        return await self.projects.delete(project_id, user_id)

    async def drain(self) -> None:
        """Wait for every in-flight background run."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- preconditions ----------------------------------------------------

    def _check_model(self, options: GenerationOptions) -> str | Failure:
        if options.model is None:
            return get_default_model(self.default_model).id
        if get_model_by_id(options.model) is None:
            return Failure(error="Invalid model ID", error_code=ErrorCode.INVALID_MODEL)
        return options.model

    def _check_generation(
        self, template: str, options: GenerationOptions
    ) -> tuple[str, dict[str, Template], str] | Failure:
        model = self._check_model(options)
        if isinstance(model, Failure):
            return model
        templates = self.templates.resolve(template)
        if templates is None:
            return _template_not_found(template)
        return model, templates, next(iter(templates))

    def _precheck_source(self, source: Source, user_id: str) -> Failure | None:
        """Reject what can be rejected before anything is persisted."""
        if isinstance(source, ArxivSource):
            if extract_arxiv_id(source.reference) is None:
                return Failure(
                    error="Invalid ArXiv URL or ID format", error_code=ErrorCode.INVALID_URL
                )
        elif isinstance(source, UploadedPdf):
            limit = self.resolver.size_limit(bool(user_id) and self.blob_store is not None)
            if len(source.data) > limit:
                return Failure(
                    error=too_large_message(len(source.data), limit),
                    error_code=ErrorCode.TOO_LARGE,
                )
        return None

    async def _prepare_continuation(
        self, project_id: str, user_id: str, options: GenerationOptions
    ) -> _Run | Failure:
        model = self._check_model(options)
        if isinstance(model, Failure):
            return model

        record = await self.projects.get(project_id, user_id)
        if record is None:
            return _not_found()
        if record.status != ProjectStatus.READY:
            return _not_ready(record.status)

        previous = Fragment.model_validate(record.fragment) if record.fragment else None
        template = (previous.template if previous else None) or record.template
        templates = self.templates.resolve(template) if template else None
        if templates is None:
            return _template_not_found(template or "")

        # Conditional ready -> created write; loses to a concurrent continuation
        if not await self.projects.claim_ready(project_id, user_id):
            latest = await self.projects.get(project_id, user_id)
            return _not_ready(latest.status if latest else ProjectStatus.CREATED)
        logger.info("project_continuation_started", project_id=project_id)

        existing = load_messages(record.messages)
        prompt = append_continuation(
            existing, options.instruction or "", options.images, previous_fragment=previous
        )
        return _Run(
            project_id=project_id,
            user_id=user_id,
            model=model,
            model_config=options.model_config,
            template_id=next(iter(templates)),
            templates=templates,
            prompt=prompt,
            history=existing + prompt[-1:],
            fallback_title=record.title or UNTITLED,
            fallback_description=record.description,
            previous_sandbox_id=record.sandbox_id,
            is_continuation=True,
        )

    def _initial_run(
        self,
        project_id: str,
        user_id: str,
        model: str,
        templates: dict[str, Template],
        template_id: str,
        resolved: ResolvedSource,
        options: GenerationOptions,
    ) -> _Run:
        prompt = build_initial_messages(
            pdf=resolved.pdf,
            images=options.images,
            instruction=options.instruction,
            title=resolved.title,
            abstract=resolved.abstract,
        )
        return _Run(
            project_id=project_id,
            user_id=user_id,
            model=model,
            model_config=options.model_config,
            template_id=template_id,
            templates=templates,
            prompt=prompt,
            history=list(prompt),
            fallback_title=fallback_title(resolved),
            fallback_description=fallback_description(resolved),
        )

    # -- execution --------------------------------------------------------

    async def _execute_sync(self, run: _Run) -> ProjectRecord | Failure:
        try:
            outcome = await self._execute(run)
        except Exception:
            logger.error("project_processing_crashed", project_id=run.project_id, exc_info=True)
            await self._fail(
                run.project_id,
                Failure(error=INTERNAL_FAILURE_MESSAGE, error_code=ErrorCode.INTERNAL_ERROR),
            )
            raise
        if isinstance(outcome, Failure):
            return outcome
        record = await self.projects.get(run.project_id, run.user_id)
        return record if record is not None else _not_found()

    async def _execute(self, run: _Run) -> None | Failure:
        """Generate, deploy, persist. Returns the failure that stopped the run."""
        await self.projects.update(run.project_id, status=ProjectStatus.GENERATING_CODE)
        generated = await self.generator.generate(
            run.prompt, run.templates, run.model, run.model_config, self.blob_store
        )
        if isinstance(generated, Failure):
            await self._fail(run.project_id, generated)
            return generated

        fragment = generated.fragment.model_copy(update={"template": run.template_id})
        await self.projects.update(
            run.project_id,
            fragment=fragment.model_dump(mode="json"),
            template=run.template_id,
            title=fragment.title or run.fallback_title,
            description=fragment.description or run.fallback_description,
        )

        on_stage = self._stage_writer(run.project_id)
        if run.is_continuation:
            outcome = await self.sandboxes.update_code(
                run.previous_sandbox_id, fragment, run.user_id, on_stage
            )
        else:
            outcome = await self.sandboxes.create_from_fragment(fragment, run.user_id, on_stage)
        if isinstance(outcome, Failure):
            await self._fail(run.project_id, outcome)
            return outcome

        result = dump_execution_result(outcome.result)
        commentary = fragment.commentary or (
            UPDATED_COMMENTARY if run.is_continuation else GENERATED_COMMENTARY
        )
        history = sanitize_messages_for_storage(run.history) + [
            Message(
                role="assistant",
                content=[TextContent(text=commentary)],
                object=fragment.model_dump(mode="json"),
                result=result,
            )
        ]
        await self.projects.update(
            run.project_id,
            status=ProjectStatus.READY,
            result=result,
            messages=dump_messages(history),
            error_message=None,
        )
        logger.info("project_ready", project_id=run.project_id, sandbox_id=outcome.result.sbx_id)
        return None

    def _stage_writer(self, project_id: str):
        async def write_stage(status: ProjectStatus) -> None:
            await self.projects.update(project_id, status=status)

        return write_stage

    async def _fail(self, project_id: str, failure: Failure) -> None:
        await self.projects.update(
            project_id, status=ProjectStatus.FAILED, error_message=failure.error, result=None
        )
        logger.warning(
            "project_failed",
            project_id=project_id,
            error=failure.error,
            error_code=failure.error_code.value,
        )

    def _spawn(self, project_id: str, work: Coroutine[Any, Any, Any]) -> None:
        async def guarded() -> None:
            bind_project(project_id)
            try:
                await work
            except Exception:
                logger.error("project_processing_crashed", project_id=project_id, exc_info=True)
                await self._fail(
                    project_id,
                    Failure(error=INTERNAL_FAILURE_MESSAGE, error_code=ErrorCode.INTERNAL_ERROR),
                )

        task = asyncio.create_task(guarded())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def _not_found() -> Failure:
    return Failure(error="Project not found", error_code=ErrorCode.NOT_FOUND)


def _not_ready(status: ProjectStatus) -> Failure:
    return Failure(
        error=f"Project is not ready (current status: {status.value})",
        error_code=ErrorCode.PROJECT_NOT_READY,
    )


def _template_not_found(template_id: str) -> Failure:
    return Failure(error=f"Template not found: {template_id}", error_code=ErrorCode.TEMPLATE_NOT_FOUND)
