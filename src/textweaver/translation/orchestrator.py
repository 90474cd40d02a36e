"""
Translation orchestrator.

Drives a project through its target languages and chunks (language-major,
chunk-minor), persisting every result so a paused or failed run can resume
without repeating finished work.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from textweaver.chunker import estimate_tokens, split_into_chunks
from textweaver.database import (
    ChunkStatus,
    Database,
    Project,
    ProjectStatus,
    TranslationChunk,
)
from textweaver.exceptions import (
    AlreadyRunningError,
    ConfigError,
    InvalidStateError,
    ProjectNotFoundError,
    ProviderError,
    RateLimitError,
)
from textweaver.llm.gateway import ProviderGateway
from textweaver.llm.prompts import TranslationOptions
from textweaver.quality import QualityEstimator

logger = logging.getLogger(__name__)


@dataclass
class TranslationProgress:
    """Progress information for callbacks."""

    percentage: float
    current_language: str
    estimated_time_remaining: float  # seconds, 0 until a unit completes
    tokens_used: int  # rough estimate, not billing-accurate
    completed_units: int = 0
    total_units: int = 0
    failed_units: int = 0


ProgressCallback = Callable[[TranslationProgress], None]


@dataclass
class TranslationCallbacks:
    """Optional hooks invoked as the run's state changes."""

    on_progress: ProgressCallback | None = None
    on_complete: Callable[[], None] | None = None
    on_error: Callable[[Exception], None] | None = None


@dataclass
class RunSummary:
    """Outcome of one ``start_translation`` call."""

    project_id: int
    status: ProjectStatus
    units_total: int = 0
    units_completed: int = 0
    units_failed: int = 0
    tokens_used: int = 0
    # Reset or deleted while running; nothing was written after that point
    cancelled: bool = False
    error: str | None = None


@dataclass
class _ActiveRun:
    """Control state of one running loop."""

    paused: bool = False
    provider_calls: int = 0
    failed_units: int = 0
    tokens_used: int = 0
    units_done: int = 0
    started_at: float = 0.0
    # Quality assessments still running in the background
    quality_tasks: set[asyncio.Task] = field(default_factory=set)


class TranslationOrchestrator:
    """
    Per-project translation state machine.

    At most one loop runs per project id; loops for different projects may
    run concurrently on the same event loop and share the gateway's rate
    limits.
    """

    def __init__(
        self,
        db: Database,
        gateway: ProviderGateway,
        *,
        unit_delay: float = 0.1,
        retry_backoff: float = 1.0,
        rate_limit_backoff: float = 10.0,
        quality_estimator: QualityEstimator | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            db: Project and chunk store.
            gateway: Provider gateway.
            unit_delay: Seconds between consecutive provider calls.
            retry_backoff: Base seconds of the backoff between attempts.
            rate_limit_backoff: Seconds to wait after a provider 429.
            quality_estimator: Scores each translated unit when set.
            clock: Monotonic clock for ETA computation.
            sleep: Async sleep for delays and backoff.
        """
        self.db = db
        self.gateway = gateway
        self.unit_delay = unit_delay
        self.retry_backoff = retry_backoff
        self.rate_limit_backoff = rate_limit_backoff
        self.quality_estimator = quality_estimator
        self._clock = clock
        self._sleep = sleep
        self._active: dict[int, _ActiveRun] = {}

    # ==================== Run control ====================

    def is_active(self, project_id: int) -> bool:
        return project_id in self._active

    def active_projects(self) -> list[int]:
        return list(self._active)

    def _is_current(self, project_id: int, run: _ActiveRun) -> bool:
        """Whether ``run`` still owns the project (not reset, deleted or replaced)."""
        return self._active.get(project_id) is run

    async def pause_translation(self, project_id: int) -> bool:
        """
        Ask a running loop to stop at the next unit boundary.

        The in-flight provider call, if any, is allowed to finish and its
        result is kept.

        Returns:
            True if a running loop was signalled.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        project = self._require_project(project_id)
        run = self._active.get(project_id)
        if run is None:
            # Left in processing by an interrupted process
            if project.status == ProjectStatus.PROCESSING:
                self.db.update_project(project_id, status=ProjectStatus.PAUSED)
            return False

        run.paused = True
        self.db.update_project(project_id, status=ProjectStatus.PAUSED)
        self.db.log("INFO", "translation", "Pause requested", project_id=project_id)
        logger.info("Pause requested for project %d", project_id)
        return True

    async def reset_translation(self, project_id: int) -> None:
        """
        Discard every translation of a project and return it to pending.

        A loop still running for the project stops at its next boundary and
        any result it receives afterwards is dropped.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        self._require_project(project_id)
        self._cancel(project_id)
        self.db.reset_project_chunks(project_id)
        self.db.update_project(
            project_id,
            status=ProjectStatus.PENDING,
            progress=0.0,
            completed_chunks=0,
        )
        self.db.log("INFO", "reset", "Translations cleared", project_id=project_id)
        logger.info("Project %d reset", project_id)

    async def delete_project(self, project_id: int) -> None:
        """
        Delete a project and its chunks, cancelling any running loop.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        self._require_project(project_id)
        self._cancel(project_id)
        self.db.delete_project(project_id)
        self.db.log("INFO", "delete", "Project deleted", project_id=project_id)
        logger.info("Project %d deleted", project_id)

    def _cancel(self, project_id: int) -> None:
        run = self._active.pop(project_id, None)
        if run is not None:
            run.paused = True

    def _require_project(self, project_id: int) -> Project:
        project = self.db.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project {project_id} not found", code="not_found")
        return project

    # ==================== Translation loop ====================

    async def start_translation(
        self,
        project_id: int,
        callbacks: TranslationCallbacks | None = None,
    ) -> RunSummary:
        """
        Translate every pending (chunk, language) unit of a project.

        Starting a paused, errored or pending project resumes it: units that
        already have a translation are skipped without calling the provider.

        Args:
            project_id: Project to translate.
            callbacks: Progress, completion and error hooks.

        Returns:
            Summary of the run. Failures inside the run are reported through
            ``on_error`` and the summary rather than raised.

        Raises:
            AlreadyRunningError: A loop is already active for the project.
            ProjectNotFoundError: The project does not exist.
            InvalidStateError: The project is completed with nothing left to do.
        """
        callbacks = callbacks or TranslationCallbacks()

        if project_id in self._active:
            raise AlreadyRunningError(
                f"Translation already in progress for project {project_id}", code="already_running"
            )
        project = self._require_project(project_id)
        if project.status == ProjectStatus.COMPLETED and not self._has_pending_units(project):
            raise InvalidStateError(
                f"Project {project_id} is already completed; reset it to translate again",
                code="already_completed",
            )

        run = _ActiveRun(started_at=self._clock())
        self._active[project_id] = run
        summary = RunSummary(project_id=project_id, status=ProjectStatus.PROCESSING)

        try:
            self.db.update_project(project_id, status=ProjectStatus.PROCESSING)
            self.db.log(
                "INFO",
                "translation",
                f"Run started for {len(project.target_languages)} language(s)",
                project_id=project_id,
                context={"run_id": self.db.run_id, "languages": project.target_languages},
            )

            # Fails the whole run before any unit is attempted
            config = self.gateway.get_active_config()
            logger.info(
                "Translating project %d with %s (%s)",
                project_id,
                config.provider,
                config.resolved_model,
            )

            chunks = self._ensure_chunks(project)
            await self._run_units(project, chunks, run, callbacks, summary)
            summary.units_failed = run.failed_units

            if not self._is_current(project_id, run):
                summary.cancelled = True
                summary.status = ProjectStatus.PENDING
                return summary

            if run.paused:
                self.db.update_project(project_id, status=ProjectStatus.PAUSED)
                self.db.log(
                    "INFO",
                    "translation",
                    f"Run paused at {summary.units_completed}/{summary.units_total} units",
                    project_id=project_id,
                )
                summary.status = ProjectStatus.PAUSED
                return summary

            self._finish(project_id, summary)
            if callbacks.on_complete:
                callbacks.on_complete()
            return summary

        except Exception as e:
            summary.error = str(e)
            summary.status = ProjectStatus.ERROR
            summary.units_failed = run.failed_units
            if isinstance(e, (ConfigError, ProviderError)):
                logger.error("Translation of project %d failed: %s", project_id, e)
            else:
                logger.exception("Translation of project %d failed", project_id)

            if self._is_current(project_id, run):
                self.db.update_project(project_id, status=ProjectStatus.ERROR)
                self.db.log(
                    "ERROR",
                    "translation",
                    f"Run failed: {e}",
                    project_id=project_id,
                    context={"error_type": type(e).__name__},
                )
            if callbacks.on_error:
                callbacks.on_error(e)
            return summary

        finally:
            await self._drain_quality(run)
            if self._is_current(project_id, run):
                del self._active[project_id]

    def _has_pending_units(self, project: Project) -> bool:
        chunks = self.db.get_project_chunks(project.id)
        if not chunks:
            return True
        return any(
            not chunk.is_translated(lang) for lang in project.target_languages for chunk in chunks
        )

    def _ensure_chunks(self, project: Project) -> list[TranslationChunk]:
        """Reuse stored chunks, or split the original content and store them."""
        chunks = self.db.get_project_chunks(project.id)
        if not chunks:
            texts = split_into_chunks(project.original_content, project.settings.chunk_size)
            chunks = self.db.add_chunks(project.id, texts)
            logger.info("Project %d split into %d chunks", project.id, len(chunks))

        if project.total_chunks != len(chunks):
            self.db.update_project(project.id, total_chunks=len(chunks))
            project.total_chunks = len(chunks)
        return chunks

    async def _run_units(
        self,
        project: Project,
        chunks: list[TranslationChunk],
        run: _ActiveRun,
        callbacks: TranslationCallbacks,
        summary: RunSummary,
    ) -> None:
        project_id = project.id
        languages = list(dict.fromkeys(project.target_languages))
        options = TranslationOptions.from_project(project)

        total_units = len(chunks) * len(languages)
        completed_units = sum(
            1 for lang in languages for chunk in chunks if chunk.is_translated(lang)
        )
        summary.units_total = total_units
        summary.units_completed = completed_units

        if completed_units:
            logger.info(
                "Resuming project %d: %d/%d units already translated",
                project_id,
                completed_units,
                total_units,
            )
        if total_units:
            self.db.update_project(project_id, progress=completed_units / total_units * 100)

        for lang in languages:
            if run.paused or not self._is_current(project_id, run):
                return

            for chunk in chunks:
                if run.paused or not self._is_current(project_id, run):
                    return
                if chunk.is_translated(lang):
                    continue

                translated = await self._translate_unit(project, chunk, lang, options, run)
                if translated is None or not self._is_current(project_id, run):
                    continue

                completed_units += 1
                run.units_done += 1
                run.tokens_used += estimate_tokens(chunk.original_text + translated)
                summary.units_completed = completed_units
                summary.tokens_used = run.tokens_used

                progress = completed_units / total_units * 100
                self.db.update_project(
                    project_id,
                    progress=progress,
                    completed_chunks=sum(1 for c in chunks if c.is_translated(lang)),
                )
                if callbacks.on_progress:
                    callbacks.on_progress(
                        TranslationProgress(
                            percentage=progress,
                            current_language=lang,
                            estimated_time_remaining=self._eta(run, total_units - completed_units),
                            tokens_used=run.tokens_used,
                            completed_units=completed_units,
                            total_units=total_units,
                            failed_units=run.failed_units,
                        )
                    )

                if self.quality_estimator is not None:
                    task = asyncio.create_task(
                        self._assess_unit(project_id, chunk, lang, translated, run)
                    )
                    run.quality_tasks.add(task)
                    task.add_done_callback(run.quality_tasks.discard)

    async def _translate_unit(
        self,
        project: Project,
        chunk: TranslationChunk,
        lang: str,
        options: TranslationOptions,
        run: _ActiveRun,
    ) -> str | None:
        """
        Translate one (chunk, language) unit with bounded retries.

        Returns:
            The translation, or None if the unit was abandoned, paused
            between attempts, or the run lost ownership of the project.
        """
        project_id = project.id
        max_attempts = max(1, project.settings.max_retries)
        attempt = 0

        self.db.update_chunk(chunk.id, status=ChunkStatus.PROCESSING)
        chunk.status = ChunkStatus.PROCESSING

        while True:
            attempt += 1
            await self._throttle(run)
            if not self._is_current(project_id, run):
                return None
            if run.paused:
                chunk.status = ChunkStatus.PENDING
                self.db.update_chunk(chunk.id, status=ChunkStatus.PENDING)
                return None

            try:
                translated = await self.gateway.translate(
                    chunk.original_text, project.source_language, lang, options
                )
            except (ConfigError, ProviderError) as e:
                if not self._is_current(project_id, run):
                    return None

                chunk.retry_count += 1
                self.db.update_chunk(chunk.id, retry_count=chunk.retry_count)
                self.db.log(
                    "WARNING",
                    "translation",
                    f"Chunk {chunk.chunk_index} ({lang}) attempt {attempt} failed: {e}",
                    project_id=project_id,
                    context={
                        "chunk_index": chunk.chunk_index,
                        "language": lang,
                        "error_type": type(e).__name__,
                    },
                )

                if isinstance(e, ConfigError) or attempt >= max_attempts:
                    self._abandon_unit(project_id, chunk, lang, attempt, run)
                    return None

                if isinstance(e, RateLimitError):
                    delay = self.rate_limit_backoff
                else:
                    delay = self.retry_backoff * 2 ** (attempt - 1)
                logger.warning(
                    "Chunk %d (%s) failed (%s), retrying in %.1fs",
                    chunk.chunk_index,
                    lang,
                    e,
                    delay,
                )
                await self._sleep(delay)
                continue

            if not self._is_current(project_id, run):
                return None

            chunk.translations = {**chunk.translations, lang: translated}
            chunk.status = ChunkStatus.COMPLETED
            self.db.update_chunk(
                chunk.id, translations=chunk.translations, status=ChunkStatus.COMPLETED
            )
            return translated

    def _abandon_unit(
        self,
        project_id: int,
        chunk: TranslationChunk,
        lang: str,
        attempts: int,
        run: _ActiveRun,
    ) -> None:
        chunk.status = ChunkStatus.ERROR
        self.db.update_chunk(chunk.id, status=ChunkStatus.ERROR)
        run.failed_units += 1
        self.db.log(
            "ERROR",
            "translation",
            f"Chunk {chunk.chunk_index} ({lang}) abandoned after {attempts} attempt(s)",
            project_id=project_id,
            context={
                "chunk_index": chunk.chunk_index,
                "language": lang,
                "retry_count": chunk.retry_count,
            },
        )
        logger.error(
            "Chunk %d (%s) abandoned after %d attempt(s)", chunk.chunk_index, lang, attempts
        )

    async def _assess_unit(
        self,
        project_id: int,
        chunk: TranslationChunk,
        lang: str,
        translated: str,
        run: _ActiveRun,
    ) -> None:
        scores = await self.quality_estimator.assess(chunk.original_text, translated, lang)
        if self._is_current(project_id, run):
            self.db.log(
                "INFO",
                "quality",
                f"Chunk {chunk.chunk_index} ({lang}) scored {scores.overall}",
                project_id=project_id,
                context={"chunk_index": chunk.chunk_index, "language": lang, **scores.to_dict()},
            )

    async def _drain_quality(self, run: _ActiveRun) -> None:
        """Wait for the run's background assessments before it is released."""
        if not run.quality_tasks:
            return
        results = await asyncio.gather(*run.quality_tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning("Quality assessment failed: %s", result)

    async def _throttle(self, run: _ActiveRun) -> None:
        """Fixed pause between consecutive provider calls of a run."""
        if run.provider_calls and self.unit_delay > 0:
            await self._sleep(self.unit_delay)
        run.provider_calls += 1

    def _eta(self, run: _ActiveRun, remaining_units: int) -> float:
        elapsed = self._clock() - run.started_at
        if run.units_done == 0 or elapsed <= 0:
            return 0.0
        return remaining_units / (run.units_done / elapsed)

    def _finish(self, project_id: int, summary: RunSummary) -> None:
        """Mark a loop that ran to the end as completed."""
        fields: dict = {"status": ProjectStatus.COMPLETED}
        if summary.units_completed >= summary.units_total:
            fields["progress"] = 100.0
        self.db.update_project(project_id, **fields)
        summary.status = ProjectStatus.COMPLETED
        self.db.log(
            "INFO",
            "translation",
            f"Run completed: {summary.units_completed}/{summary.units_total} units, "
            f"{summary.units_failed} failed",
            project_id=project_id,
            context={"tokens_used": summary.tokens_used},
        )
        logger.info(
            "Project %d completed (%d/%d units, %d failed)",
            project_id,
            summary.units_completed,
            summary.units_total,
            summary.units_failed,
        )
