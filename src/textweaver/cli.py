"""
Command-line interface for textweaver.

Provides commands for importing, translating, scoring and exporting
documents.
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from textweaver.config import ExportFormat, Settings, create_default_config, load_config
from textweaver.database import (
    Database,
    MemoryConfigStore,
    ProjectSettings,
    ProjectStatus,
    TranslationStyle,
)
from textweaver.exceptions import TextweaverError
from textweaver.export import ProjectExporter
from textweaver.ingest import create_project_from_text, read_document
from textweaver.languages import language_name
from textweaver.llm import ProviderConfig, ProviderGateway, ProviderId
from textweaver.llm.prompts import DETECTION_SAMPLE_CHARS
from textweaver.logging_config import setup_logging
from textweaver.quality import QualityEstimator
from textweaver.translation import (
    TranslationCallbacks,
    TranslationOrchestrator,
    TranslationProgress,
)

app = typer.Typer(
    name="textweaver",
    help="Translate documents into several languages through LLM providers",
    add_completion=False,
)
provider_app = typer.Typer(help="Inspect or change the active translation provider")
app.add_typer(provider_app, name="provider")

console = Console()

STATUS_STYLES = {
    ProjectStatus.PENDING: "dim",
    ProjectStatus.PROCESSING: "cyan",
    ProjectStatus.PAUSED: "yellow",
    ProjectStatus.COMPLETED: "green",
    ProjectStatus.ERROR: "red",
}


def get_settings(config_path: Path | None) -> Settings:
    """Load settings and configure logging."""
    if config_path and not config_path.exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        raise typer.Exit(1)
    settings = load_config(config_path)
    setup_logging(settings.logging, console=console)
    return settings


def get_database(settings: Settings) -> Database:
    """Get database instance."""
    settings.paths.database_path.parent.mkdir(parents=True, exist_ok=True)
    return Database(settings.paths.database_path)


def get_gateway(settings: Settings, db: Database) -> ProviderGateway:
    """
    Build the gateway.

    The provider stored in the database wins; the config file's provider
    section is used when none has been stored.
    """
    store: Database | MemoryConfigStore = db
    if db.get_provider_config() is None and settings.provider.api_key:
        store = MemoryConfigStore(settings.provider.to_provider_config())
    return ProviderGateway(
        store,
        timeout=settings.provider.timeout_seconds,
        temperature=settings.provider.temperature,
    )


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[red]{error}[/red]")
    return typer.Exit(1)


# ==================== Setup ====================


@app.command()
def init(
    output_path: Path = typer.Option(
        Path("config.yaml"),
        "--output",
        "-o",
        help="Output path for config file",
    ),
) -> None:
    """Generate a default configuration file."""
    if output_path.exists():
        overwrite = typer.confirm(f"{output_path} already exists. Overwrite?")
        if not overwrite:
            raise typer.Abort()

    create_default_config(output_path)
    console.print(f"[green]Created config file: {output_path}[/green]")
    console.print("\nSet your API key, then run:")
    console.print("  textweaver add ./documents/report.txt --target es --config config.yaml")


@provider_app.command("show")
def provider_show(
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Show the active provider."""
    settings = get_settings(config)
    db = get_database(settings)

    stored = db.get_provider_config()
    active = stored or settings.provider.to_provider_config()
    source = "database" if stored else "config file"

    table = Table(show_header=False, box=None)
    table.add_column("", style="dim")
    table.add_column("")
    table.add_row("Provider", active.provider)
    table.add_row("Model", active.resolved_model or "[red]not set[/red]")
    table.add_row("Base URL", active.resolved_base_url or "[red]not set[/red]")
    table.add_row("Requests/min", str(active.resolved_rpm))
    table.add_row("API key", active.masked_key() or "[red]not set[/red]")
    table.add_row("Source", source)

    try:
        active.validate()
        border = "green"
    except TextweaverError as e:
        table.add_row("Status", f"[red]{e}[/red]")
        border = "red"

    console.print(Panel(table, title="[bold]Translation Provider[/bold]", border_style=border))


@provider_app.command("set")
def provider_set(
    provider: ProviderId = typer.Argument(..., help="gemini, openai, chutes or custom"),
    api_key: str = typer.Option(..., "--api-key", "-k", help="Provider API key"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model (default: catalog)"),
    base_url: str | None = typer.Option(None, "--base-url", help="Endpoint base URL"),
    rpm: int | None = typer.Option(None, "--rpm", help="Requests per minute", min=1),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Persist the active provider."""
    settings = get_settings(config)
    db = get_database(settings)
    gateway = ProviderGateway(db)

    provider_config = ProviderConfig(
        provider=provider.value,
        api_key=api_key,
        base_url=base_url,
        model=model,
        requests_per_minute=rpm,
    )
    try:
        gateway.set_provider(provider_config)
    except TextweaverError as e:
        raise _fail(e) from None

    console.print(
        f"[green]Provider set to {provider_config.provider} "
        f"({provider_config.resolved_model})[/green]"
    )


# ==================== Projects ====================


@app.command()
def add(
    file: Path = typer.Argument(..., help="Document to import (.txt, .md, .docx)"),
    name: str | None = typer.Option(None, "--name", "-n", help="Project name"),
    source: str | None = typer.Option(
        None, "--source", "-s", help="Source language or 'auto' (default: from config)"
    ),
    target: list[str] | None = typer.Option(
        None, "--target", "-t", help="Target language (repeatable, default: from config)"
    ),
    chunk_size: int | None = typer.Option(None, "--chunk-size", help="Characters per chunk"),
    style: TranslationStyle | None = typer.Option(None, "--style", help="Translation style"),
    max_retries: int | None = typer.Option(
        None, "--max-retries", help="Attempts per chunk and language", min=1
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Import a document as a new project."""
    settings = get_settings(config)
    db = get_database(settings)

    try:
        text, file_type = read_document(file)
    except (ValueError, FileNotFoundError) as e:
        raise _fail(e) from None

    source_lang = (source or settings.translation.source_language).lower()
    if source_lang == "auto":
        gateway = get_gateway(settings, db)
        if gateway.is_configured():
            with console.status("Detecting language..."):
                source_lang = asyncio.run(
                    _detect(gateway, text[:DETECTION_SAMPLE_CHARS])
                )
            if source_lang != "auto":
                console.print(f"Detected language: [cyan]{language_name(source_lang)}[/cyan]")

    defaults = settings.translation
    project_settings = ProjectSettings(
        chunk_size=chunk_size or defaults.chunk_size,
        max_retries=max_retries or defaults.max_retries,
        translation_style=style or defaults.translation_style,
        preserve_formatting=defaults.preserve_formatting,
        context_aware=defaults.context_aware,
    )

    try:
        project_id = create_project_from_text(
            db,
            name=name or file.stem,
            text=text,
            source_language=source_lang,
            target_languages=target or defaults.target_languages,
            settings=project_settings,
            file_type=file_type,
        )
    except ValueError as e:
        raise _fail(e) from None

    project = db.get_project(project_id)
    console.print(
        f"[green]Created project {project_id}[/green]: {project.name} "
        f"({project.source_language} -> {', '.join(project.target_languages)})"
    )


async def _detect(gateway: ProviderGateway, sample: str) -> str:
    try:
        return await gateway.detect_language(sample)
    finally:
        await gateway.aclose()


@app.command()
def projects(
    status: ProjectStatus | None = typer.Option(None, "--status", help="Filter by status"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """List projects."""
    settings = get_settings(config)
    db = get_database(settings)

    all_projects = db.get_all_projects(status)
    if not all_projects:
        console.print("[yellow]No projects found[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Languages")
    table.add_column("Chunks", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Status")

    for project in all_projects:
        style = STATUS_STYLES.get(project.status, "white")
        table.add_row(
            str(project.id),
            project.name,
            f"{project.source_language} -> {', '.join(project.target_languages)}",
            str(project.total_chunks),
            f"{project.progress:.0f}%",
            f"[{style}]{project.status.value}[/{style}]",
        )

    console.print(table)


# ==================== Translation ====================


@app.command()
def translate(
    project_id: int = typer.Argument(..., help="Project ID"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Translate a project. Ctrl+C pauses; run again to resume."""
    settings = get_settings(config)
    db = get_database(settings)
    gateway = get_gateway(settings, db)

    project = db.get_project(project_id)
    if not project:
        console.print(f"[red]Project {project_id} not found[/red]")
        raise typer.Exit(1)

    processing = settings.processing
    orchestrator = TranslationOrchestrator(
        db,
        gateway,
        unit_delay=processing.unit_delay,
        retry_backoff=processing.retry_backoff,
        rate_limit_backoff=processing.rate_limit_backoff,
        quality_estimator=QualityEstimator(gateway) if processing.quality_check else None,
    )

    console.print(
        f"\n[bold]Translating {project.name}[/bold] "
        f"({project.source_language} -> {', '.join(project.target_languages)})\n"
    )

    async def run():
        loop = asyncio.get_running_loop()
        pending: set[asyncio.Task] = set()

        def request_pause() -> None:
            console.print("\n[yellow]Pausing after the current chunk...[/yellow]")
            task = loop.create_task(orchestrator.pause_translation(project_id))
            pending.add(task)
            task.add_done_callback(pending.discard)

        try:
            loop.add_signal_handler(signal.SIGINT, request_pause)
        except NotImplementedError:
            # Windows: KeyboardInterrupt is handled below
            pass

        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TextColumn("{task.fields[eta]}"),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task_id = progress.add_task("Starting", total=100, eta="")

                def on_progress(update: TranslationProgress) -> None:
                    eta = (
                        f"ETA {update.estimated_time_remaining:.0f}s"
                        if update.estimated_time_remaining
                        else ""
                    )
                    progress.update(
                        task_id,
                        completed=update.percentage,
                        description=(
                            f"{language_name(update.current_language)} "
                            f"{update.completed_units}/{update.total_units}"
                        ),
                        eta=eta,
                    )

                return await orchestrator.start_translation(
                    project_id, TranslationCallbacks(on_progress=on_progress)
                )
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except NotImplementedError:
                pass
            await gateway.aclose()

    try:
        summary = asyncio.run(run())
    except KeyboardInterrupt:
        asyncio.run(orchestrator.pause_translation(project_id))
        console.print("[yellow]Paused[/yellow]")
        raise typer.Exit(130) from None
    except TextweaverError as e:
        raise _fail(e) from None

    result_table = Table(show_header=False, box=None)
    result_table.add_column("", style="dim")
    result_table.add_column("")
    result_table.add_row("Units", f"{summary.units_completed}/{summary.units_total} translated")
    result_table.add_row("Failed", str(summary.units_failed))
    result_table.add_row("Tokens", f"~{summary.tokens_used}")

    if summary.status == ProjectStatus.COMPLETED:
        title, border = "[green]✓ Completed[/green]", "green"
        if summary.units_failed:
            title, border = "[yellow]Completed with failures[/yellow]", "yellow"
    elif summary.status == ProjectStatus.PAUSED:
        title, border = "[yellow]⏸ Paused[/yellow]", "yellow"
        result_table.add_row("Resume", f"textweaver translate {project_id}")
    else:
        title, border = "[red]✗ Failed[/red]", "red"
        if summary.error:
            result_table.add_row("Error", f"[red]{summary.error}[/red]")

    console.print(Panel(result_table, title=title, border_style=border))
    if summary.status == ProjectStatus.ERROR:
        raise typer.Exit(1)


@app.command()
def reset(
    project_id: int = typer.Argument(..., help="Project ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Discard all translations of a project."""
    settings = get_settings(config)
    db = get_database(settings)

    if not yes and not typer.confirm(f"Clear every translation of project {project_id}?"):
        raise typer.Abort()

    orchestrator = TranslationOrchestrator(db, get_gateway(settings, db))
    try:
        asyncio.run(orchestrator.reset_translation(project_id))
    except TextweaverError as e:
        raise _fail(e) from None
    console.print(f"[green]Project {project_id} reset[/green]")


@app.command()
def delete(
    project_id: int = typer.Argument(..., help="Project ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Delete a project and its chunks."""
    settings = get_settings(config)
    db = get_database(settings)

    if not yes and not typer.confirm(f"Delete project {project_id}?"):
        raise typer.Abort()

    orchestrator = TranslationOrchestrator(db, get_gateway(settings, db))
    try:
        asyncio.run(orchestrator.delete_project(project_id))
    except TextweaverError as e:
        raise _fail(e) from None
    console.print(f"[green]Project {project_id} deleted[/green]")


@app.command()
def quality(
    project_id: int = typer.Argument(..., help="Project ID"),
    lang: str = typer.Option(..., "--lang", "-l", help="Target language"),
    chunk: int = typer.Option(0, "--chunk", help="Chunk index"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Score one translated chunk."""
    settings = get_settings(config)
    db = get_database(settings)

    translation_chunk = db.get_chunk(project_id, chunk)
    if translation_chunk is None:
        console.print(f"[red]Chunk {chunk} of project {project_id} not found[/red]")
        raise typer.Exit(1)
    if not translation_chunk.is_translated(lang):
        console.print(f"[red]Chunk {chunk} has no {lang} translation[/red]")
        raise typer.Exit(1)

    gateway = get_gateway(settings, db)

    async def assess():
        try:
            return await QualityEstimator(gateway).assess(
                translation_chunk.original_text, translation_chunk.translations[lang], lang
            )
        finally:
            await gateway.aclose()

    with console.status("Scoring translation..."):
        scores = asyncio.run(assess())

    table = Table(title=f"Quality - chunk {chunk} ({language_name(lang)})")
    table.add_column("Metric", style="cyan")
    table.add_column("Score", justify="right")
    for metric, score in scores.to_dict().items():
        table.add_row(metric.replace("_", " ").title(), str(score))
    console.print(table)


# ==================== Export ====================


@app.command()
def export(
    project_id: int = typer.Argument(..., help="Project ID"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output directory"),
    lang: list[str] | None = typer.Option(
        None, "--lang", "-l", help="Language to export (repeatable, default: all targets)"
    ),
    formats: list[ExportFormat] | None = typer.Option(
        None, "--format", "-f", help="Output format (repeatable)"
    ),
    bundle: bool | None = typer.Option(
        None, "--bundle/--no-bundle", help="Zip all files into one archive"
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Export translated documents."""
    settings = get_settings(config)
    db = get_database(settings)

    exporter = ProjectExporter(db, output or settings.paths.output_dir)
    try:
        results = exporter.export(
            project_id,
            languages=lang or settings.export.languages or None,
            formats=formats or settings.export.formats,
            bundle=settings.export.bundle if bundle is None else bundle,
        )
    except TextweaverError as e:
        raise _fail(e) from None

    if not results:
        console.print("[yellow]Nothing to export[/yellow]")
        return

    table = Table(title="Exported")
    table.add_column("Language")
    table.add_column("Format")
    table.add_column("Chunks", justify="right")
    table.add_column("File", style="cyan")
    for result in results:
        chunks = f"{result.chunks_exported}/{result.total_chunks}"
        if result.chunks_exported < result.total_chunks:
            chunks = f"[yellow]{chunks}[/yellow]"
        location = str(result.output_path)
        if result.archive_member:
            location = f"{location} :: {result.archive_member}"
        table.add_row(result.language, result.format.value, chunks, location)
    console.print(table)


# ==================== Monitoring ====================


@app.command()
def logs(
    project_id: int | None = typer.Option(None, "--project", "-p", help="Filter by project"),
    level: str | None = typer.Option(None, "--level", "-l", help="Filter by level"),
    stage: str | None = typer.Option(None, "--stage", "-s", help="Filter by stage"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max entries to show"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """View processing logs."""
    settings = get_settings(config)
    db = get_database(settings)

    entries = db.get_logs(project_id=project_id, level=level, stage=stage, limit=limit)
    if not entries:
        console.print("[yellow]No log entries found[/yellow]")
        return

    table = Table(title="Processing Logs")
    table.add_column("Time", style="dim")
    table.add_column("Level")
    table.add_column("Stage", style="cyan")
    table.add_column("Message")
    table.add_column("Project", justify="right")

    for entry in entries:
        lvl = entry["level"]
        level_style = {
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
        }.get(lvl, "white")

        table.add_row(
            str(entry["created_at"])[:19],
            f"[{level_style}]{lvl}[/{level_style}]",
            entry["stage"] or "",
            (entry["message"] or "")[:60],
            str(entry["project_id"] or ""),
        )

    console.print(table)


@app.command()
def stats(
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Show processing statistics."""
    settings = get_settings(config)
    db = get_database(settings)

    stats_data = db.get_statistics()

    console.print(
        Panel(
            f"""
Projects: {stats_data["total_projects"]}
  - Completed: {stats_data["completed_projects"]}
  - Processing: {stats_data["processing_projects"]}
  - Paused: {stats_data["paused_projects"]}
  - Pending: {stats_data["pending_projects"]}
  - Failed: {stats_data["failed_projects"]}

Chunks: {stats_data["total_chunks"]}
  - Failed: {stats_data["error_chunks"]}

Translations: {stats_data["translated_units"]}
        """.strip(),
            title="Processing Statistics",
        )
    )


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
