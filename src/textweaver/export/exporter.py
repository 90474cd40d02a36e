"""
Project exporter.

Writes one file per (language, format) pair, or a single zip archive
holding all of them.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from textweaver.config import ExportFormat
from textweaver.export.aggregator import LanguageDocument, build_language_documents
from textweaver.export.docx import render_docx
from textweaver.export.html import render_html
from textweaver.export.markdown import render_markdown, render_text

if TYPE_CHECKING:
    from textweaver.database import Database

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Result of an export operation."""

    project_id: int
    project_name: str
    language: str
    format: ExportFormat
    output_path: Path
    chunks_exported: int
    total_chunks: int
    success: bool
    # Name inside the archive when the export was bundled
    archive_member: str | None = None


def _encode(render: Callable[[LanguageDocument], str]) -> Callable[[LanguageDocument], bytes]:
    return lambda document: render(document).encode("utf-8")


RENDERERS: dict[ExportFormat, Callable[[LanguageDocument], bytes]] = {
    ExportFormat.TXT: _encode(render_text),
    ExportFormat.MARKDOWN: _encode(render_markdown),
    ExportFormat.HTML: _encode(render_html),
    ExportFormat.DOCX: render_docx,
}


class ProjectExporter:
    """Exports a project's translations to files."""

    def __init__(self, db: Database, output_dir: Path | str) -> None:
        """
        Initialize the exporter.

        Args:
            db: Database holding projects and chunks.
            output_dir: Directory for exported files.
        """
        self.db = db
        self.output_dir = Path(output_dir)

    def export(
        self,
        project_id: int,
        languages: Iterable[str] | None = None,
        formats: Iterable[ExportFormat | str] = (ExportFormat.TXT,),
        bundle: bool = False,
    ) -> list[ExportResult]:
        """
        Export a project.

        Languages without any translated chunk still produce a labelled,
        empty document; partial languages produce partial documents.

        Args:
            project_id: Project to export.
            languages: Languages to export; defaults to the project targets.
            formats: Output formats.
            bundle: Zip the files together when more than one is produced.

        Returns:
            One ExportResult per (language, format) pair.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        documents = build_language_documents(self.db, project_id, languages)
        formats = [ExportFormat(fmt) for fmt in dict.fromkeys(formats)]
        if not documents or not formats:
            return []

        self.output_dir.mkdir(parents=True, exist_ok=True)
        safe_name = self._sanitize_filename(documents[0].project_name) or f"project_{project_id}"

        rendered: list[tuple[LanguageDocument, ExportFormat, str, bytes]] = []
        for document in documents:
            for fmt in formats:
                language = self._sanitize_filename(document.language) or "unknown"
                file_name = f"{safe_name}_{language}.{fmt.value}"
                rendered.append((document, fmt, file_name, RENDERERS[fmt](document)))

        if bundle and len(rendered) > 1:
            archive = self.output_dir / f"{safe_name}_translations.zip"
            with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for _, _, file_name, payload in rendered:
                    zf.writestr(file_name, payload)
            logger.info("Exported %d files to %s", len(rendered), archive)
            return [
                self._result(project_id, document, fmt, archive, archive_member=file_name)
                for document, fmt, file_name, _ in rendered
            ]

        results = []
        for document, fmt, file_name, payload in rendered:
            output_path = self.output_dir / file_name
            output_path.write_bytes(payload)
            logger.info("Exported %s", output_path)
            results.append(self._result(project_id, document, fmt, output_path))
        return results

    @staticmethod
    def _result(
        project_id: int,
        document: LanguageDocument,
        fmt: ExportFormat,
        output_path: Path,
        archive_member: str | None = None,
    ) -> ExportResult:
        return ExportResult(
            project_id=project_id,
            project_name=document.project_name,
            language=document.language,
            format=fmt,
            output_path=output_path,
            chunks_exported=document.chunks_translated,
            total_chunks=document.total_chunks,
            success=True,
            archive_member=archive_member,
        )

    def _sanitize_filename(self, name: str) -> str:
        """Sanitize filename for filesystem compatibility."""
        return "".join(c if c.isalnum() or c in "._- " else "_" for c in name).strip()
