"""
Document ingestion.

Reads plain text, Markdown and DOCX files and registers them as
translation projects.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from docx import Document
from docx.table import Table

from textweaver.database import Database, Project, ProjectSettings, ProjectStatus

logger = logging.getLogger(__name__)

FILE_TYPES = {
    ".txt": "text",
    ".md": "markdown",
    ".markdown": "markdown",
    ".docx": "docx",
}

_FALLBACK_ENCODINGS = ("latin-1", "cp1252")


def read_document(path: Path | str) -> tuple[str, str]:
    """
    Read a document's text.

    Args:
        path: .txt, .md/.markdown or .docx file.

    Returns:
        Tuple of (text, file_type). DOCX content is returned as Markdown.

    Raises:
        ValueError: If the file type is not supported.
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    file_type = FILE_TYPES.get(path.suffix.lower())
    if file_type is None:
        supported = ", ".join(sorted(FILE_TYPES))
        raise ValueError(f"Unsupported file type: {path.suffix or path.name}. Use: {supported}")
    if not path.exists():
        raise FileNotFoundError(path)

    if file_type == "docx":
        return _read_docx(path), file_type
    return _read_text(path), file_type


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        # latin-1 decodes any byte sequence, so this loop always returns
        for encoding in _FALLBACK_ENCODINGS:
            try:
                content = path.read_text(encoding=encoding)
            except UnicodeDecodeError:
                continue
            logger.warning("%s is not UTF-8, decoded as %s", path.name, encoding)
            return content
        raise


def _table_to_markdown(table: Table) -> str:
    """Convert a DOCX table to markdown format."""
    rows = []
    for row in table.rows:
        cells = [cell.text.strip().replace("\n", " ") for cell in row.cells]
        rows.append("| " + " | ".join(cells) + " |")

    if rows:
        num_cols = len(table.rows[0].cells)
        rows.insert(1, "| " + " | ".join(["---"] * num_cols) + " |")

    return "\n".join(rows)


def _read_docx(path: Path) -> str:
    """Extract paragraphs, headings, lists and tables in document order as Markdown."""
    doc = Document(str(path))
    paragraphs = {para._element: para for para in doc.paragraphs}
    tables = {table._element: table for table in doc.tables}

    content_parts = []
    for element in doc.element.body:
        if element in paragraphs:
            para = paragraphs[element]
            text = para.text.strip()
            if not text:
                continue

            style_name = para.style.name if para.style is not None else ""
            if style_name.startswith("Heading"):
                try:
                    level = min(int(style_name.replace("Heading", "").strip() or 1), 6)
                except ValueError:
                    level = 1
                content_parts.append(f"{'#' * level} {text}")
            elif style_name == "Title":
                content_parts.append(f"# {text}")
            elif style_name == "Subtitle":
                content_parts.append(f"## {text}")
            elif "List" in style_name:
                content_parts.append(f"- {text}")
            else:
                content_parts.append(text)

        elif element in tables:
            content_parts.append(_table_to_markdown(tables[element]))

    return "\n\n".join(content_parts)


def create_project_from_text(
    db: Database,
    name: str,
    text: str,
    source_language: str,
    target_languages: Iterable[str],
    settings: ProjectSettings | None = None,
    file_type: str = "text",
) -> int:
    """
    Register a new pending project.

    Chunks are not created here; the orchestrator splits the text on the
    first run.

    Args:
        db: Project store.
        name: Display name.
        text: Extracted document text.
        source_language: Source code or "auto".
        target_languages: Target codes in processing order; duplicates
            and the source language itself are dropped.
        settings: Project settings; defaults apply when None.
        file_type: text, markdown or docx.

    Returns:
        The new project's ID.

    Raises:
        ValueError: If the text is empty or no target language remains.
    """
    if not text.strip():
        raise ValueError("Document text is empty")

    source_language = (source_language or "auto").strip().lower()
    targets = [
        lang
        for lang in dict.fromkeys(code.strip().lower() for code in target_languages)
        if lang and lang != source_language
    ]
    if not targets:
        raise ValueError("At least one target language different from the source is required")

    project_id = db.create_project(
        Project(
            name=name,
            source_language=source_language,
            target_languages=targets,
            original_content=text,
            file_type=file_type,
            status=ProjectStatus.PENDING,
            settings=settings or ProjectSettings(),
        )
    )
    db.log(
        "INFO",
        "ingest",
        f"Project created with {len(targets)} target language(s)",
        project_id=project_id,
        context={"name": name, "characters": len(text), "file_type": file_type},
    )
    logger.info("Created project %d (%s)", project_id, name)
    return project_id
