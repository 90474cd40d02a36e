"""
Plain text and Markdown renderers for translated documents.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from textweaver.languages import language_name

if TYPE_CHECKING:
    from textweaver.export.aggregator import LanguageDocument

EMPTY_NOTICE = "No translation available yet."


def render_text(document: LanguageDocument, clean: bool = True) -> str:
    """
    Render a document as plain text.

    Args:
        document: Aggregated translation.
        clean: If True, output the translation only; otherwise prefix a
            title and language header.
    """
    if clean:
        return document.text

    header = f"{document.project_name} ({language_name(document.language)})"
    parts = [header, "=" * len(header), ""]
    parts.append(document.text or EMPTY_NOTICE)
    return "\n".join(parts) + "\n"


def render_markdown(document: LanguageDocument, clean: bool = False) -> str:
    """
    Render a document as Markdown.

    Args:
        document: Aggregated translation.
        clean: If True, export without the metadata header.
    """
    content_parts = []

    if not clean:
        content_parts.append(f"# {document.project_name}")
        content_parts.append("")
        content_parts.append(
            f"**Language:** {language_name(document.language)} ({document.language.upper()})"
        )
        content_parts.append(
            f"**Chunks:** {document.chunks_translated}/{document.total_chunks}"
        )
        if not document.is_complete:
            content_parts.append("**Status:** partial")
        content_parts.append("")
        content_parts.append("---")
        content_parts.append("")

    content_parts.append(document.text if document.text else f"_{EMPTY_NOTICE}_")
    content_parts.append("")
    return "\n".join(content_parts)
