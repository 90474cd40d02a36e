"""
Export module for textweaver.

Aggregates chunk translations per language and renders them as plain
text, Markdown, HTML or DOCX.
"""

from textweaver.export.aggregator import (
    LanguageDocument,
    build_language_documents,
    build_language_texts,
)
from textweaver.export.exporter import ExportResult, ProjectExporter

__all__ = [
    "ExportResult",
    "LanguageDocument",
    "ProjectExporter",
    "build_language_documents",
    "build_language_texts",
]
