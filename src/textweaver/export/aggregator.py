"""
Aggregation of chunk translations into per-language documents.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from textweaver.exceptions import ProjectNotFoundError

if TYPE_CHECKING:
    from textweaver.database import Database, TranslationChunk

CHUNK_SEPARATOR = "\n\n"


@dataclass
class LanguageDocument:
    """Translated text of one project in one language, ready to render."""

    project_name: str
    language: str
    text: str
    chunks_translated: int
    total_chunks: int
    file_type: str = "text"

    @property
    def is_complete(self) -> bool:
        return self.total_chunks > 0 and self.chunks_translated == self.total_chunks


def _join_translations(chunks: list[TranslationChunk], language: str) -> tuple[str, int]:
    translated = sorted(
        (chunk for chunk in chunks if chunk.translations.get(language)),
        key=lambda chunk: chunk.chunk_index,
    )
    return CHUNK_SEPARATOR.join(c.translations[language] for c in translated), len(translated)


def build_language_texts(
    db: Database,
    project_id: int,
    languages: Iterable[str] | None = None,
) -> dict[str, str]:
    """
    Concatenate each language's translated chunks in chunk order.

    Chunks without a translation for a language (never attempted, or
    abandoned after retries) are left out. A language with no translated
    chunk maps to an empty string.

    Args:
        db: Store holding the project.
        project_id: Project to aggregate.
        languages: Languages to include; defaults to the project targets.

    Returns:
        Mapping of language code to text.

    Raises:
        ProjectNotFoundError: If the project does not exist.
    """
    return {
        doc.language: doc.text for doc in build_language_documents(db, project_id, languages)
    }


def build_language_documents(
    db: Database,
    project_id: int,
    languages: Iterable[str] | None = None,
) -> list[LanguageDocument]:
    """Like ``build_language_texts`` but with the metadata renderers need."""
    project = db.get_project(project_id)
    if project is None:
        raise ProjectNotFoundError(f"Project {project_id} not found", code="not_found")

    chunks = db.get_project_chunks(project_id)
    wanted = list(languages) if languages is not None else list(project.target_languages)

    documents = []
    for language in dict.fromkeys(wanted):
        text, count = _join_translations(chunks, language)
        documents.append(
            LanguageDocument(
                project_name=project.name,
                language=language,
                text=text,
                chunks_translated=count,
                total_chunks=len(chunks),
                file_type=project.file_type,
            )
        )
    return documents
