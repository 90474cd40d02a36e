"""
DuckDB database operations for textweaver.

Handles translation projects, their chunks, the active provider
configuration, and the processing log.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import duckdb

if TYPE_CHECKING:
    from textweaver.llm.providers import ProviderConfig


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    PAUSED = "paused"
    READY = "ready"


class ChunkStatus(str, Enum):
    """Status of the current language attempt on a chunk."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class TranslationStyle(str, Enum):
    """Tone requested from the translator."""

    FORMAL = "formal"
    CASUAL = "casual"
    LITERARY = "literary"
    TECHNICAL = "technical"


@dataclass
class ProjectSettings:
    """Per-project translation settings."""

    chunk_size: int = 2000
    max_retries: int = 3
    translation_style: TranslationStyle = TranslationStyle.FORMAL
    preserve_formatting: bool = True
    context_aware: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_size": self.chunk_size,
            "max_retries": self.max_retries,
            "translation_style": self.translation_style.value,
            "preserve_formatting": self.preserve_formatting,
            "context_aware": self.context_aware,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ProjectSettings:
        data = data or {}
        defaults = cls()
        return cls(
            chunk_size=int(data.get("chunk_size", defaults.chunk_size)),
            max_retries=int(data.get("max_retries", defaults.max_retries)),
            translation_style=TranslationStyle(
                data.get("translation_style", defaults.translation_style.value)
            ),
            preserve_formatting=bool(data.get("preserve_formatting", defaults.preserve_formatting)),
            context_aware=bool(data.get("context_aware", defaults.context_aware)),
        )


@dataclass
class Project:
    """Translation project record."""

    id: int | None = None
    name: str = ""
    source_language: str = "auto"
    target_languages: list[str] = field(default_factory=list)
    original_content: str = ""
    file_type: str = "text"
    total_chunks: int = 0
    completed_chunks: int = 0
    progress: float = 0.0
    status: ProjectStatus = ProjectStatus.PENDING
    settings: ProjectSettings = field(default_factory=ProjectSettings)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TranslationChunk:
    """Chunk record: one slice of a project's text and its translations."""

    id: int | None = None
    project_id: int = 0
    chunk_index: int = 0
    original_text: str = ""
    translations: dict[str, str] = field(default_factory=dict)
    status: ChunkStatus = ChunkStatus.PENDING
    retry_count: int = 0
    created_at: datetime | None = None

    def is_translated(self, language: str) -> bool:
        """Whether a non-empty translation exists for the language."""
        return bool(self.translations.get(language))


def _load_json(value: Any, default: Any) -> Any:
    """DuckDB hands JSON columns back as strings; accept both forms."""
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


class Database:
    """DuckDB database wrapper for textweaver."""

    _SCHEMA = """
    -- Translation projects
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY,
        name VARCHAR NOT NULL,
        source_language VARCHAR NOT NULL DEFAULT 'auto',
        target_languages JSON NOT NULL,
        original_content TEXT NOT NULL,
        file_type VARCHAR DEFAULT 'text',
        total_chunks INTEGER DEFAULT 0,
        completed_chunks INTEGER DEFAULT 0,
        progress DOUBLE DEFAULT 0,
        status VARCHAR DEFAULT 'pending',
        settings JSON,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE SEQUENCE IF NOT EXISTS projects_id_seq START 1;

    -- Chunks, logically keyed by (project_id, chunk_index)
    CREATE TABLE IF NOT EXISTS chunks (
        id INTEGER PRIMARY KEY,
        project_id INTEGER NOT NULL,
        chunk_index INTEGER NOT NULL,
        original_text TEXT NOT NULL,
        translations JSON,
        status VARCHAR DEFAULT 'pending',
        retry_count INTEGER DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(project_id, chunk_index)
    );

    CREATE SEQUENCE IF NOT EXISTS chunks_id_seq START 1;

    -- Active provider configuration (single row)
    CREATE TABLE IF NOT EXISTS provider_config (
        slot INTEGER PRIMARY KEY,
        provider VARCHAR NOT NULL,
        api_key VARCHAR NOT NULL,
        base_url VARCHAR,
        model VARCHAR,
        requests_per_minute INTEGER,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    -- Processing log for audit trail
    CREATE TABLE IF NOT EXISTS processing_log (
        id INTEGER PRIMARY KEY,
        run_id VARCHAR NOT NULL,
        project_id INTEGER,
        stage VARCHAR NOT NULL,
        level VARCHAR NOT NULL,
        message TEXT NOT NULL,
        context JSON,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE SEQUENCE IF NOT EXISTS processing_log_id_seq START 1;

    CREATE INDEX IF NOT EXISTS idx_chunks_project ON chunks(project_id);
    CREATE INDEX IF NOT EXISTS idx_log_lookup ON processing_log(run_id, stage, level);
    """

    # Columns accepted by the partial update methods
    _PROJECT_FIELDS = {
        "name",
        "source_language",
        "target_languages",
        "original_content",
        "file_type",
        "total_chunks",
        "completed_chunks",
        "progress",
        "status",
        "settings",
    }
    _CHUNK_FIELDS = {"translations", "status", "retry_count"}

    def __init__(self, db_path: Path | str):
        """Initialize database connection."""
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._run_id = str(uuid.uuid4())

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = duckdb.connect(str(self.db_path))
            self._init_schema()
        return self._conn

    @property
    def run_id(self) -> str:
        """Get current run ID."""
        return self._run_id

    def new_run(self) -> str:
        """Start a new run and return its ID."""
        self._run_id = str(uuid.uuid4())
        return self._run_id

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self.conn.execute(self._SCHEMA)

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """Context manager for transactions."""
        try:
            self.conn.begin()
            yield self.conn
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    # ==================== Projects ====================

    def create_project(self, project: Project) -> int:
        """Insert a project and return its ID."""
        result = self.conn.execute(
            """
            INSERT INTO projects
            (id, name, source_language, target_languages, original_content, file_type,
             total_chunks, completed_chunks, progress, status, settings)
            VALUES (nextval('projects_id_seq'), ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            [
                project.name,
                project.source_language,
                json.dumps(project.target_languages),
                project.original_content,
                project.file_type,
                project.total_chunks,
                project.completed_chunks,
                project.progress,
                project.status.value,
                json.dumps(project.settings.to_dict()),
            ],
        ).fetchone()
        return result[0] if result else 0

    def get_project(self, project_id: int) -> Project | None:
        """Get a project by ID."""
        row = self.conn.execute(
            f"SELECT {self._PROJECT_COLUMNS} FROM projects WHERE id = ?", [project_id]
        ).fetchone()
        if row:
            return self._row_to_project(row)
        return None

    def get_all_projects(self, status: ProjectStatus | None = None) -> list[Project]:
        """Get all projects, optionally filtered by status."""
        if status:
            rows = self.conn.execute(
                f"SELECT {self._PROJECT_COLUMNS} FROM projects WHERE status = ? ORDER BY id",
                [status.value],
            ).fetchall()
        else:
            rows = self.conn.execute(
                f"SELECT {self._PROJECT_COLUMNS} FROM projects ORDER BY id"
            ).fetchall()
        return [self._row_to_project(row) for row in rows]

    def update_project(self, project_id: int, **fields: Any) -> None:
        """
        Update selected project fields.

        Args:
            project_id: Project to update.
            **fields: Column values; enums, lists and settings are serialized.

        Raises:
            ValueError: If a field is not a known project column.
        """
        unknown = set(fields) - self._PROJECT_FIELDS
        if unknown:
            raise ValueError(f"Unknown project fields: {', '.join(sorted(unknown))}")
        if not fields:
            return

        assignments = []
        params: list[Any] = []
        for name, value in fields.items():
            assignments.append(f"{name} = ?")
            params.append(self._serialize(value))

        self.conn.execute(
            f"UPDATE projects SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = ?",
            [*params, project_id],
        )

    def delete_project(self, project_id: int) -> None:
        """Delete a project and all of its chunks."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM chunks WHERE project_id = ?", [project_id])
            conn.execute("DELETE FROM projects WHERE id = ?", [project_id])

    _PROJECT_COLUMNS = (
        "id, name, source_language, target_languages, original_content, file_type, "
        "total_chunks, completed_chunks, progress, status, settings, created_at, updated_at"
    )

    def _row_to_project(self, row: tuple) -> Project:
        """Convert database row to Project."""
        return Project(
            id=row[0],
            name=row[1],
            source_language=row[2],
            target_languages=list(_load_json(row[3], [])),
            original_content=row[4],
            file_type=row[5] or "text",
            total_chunks=row[6] or 0,
            completed_chunks=row[7] or 0,
            progress=float(row[8] or 0.0),
            status=ProjectStatus(row[9]),
            settings=ProjectSettings.from_dict(_load_json(row[10], {})),
            created_at=row[11],
            updated_at=row[12],
        )

    # ==================== Chunks ====================

    def add_chunks(self, project_id: int, texts: Iterable[str]) -> list[TranslationChunk]:
        """Bulk insert chunks with gap-free indexes starting at 0."""
        with self.transaction() as conn:
            for index, text in enumerate(texts):
                conn.execute(
                    """
                    INSERT INTO chunks
                    (id, project_id, chunk_index, original_text, translations, status, retry_count)
                    VALUES (nextval('chunks_id_seq'), ?, ?, ?, ?, ?, 0)
                    """,
                    [project_id, index, text, "{}", ChunkStatus.PENDING.value],
                )
        return self.get_project_chunks(project_id)

    def get_project_chunks(self, project_id: int) -> list[TranslationChunk]:
        """Get all chunks for a project, sorted by chunk index."""
        rows = self.conn.execute(
            f"SELECT {self._CHUNK_COLUMNS} FROM chunks WHERE project_id = ? ORDER BY chunk_index",
            [project_id],
        ).fetchall()
        return [self._row_to_chunk(row) for row in rows]

    def get_chunk(self, project_id: int, chunk_index: int) -> TranslationChunk | None:
        """Get a chunk by its logical key."""
        row = self.conn.execute(
            f"SELECT {self._CHUNK_COLUMNS} FROM chunks WHERE project_id = ? AND chunk_index = ?",
            [project_id, chunk_index],
        ).fetchone()
        if row:
            return self._row_to_chunk(row)
        return None

    def update_chunk(self, chunk_id: int, **fields: Any) -> None:
        """
        Update selected chunk fields (translations, status, retry_count).

        Raises:
            ValueError: If a field is not updatable.
        """
        unknown = set(fields) - self._CHUNK_FIELDS
        if unknown:
            raise ValueError(f"Unknown chunk fields: {', '.join(sorted(unknown))}")
        if not fields:
            return

        assignments = []
        params: list[Any] = []
        for name, value in fields.items():
            assignments.append(f"{name} = ?")
            params.append(self._serialize(value))

        self.conn.execute(
            f"UPDATE chunks SET {', '.join(assignments)} WHERE id = ?",
            [*params, chunk_id],
        )

    def reset_project_chunks(self, project_id: int) -> None:
        """Clear translations and retry bookkeeping; keep rows and original text."""
        self.conn.execute(
            "UPDATE chunks SET translations = '{}', status = ?, retry_count = 0 "
            "WHERE project_id = ?",
            [ChunkStatus.PENDING.value, project_id],
        )

    _CHUNK_COLUMNS = (
        "id, project_id, chunk_index, original_text, translations, status, retry_count, created_at"
    )

    def _row_to_chunk(self, row: tuple) -> TranslationChunk:
        """Convert database row to TranslationChunk."""
        return TranslationChunk(
            id=row[0],
            project_id=row[1],
            chunk_index=row[2],
            original_text=row[3],
            translations=dict(_load_json(row[4], {})),
            status=ChunkStatus(row[5]),
            retry_count=row[6] or 0,
            created_at=row[7],
        )

    @staticmethod
    def _serialize(value: Any) -> Any:
        """Convert Python values to column values."""
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, ProjectSettings):
            return json.dumps(value.to_dict())
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return value

    # ==================== Provider configuration ====================

    def get_provider_config(self) -> ProviderConfig | None:
        """Get the active provider configuration, if one was saved."""
        from textweaver.llm.providers import ProviderConfig

        row = self.conn.execute(
            "SELECT provider, api_key, base_url, model, requests_per_minute "
            "FROM provider_config WHERE slot = 1"
        ).fetchone()
        if not row:
            return None
        return ProviderConfig(
            provider=row[0],
            api_key=row[1],
            base_url=row[2],
            model=row[3],
            requests_per_minute=row[4],
        )

    def set_provider_config(self, config: ProviderConfig) -> None:
        """Save the active provider configuration, replacing the previous one."""
        self.conn.execute(
            """
            INSERT OR REPLACE INTO provider_config
            (slot, provider, api_key, base_url, model, requests_per_minute, updated_at)
            VALUES (1, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            [
                config.provider,
                config.api_key,
                config.base_url,
                config.model,
                config.requests_per_minute,
            ],
        )

    def clear_provider_config(self) -> None:
        """Forget the active provider configuration."""
        self.conn.execute("DELETE FROM provider_config WHERE slot = 1")

    # ==================== Logging ====================

    def log(
        self,
        level: str,
        stage: str,
        message: str,
        project_id: int | None = None,
        context: dict | None = None,
    ) -> None:
        """Insert a log entry."""
        context_json = json.dumps(context) if context else None
        self.conn.execute(
            """
            INSERT INTO processing_log
            (id, run_id, project_id, stage, level, message, context)
            VALUES (nextval('processing_log_id_seq'), ?, ?, ?, ?, ?, ?)
            """,
            [self._run_id, project_id, stage, level, message, context_json],
        )

    def get_logs(
        self,
        project_id: int | None = None,
        level: str | None = None,
        stage: str | None = None,
        limit: int = 100,
    ) -> list[dict]:
        """Get log entries, newest first."""
        conditions = []
        params: list[Any] = []

        if project_id is not None:
            conditions.append("project_id = ?")
            params.append(project_id)
        if level:
            conditions.append("level = ?")
            params.append(level.upper())
        if stage:
            conditions.append("stage = ?")
            params.append(stage)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        rows = self.conn.execute(
            f"""
            SELECT run_id, project_id, stage, level, message, context, created_at
            FROM processing_log
            {where_clause}
            ORDER BY id DESC
            LIMIT ?
            """,
            [*params, limit],
        ).fetchall()

        return [
            {
                "run_id": row[0],
                "project_id": row[1],
                "stage": row[2],
                "level": row[3],
                "message": row[4],
                "context": _load_json(row[5], None),
                "created_at": row[6],
            }
            for row in rows
        ]

    # ==================== Statistics ====================

    def get_statistics(self) -> dict:
        """Get statistics for the CLI (formatted for display)."""
        project_counts = self.conn.execute(
            "SELECT status, COUNT(*) FROM projects GROUP BY status"
        ).fetchall()
        status_map = {row[0]: row[1] for row in project_counts}

        total_chunks = self.conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0] or 0
        error_chunks = (
            self.conn.execute(
                "SELECT COUNT(*) FROM chunks WHERE status = ?", [ChunkStatus.ERROR.value]
            ).fetchone()[0]
            or 0
        )

        translated_units = 0
        for (translations,) in self.conn.execute("SELECT translations FROM chunks").fetchall():
            translated_units += sum(1 for text in _load_json(translations, {}).values() if text)

        return {
            "total_projects": sum(status_map.values()),
            "completed_projects": status_map.get(ProjectStatus.COMPLETED.value, 0),
            "processing_projects": status_map.get(ProjectStatus.PROCESSING.value, 0),
            "paused_projects": status_map.get(ProjectStatus.PAUSED.value, 0),
            "pending_projects": status_map.get(ProjectStatus.PENDING.value, 0),
            "failed_projects": status_map.get(ProjectStatus.ERROR.value, 0),
            "total_chunks": total_chunks,
            "error_chunks": error_chunks,
            "translated_units": translated_units,
        }


class MemoryConfigStore:
    """In-process provider configuration store."""

    def __init__(self, config: ProviderConfig | None = None):
        self._config = config

    def get_provider_config(self) -> ProviderConfig | None:
        return self._config

    def set_provider_config(self, config: ProviderConfig) -> None:
        self._config = config

    def clear_provider_config(self) -> None:
        self._config = None
