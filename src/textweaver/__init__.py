"""
textweaver: multi-language document translation through LLM providers.

This package provides tools for:
- Splitting documents into sentence-aligned chunks
- Translating every chunk into each target language with pause and resume
- Scoring translation quality
- Exporting translations as text, Markdown, HTML or DOCX
"""

__version__ = "0.1.0"

from textweaver.config import Settings, load_config
from textweaver.database import (
    ChunkStatus,
    Database,
    Project,
    ProjectSettings,
    ProjectStatus,
    TranslationChunk,
    TranslationStyle,
)
from textweaver.export import ProjectExporter
from textweaver.llm import ProviderConfig, ProviderGateway
from textweaver.quality import QualityEstimator
from textweaver.translation import TranslationOrchestrator

__all__ = [
    # Config
    "Settings",
    "load_config",
    # Database
    "Database",
    "Project",
    "ProjectSettings",
    "TranslationChunk",
    "ProjectStatus",
    "ChunkStatus",
    "TranslationStyle",
    # Providers
    "ProviderConfig",
    "ProviderGateway",
    # Translation
    "TranslationOrchestrator",
    "QualityEstimator",
    # Export
    "ProjectExporter",
]
