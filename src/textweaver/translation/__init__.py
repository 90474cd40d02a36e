"""
Translation orchestration for textweaver.

Provides:
- Per-project start, pause, reset and resume
- Bounded retries per (chunk, language) unit
- Progress, ETA and token estimates through callbacks
"""

from textweaver.translation.orchestrator import (
    RunSummary,
    TranslationCallbacks,
    TranslationOrchestrator,
    TranslationProgress,
)

__all__ = [
    "RunSummary",
    "TranslationCallbacks",
    "TranslationOrchestrator",
    "TranslationProgress",
]
