"""
Translation quality estimation.

Asks the active provider to score a translated chunk on four axes. The
result is advisory: failures produce neutral fallback scores and never
reach the translation pipeline.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from textweaver.llm.prompts import build_quality_prompt

if TYPE_CHECKING:
    from textweaver.llm.gateway import ProviderGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualityScores:
    """Scores in [0, 100]; ``overall`` is the rounded mean of the other four."""

    accuracy: int
    fluency: int
    consistency: int
    cultural_adaptation: int
    overall: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


FALLBACK_SCORES = QualityScores(
    accuracy=85,
    fluency=82,
    consistency=88,
    cultural_adaptation=80,
    overall=84,
)

_SCORE_PATTERNS = {
    "accuracy": re.compile(r"Accuracy:\s*(\d+)", re.IGNORECASE),
    "fluency": re.compile(r"Fluency:\s*(\d+)", re.IGNORECASE),
    "consistency": re.compile(r"Consistency:\s*(\d+)", re.IGNORECASE),
    "cultural_adaptation": re.compile(r"Cultural\s*Adaptation:\s*(\d+)", re.IGNORECASE),
}


def _clamp(value: int) -> int:
    return min(100, max(0, value))


def parse_quality_scores(text: str) -> QualityScores:
    """
    Parse a ``Name: score`` style evaluation.

    Missing fields take the matching fallback value; every score is clamped
    into [0, 100] before the overall mean is taken.
    """
    scores = {}
    for name, pattern in _SCORE_PATTERNS.items():
        match = pattern.search(text or "")
        value = int(match.group(1)) if match else getattr(FALLBACK_SCORES, name)
        scores[name] = _clamp(value)

    # Half-up rounding, matching how scores are shown to users
    overall = int(sum(scores.values()) / 4 + 0.5)
    return QualityScores(overall=_clamp(overall), **scores)


class QualityEstimator:
    """Scores translations through the provider gateway."""

    def __init__(self, gateway: ProviderGateway, max_tokens: int = 200):
        self.gateway = gateway
        self.max_tokens = max_tokens

    async def assess(self, original: str, translated: str, target_lang: str) -> QualityScores:
        """
        Score one translation. Never raises.

        Args:
            original: Source text.
            translated: Translated text.
            target_lang: Target language code.

        Returns:
            Parsed scores, or ``FALLBACK_SCORES`` if the provider call fails.
        """
        prompt = build_quality_prompt(original, translated, target_lang)
        try:
            evaluation = await self.gateway.complete(
                prompt, temperature=0.0, max_tokens=self.max_tokens
            )
        except Exception as e:
            logger.warning("Quality assessment failed, using fallback scores: %s", e)
            return FALLBACK_SCORES
        return parse_quality_scores(evaluation)
