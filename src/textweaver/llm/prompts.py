"""
Prompt construction for translation, language detection and quality review.

Style and formatting directives are pure functions of the settings, so the
same project settings always produce the same instruction text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from textweaver.database import TranslationStyle
from textweaver.languages import language_name

if TYPE_CHECKING:
    from textweaver.database import Project

SYSTEM_PROMPT = (
    "You are a professional translator. Provide only the translated text without explanations."
)

_STYLE_INSTRUCTIONS = {
    TranslationStyle.FORMAL: (
        "Use formal, professional language with proper grammar and sophisticated vocabulary."
    ),
    TranslationStyle.CASUAL: (
        "Use casual, conversational language that sounds natural and approachable."
    ),
    TranslationStyle.LITERARY: (
        "Preserve the artistic and literary qualities. "
        "Maintain poetic elements and the author's unique voice."
    ),
    TranslationStyle.TECHNICAL: (
        "Use precise technical terminology and maintain scientific accuracy."
    ),
}

_PRESERVE_FORMATTING = (
    "CRITICAL: Preserve ALL original formatting including line breaks, paragraph structure, "
    "bullet points, numbering, and spacing."
)
_NATURAL_FLOW = "Focus on natural language flow while maintaining readability."

DETECTION_SAMPLE_CHARS = 500
QUALITY_SAMPLE_CHARS = 1000


@dataclass(frozen=True)
class TranslationOptions:
    """Per-request translation settings."""

    style: TranslationStyle = TranslationStyle.FORMAL
    preserve_formatting: bool = True
    context_aware: bool = False
    project_name: str = ""
    file_type: str = "text"

    @classmethod
    def from_project(cls, project: Project) -> TranslationOptions:
        return cls(
            style=project.settings.translation_style,
            preserve_formatting=project.settings.preserve_formatting,
            context_aware=project.settings.context_aware,
            project_name=project.name,
            file_type=project.file_type,
        )


def style_instruction(style: TranslationStyle | str) -> str:
    """Tone directive for a style; unknown values fall back to formal."""
    try:
        return _STYLE_INSTRUCTIONS[TranslationStyle(style)]
    except ValueError:
        return _STYLE_INSTRUCTIONS[TranslationStyle.FORMAL]


def formatting_instruction(preserve_formatting: bool) -> str:
    return _PRESERVE_FORMATTING if preserve_formatting else _NATURAL_FLOW


def context_instruction(project_name: str, file_type: str) -> str:
    return (
        f'This is part of a larger {file_type} document titled "{project_name}". '
        "Maintain consistency with the overall context and style."
    )


def build_translation_prompt(
    text: str,
    source_lang: str,
    target_lang: str,
    options: TranslationOptions,
) -> str:
    """
    Build the user prompt for one chunk.

    Args:
        text: Chunk text, embedded verbatim.
        source_lang: Source language code or "auto".
        target_lang: Target language code.
        options: Style, formatting and context settings.

    Returns:
        Prompt text.
    """
    source_name = language_name(source_lang)
    target_name = language_name(target_lang)

    lines = [
        f"Translate the following text from {source_name} to {target_name}.",
        "",
        "REQUIREMENTS:",
        "- Accuracy: Translate the exact meaning without adding or omitting information",
        f"- Fluency: Ensure the translation reads naturally in {target_name}",
        "- Consistency: Use consistent terminology throughout",
        "- Cultural Adaptation: Adapt idioms and cultural references appropriately",
        "",
        f"STYLE: {style_instruction(options.style)}",
        f"FORMATTING: {formatting_instruction(options.preserve_formatting)}",
    ]
    if options.context_aware and options.project_name:
        lines.append(f"CONTEXT: {context_instruction(options.project_name, options.file_type)}")

    lines += [
        "",
        "TEXT TO TRANSLATE:",
        '"""',
        text,
        '"""',
        "",
        "IMPORTANT: Provide ONLY the translated text. "
        "Do not include explanations, notes, or commentary.",
    ]
    return "\n".join(lines)


def build_detection_prompt(text: str) -> str:
    return (
        "Detect the language of the following text and respond with only the language code "
        "(e.g., 'en', 'es', 'fr', 'de', 'zh', 'ja', 'ar', 'yo'): "
        f"{text[:DETECTION_SAMPLE_CHARS]}"
    )


def build_quality_prompt(original: str, translated: str, target_lang: str) -> str:
    """Ask for four 0-100 scores in a fixed ``Name: score`` layout."""
    return "\n".join(
        [
            f"Evaluate the quality of this translation to {language_name(target_lang)}:",
            "",
            f"Original: {original[:QUALITY_SAMPLE_CHARS]}",
            f"Translation: {translated[:QUALITY_SAMPLE_CHARS]}",
            "",
            "Rate each aspect from 0-100:",
            "Accuracy: [score]",
            "Fluency: [score]",
            "Consistency: [score]",
            "Cultural Adaptation: [score]",
        ]
    )
