"""Tests for prompt construction."""

from textweaver.database import Project, ProjectSettings, TranslationStyle
from textweaver.llm.prompts import (
    DETECTION_SAMPLE_CHARS,
    QUALITY_SAMPLE_CHARS,
    TranslationOptions,
    build_detection_prompt,
    build_quality_prompt,
    build_translation_prompt,
    formatting_instruction,
    style_instruction,
)


def test_translation_prompt_names_languages_and_embeds_text():
    prompt = build_translation_prompt("Hello there.", "en", "es", TranslationOptions())

    assert prompt.startswith("Translate the following text from English to Spanish.")
    assert '"""\nHello there.\n"""' in prompt
    assert "Provide ONLY the translated text" in prompt


def test_auto_source_uses_detected_language_phrase():
    prompt = build_translation_prompt("Hi", "auto", "fr", TranslationOptions())
    assert "from the detected source language to French" in prompt


def test_style_and_formatting_directives():
    options = TranslationOptions(style=TranslationStyle.LITERARY, preserve_formatting=False)
    prompt = build_translation_prompt("Hi", "en", "de", options)

    assert f"STYLE: {style_instruction(TranslationStyle.LITERARY)}" in prompt
    assert f"FORMATTING: {formatting_instruction(False)}" in prompt
    assert "CONTEXT:" not in prompt


def test_same_settings_give_same_prompt():
    options = TranslationOptions(style=TranslationStyle.TECHNICAL)
    assert build_translation_prompt("x", "en", "ja", options) == build_translation_prompt(
        "x", "en", "ja", options
    )


def test_every_style_has_distinct_instruction():
    instructions = {style_instruction(style) for style in TranslationStyle}
    assert len(instructions) == len(TranslationStyle)


def test_unknown_style_falls_back_to_formal():
    assert style_instruction("baroque") == style_instruction(TranslationStyle.FORMAL)


def test_context_line_when_context_aware():
    options = TranslationOptions(context_aware=True, project_name="Annual Report", file_type="docx")
    prompt = build_translation_prompt("Hi", "en", "it", options)
    assert 'CONTEXT: This is part of a larger docx document titled "Annual Report".' in prompt


def test_options_from_project():
    project = Project(
        name="Guide",
        file_type="markdown",
        settings=ProjectSettings(
            translation_style=TranslationStyle.CASUAL,
            preserve_formatting=False,
            context_aware=True,
        ),
    )
    options = TranslationOptions.from_project(project)
    assert options == TranslationOptions(
        style=TranslationStyle.CASUAL,
        preserve_formatting=False,
        context_aware=True,
        project_name="Guide",
        file_type="markdown",
    )


def test_detection_prompt_is_sampled():
    prompt = build_detection_prompt("a" * (DETECTION_SAMPLE_CHARS + 100))
    assert prompt.count("a" * DETECTION_SAMPLE_CHARS) == 1
    assert "a" * (DETECTION_SAMPLE_CHARS + 1) not in prompt


def test_quality_prompt_lists_scores_and_truncates():
    prompt = build_quality_prompt("o" * 2000, "t" * 2000, "fr")
    assert "to French" in prompt
    assert "o" * (QUALITY_SAMPLE_CHARS + 1) not in prompt
    for name in ("Accuracy:", "Fluency:", "Consistency:", "Cultural Adaptation:"):
        assert name in prompt
