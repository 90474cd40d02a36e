"""
HTML renderer for translated documents.

Produces a standalone page: language badge, title, one paragraph per
blank-line separated block. All text is escaped.
"""

from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING

from textweaver.export.markdown import EMPTY_NOTICE
from textweaver.languages import is_rtl, language_name

if TYPE_CHECKING:
    from textweaver.export.aggregator import LanguageDocument

_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            line-height: 1.6;
            max-width: 800px;
            margin: 0 auto;
            padding: 2rem;
            color: #333;
        }
        h1 {
            color: #2563eb;
            border-bottom: 2px solid #e5e7eb;
            padding-bottom: 0.5rem;
        }
        .language-badge {
            display: inline-block;
            background: #3b82f6;
            color: white;
            padding: 0.25rem 0.75rem;
            border-radius: 9999px;
            font-size: 0.875rem;
            margin-bottom: 1rem;
        }
        .partial {
            color: #b45309;
            font-size: 0.875rem;
        }
        p {
            margin-bottom: 1rem;
        }"""


def _paragraphs(text: str) -> str:
    blocks = [block.strip() for block in text.split("\n\n") if block.strip()]
    if not blocks:
        return f'        <p class="partial">{escape(EMPTY_NOTICE)}</p>'
    return "\n".join(
        f"        <p>{escape(block).replace(chr(10), '<br>')}</p>" for block in blocks
    )


def render_html(document: LanguageDocument) -> str:
    """Render a document as a standalone HTML page."""
    lang = escape(document.language)
    title = escape(document.project_name)
    direction = "rtl" if is_rtl(document.language) else "ltr"
    badge = f"{escape(language_name(document.language))} ({lang.upper()})"

    partial = ""
    if document.text and not document.is_complete:
        partial = (
            f'\n    <div class="partial">{document.chunks_translated} of '
            f"{document.total_chunks} chunks translated</div>"
        )

    return f"""<!DOCTYPE html>
<html lang="{lang}" dir="{direction}">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title} - {lang.upper()}</title>
    <style>{_STYLE}
    </style>
</head>
<body>
    <div class="language-badge">{badge}</div>
    <h1>{title}</h1>{partial}
    <div>
{_paragraphs(document.text)}
    </div>
</body>
</html>
"""
