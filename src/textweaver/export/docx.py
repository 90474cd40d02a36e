"""
DOCX renderer for translated documents.

Uses python-docx for Word document generation. Markdown and DOCX projects
(DOCX is ingested as Markdown) are parsed with mistune so headings, lists
and emphasis survive translation; other projects are written one paragraph
per blank-line separated block.
"""

from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING, Any

import mistune
from docx import Document as DocxDocument
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from textweaver.export.markdown import EMPTY_NOTICE
from textweaver.languages import is_rtl, language_name

if TYPE_CHECKING:
    from docx.document import Document
    from docx.text.paragraph import Paragraph

    from textweaver.export.aggregator import LanguageDocument

COLORS = {
    "primary": RGBColor(0x1A, 0x1A, 0x2E),  # Dark blue
    "secondary": RGBColor(0x4A, 0x90, 0xD9),  # Light blue
    "text": RGBColor(0x33, 0x33, 0x33),  # Dark gray
    "light": RGBColor(0x66, 0x66, 0x66),  # Medium gray
}


class DocxRenderer:
    """Writes a ``LanguageDocument`` into a Word document."""

    def __init__(self, document: LanguageDocument) -> None:
        self.document = document
        self.is_rtl = is_rtl(document.language)
        self.docx: Document = DocxDocument()

    def render(self) -> bytes:
        """Build the document and return the .docx bytes."""
        self._setup_styles()
        self._add_header()

        text = self.document.text
        if not text:
            para = self.docx.add_paragraph()
            run = para.add_run(EMPTY_NOTICE)
            run.font.italic = True
            run.font.color.rgb = COLORS["light"]
            self._align(para)
        elif self.document.file_type in ("markdown", "docx"):
            self._render_markdown(text)
        else:
            for block in text.split("\n\n"):
                if block.strip():
                    self._align(self.docx.add_paragraph(block.strip()))

        buffer = BytesIO()
        self.docx.save(buffer)
        return buffer.getvalue()

    def _align(self, para: Paragraph) -> None:
        """Apply RTL alignment if needed."""
        if self.is_rtl:
            para.alignment = WD_ALIGN_PARAGRAPH.RIGHT

    def _setup_styles(self) -> None:
        styles = self.docx.styles

        normal_style = styles["Normal"]
        normal_style.font.size = Pt(11)
        normal_style.font.color.rgb = COLORS["text"]
        normal_style.paragraph_format.space_after = Pt(6)
        normal_style.paragraph_format.line_spacing = 1.15
        if self.is_rtl:
            normal_style.paragraph_format.alignment = WD_ALIGN_PARAGRAPH.RIGHT

        heading_sizes = {1: 16, 2: 13, 3: 12}
        for level, size in heading_sizes.items():
            h_style = styles[f"Heading {level}"]
            h_style.font.size = Pt(size)
            h_style.font.bold = True
            h_style.font.color.rgb = COLORS["primary"] if level == 1 else COLORS["secondary"]

    def _add_header(self) -> None:
        doc = self.document
        title = self.docx.add_heading(doc.project_name, level=1)
        self._align(title)

        meta = self.docx.add_paragraph()
        run = meta.add_run(
            f"{language_name(doc.language)} ({doc.language.upper()}) - "
            f"{doc.chunks_translated}/{doc.total_chunks} chunks"
        )
        run.font.size = Pt(9)
        run.font.color.rgb = COLORS["light"]
        self._align(meta)

    # ==================== Markdown ====================

    def _render_markdown(self, content: str) -> None:
        """Parse markdown to an AST and render each block token."""
        md = mistune.create_markdown(renderer=None)
        result = md.parse(content)
        tokens = result[0] if isinstance(result, tuple) else result
        self._render_tokens(tokens)

    def _render_tokens(self, tokens: list[dict[str, Any]]) -> None:
        for token in tokens:
            token_type = token.get("type")

            if token_type == "heading":
                # Level 1 is taken by the document title
                level = min(token.get("attrs", {}).get("level", 1) + 1, 9)
                text = self._extract_text(token.get("children", []))
                heading = self.docx.add_heading(text, level)
                self._align(heading)

            elif token_type == "paragraph":
                para = self.docx.add_paragraph()
                self._render_inline(para, token.get("children", []))
                self._align(para)

            elif token_type == "list":
                self._render_list(token)

            elif token_type == "block_quote":
                para = self.docx.add_paragraph()
                para.paragraph_format.left_indent = Inches(0.5)
                run = para.add_run(self._extract_text(token.get("children", [])))
                run.font.italic = True
                run.font.color.rgb = COLORS["light"]
                self._align(para)

            elif token_type == "block_code":
                para = self.docx.add_paragraph()
                para.paragraph_format.left_indent = Inches(0.15)
                run = para.add_run(token.get("raw", ""))
                run.font.name = "Consolas"
                run.font.size = Pt(9)

            elif token_type == "thematic_break":
                para = self.docx.add_paragraph()
                para.alignment = WD_ALIGN_PARAGRAPH.CENTER
                run = para.add_run("─" * 40)
                run.font.color.rgb = RGBColor(0xDD, 0xDD, 0xDD)

    def _render_list(self, token: dict[str, Any]) -> None:
        ordered = token.get("attrs", {}).get("ordered", False)
        style = "List Number" if ordered else "List Bullet"
        for item in token.get("children", []):
            if item.get("type") != "list_item":
                continue
            nested = []
            text_parts = []
            for child in item.get("children", []):
                if child.get("type") == "list":
                    nested.append(child)
                else:
                    text_parts.append(self._extract_text(child.get("children", [child])))
            text = " ".join(part for part in text_parts if part).strip()
            if text:
                para = self.docx.add_paragraph(text, style=style)
                self._align(para)
            for child in nested:
                self._render_list(child)

    def _render_inline(self, para: Paragraph, children: list[dict[str, Any]]) -> None:
        """Render inline content (text, bold, italic, code, links)."""
        for child in children:
            child_type = child.get("type")
            if child_type == "strong":
                para.add_run(self._extract_text(child.get("children", []))).font.bold = True
            elif child_type == "emphasis":
                para.add_run(self._extract_text(child.get("children", []))).font.italic = True
            elif child_type == "codespan":
                run = para.add_run(child.get("raw", ""))
                run.font.name = "Consolas"
            elif child_type == "softbreak":
                para.add_run(" ")
            elif child_type == "linebreak":
                para.add_run("\n")
            else:
                text = self._extract_text([child])
                if text:
                    para.add_run(text)

    def _extract_text(self, children: list[dict[str, Any]]) -> str:
        """Extract plain text from nested token structure."""
        parts = []
        for child in children:
            if child.get("type") == "text":
                parts.append(child.get("raw", ""))
            elif "children" in child:
                parts.append(self._extract_text(child["children"]))
            elif "raw" in child:
                parts.append(child["raw"])
        return "".join(parts)


def render_docx(document: LanguageDocument) -> bytes:
    """Render a document as .docx bytes."""
    return DocxRenderer(document).render()
