"""Tests for aggregation and export rendering."""

import zipfile
from io import BytesIO

import pytest
from docx import Document

from textweaver.config import ExportFormat
from textweaver.database import Project
from textweaver.exceptions import ProjectNotFoundError
from textweaver.export import ProjectExporter, build_language_documents, build_language_texts
from textweaver.export.aggregator import LanguageDocument
from textweaver.export.docx import render_docx
from textweaver.export.html import render_html
from textweaver.export.markdown import EMPTY_NOTICE, render_markdown, render_text


@pytest.fixture
def project_id(db):
    project_id = db.create_project(
        Project(
            name="Field Notes",
            source_language="en",
            target_languages=["es", "ar"],
            original_content="One. Two. Three.",
        )
    )
    chunks = db.add_chunks(project_id, ["One.", "Two.", "Three."])
    db.update_chunk(chunks[0].id, translations={"es": "Uno.", "ar": "واحد."})
    db.update_chunk(chunks[1].id, translations={"es": "Dos."})
    db.update_chunk(chunks[2].id, translations={"es": "Tres.", "ar": ""})
    return project_id


# ==================== Aggregation ====================


def test_texts_join_translated_chunks_in_order(db, project_id):
    texts = build_language_texts(db, project_id, ["es", "ar", "de"])

    assert texts == {"es": "Uno.\n\nDos.\n\nTres.", "ar": "واحد.", "de": ""}


def test_texts_default_to_project_targets(db, project_id):
    assert list(build_language_texts(db, project_id)) == ["es", "ar"]


def test_documents_carry_counts(db, project_id):
    es, ar = build_language_documents(db, project_id)

    assert (es.chunks_translated, es.total_chunks, es.is_complete) == (3, 3, True)
    assert (ar.chunks_translated, ar.total_chunks, ar.is_complete) == (1, 3, False)


def test_unknown_project(db):
    with pytest.raises(ProjectNotFoundError):
        build_language_texts(db, 12345)


# ==================== Renderers ====================


def make_document(**overrides) -> LanguageDocument:
    fields = {
        "project_name": "Field Notes",
        "language": "es",
        "text": "Uno.\n\nDos.",
        "chunks_translated": 2,
        "total_chunks": 2,
    }
    fields.update(overrides)
    return LanguageDocument(**fields)


def test_text_renderer():
    assert render_text(make_document()) == "Uno.\n\nDos."
    framed = render_text(make_document(text=""), clean=False)
    assert framed.startswith("Field Notes (Spanish)\n")
    assert EMPTY_NOTICE in framed


def test_markdown_header_and_partial_flag():
    complete = render_markdown(make_document())
    assert complete.startswith("# Field Notes\n")
    assert "**Language:** Spanish (ES)" in complete
    assert "**Status:** partial" not in complete

    partial = render_markdown(make_document(chunks_translated=1, total_chunks=2))
    assert "**Chunks:** 1/2" in partial
    assert "**Status:** partial" in partial

    assert render_markdown(make_document(), clean=True) == "Uno.\n\nDos.\n"


def test_html_escapes_and_sets_direction():
    page = render_html(make_document(language="ar", text="<b>نص</b> & more"))

    assert '<html lang="ar" dir="rtl">' in page
    assert "&lt;b&gt;نص&lt;/b&gt; &amp; more" in page
    assert "<b>" not in page

    ltr = render_html(make_document())
    assert 'dir="ltr"' in ltr
    assert "<p>Uno.</p>" in ltr


def test_html_empty_language_shows_notice():
    page = render_html(make_document(text="", chunks_translated=0))
    assert EMPTY_NOTICE in page


def test_docx_plain_paragraphs():
    payload = render_docx(make_document())

    doc = Document(BytesIO(payload))
    texts = [p.text for p in doc.paragraphs]
    assert texts[0] == "Field Notes"
    assert "Uno." in texts
    assert "Dos." in texts


def test_docx_markdown_structure():
    payload = render_docx(
        make_document(
            text="# Titulo\n\nTexto con **negrita**.\n\n- uno\n- dos",
            file_type="markdown",
        )
    )

    doc = Document(BytesIO(payload))
    by_text = {p.text: p for p in doc.paragraphs}
    assert by_text["Titulo"].style.name == "Heading 2"
    assert by_text["Texto con negrita."].runs[1].bold
    assert by_text["uno"].style.name == "List Bullet"


def test_docx_empty_language():
    doc = Document(BytesIO(render_docx(make_document(text="", chunks_translated=0))))
    assert any(p.text == EMPTY_NOTICE for p in doc.paragraphs)


# ==================== Exporter ====================


def test_export_writes_one_file_per_language_and_format(db, project_id, tmp_path):
    exporter = ProjectExporter(db, tmp_path / "out")

    results = exporter.export(project_id, formats=[ExportFormat.TXT, ExportFormat.HTML])

    names = sorted(r.output_path.name for r in results)
    assert names == [
        "Field Notes_ar.html",
        "Field Notes_ar.txt",
        "Field Notes_es.html",
        "Field Notes_es.txt",
    ]
    es_txt = tmp_path / "out" / "Field Notes_es.txt"
    assert es_txt.read_text(encoding="utf-8") == "Uno.\n\nDos.\n\nTres."
    ar = next(r for r in results if r.language == "ar" and r.format == ExportFormat.TXT)
    assert (ar.chunks_exported, ar.total_chunks) == (1, 3)


def test_export_selected_language_accepts_format_strings(db, project_id, tmp_path):
    results = ProjectExporter(db, tmp_path).export(project_id, languages=["es"], formats=["md"])

    assert len(results) == 1
    assert results[0].format == ExportFormat.MARKDOWN
    assert results[0].output_path.suffix == ".md"


def test_export_bundle_zips_everything(db, project_id, tmp_path):
    results = ProjectExporter(db, tmp_path).export(
        project_id, formats=[ExportFormat.TXT, ExportFormat.DOCX], bundle=True
    )

    archive = tmp_path / "Field Notes_translations.zip"
    assert all(r.output_path == archive for r in results)
    with zipfile.ZipFile(archive) as zf:
        assert sorted(zf.namelist()) == sorted(r.archive_member for r in results)
        assert zf.read("Field Notes_es.txt").decode("utf-8") == "Uno.\n\nDos.\n\nTres."
    assert not (tmp_path / "Field Notes_es.txt").exists()


def test_export_sanitizes_file_names(db, tmp_path):
    project_id = db.create_project(
        Project(name="Q3/Q4: report", target_languages=["fr"], original_content="x")
    )

    results = ProjectExporter(db, tmp_path).export(project_id)

    assert results[0].output_path.name == "Q3_Q4_ report_fr.txt"
    assert results[0].output_path.read_text(encoding="utf-8") == ""


def test_export_keeps_language_inside_output_dir(db, project_id, tmp_path):
    out = tmp_path / "out"

    results = ProjectExporter(db, out).export(project_id, languages=["../es"])

    assert results[0].output_path.parent == out
    assert results[0].output_path.name == "Field Notes_.._es.txt"
    assert list(tmp_path.glob("*.txt")) == []
