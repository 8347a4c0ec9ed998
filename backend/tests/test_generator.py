"""End-to-end generation, persistence and lifecycle against an in-memory SQLite store."""
from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

import storage
from db.models import ThreadOutput
from docgen.errors import ConfigurationError, SizeLimitError, ValidationError
from docgen.generator import (
    DocumentGenerator,
    cleanup_expired_documents,
    create_document_generator,
    delete_document,
    get_document,
    get_download_count,
    get_expired_documents,
    get_thread_documents,
    increment_download_count,
)
from models import DocGenConfig, DocumentFormat, GenerateDocumentOptions


def _generator(db, **config) -> DocumentGenerator:
    return DocumentGenerator(DocGenConfig(**config), db=db)


def _docx_options(thread_id=None, **extra) -> GenerateDocumentOptions:
    return GenerateDocumentOptions(
        title="Test",
        content="# Heading\n\nSome **bold** text.",
        format=DocumentFormat.DOCX,
        thread_id=thread_id,
        **extra,
    )


def _files() -> list[Path]:
    return sorted(storage.OUTPUT_DIR.glob("*")) if storage.OUTPUT_DIR.exists() else []


def test_docx_end_to_end(db, thread):
    gen = _generator(db, expiration_days=30)
    before = datetime.utcnow()
    doc = gen.generate(_docx_options(thread.id, message_id="msg-1"))

    assert doc.id > 0 and doc.is_persisted
    assert doc.file_type == DocumentFormat.DOCX
    assert 0 < doc.file_size < 50 * 1024 * 1024
    assert doc.download_url == f"/api/documents/{doc.id}/download"
    assert doc.thread_id == thread.id and doc.message_id == "msg-1"
    assert doc.filename.startswith("thread-1_test_") and doc.filename.endswith(".docx")
    assert Path(doc.filepath).read_bytes()[:2] == b"PK"
    assert abs(doc.expires_at - (before + timedelta(days=30))) < timedelta(minutes=1)

    row = db.get(ThreadOutput, doc.id)
    assert row.generation_config == {"title": "Test", "branding": None, "page_count": None}


def test_generation_config_records_enabled_branding(db, thread):
    gen = _generator(db, branding={"enabled": True, "organizationName": "Acme", "primaryColor": "#123456"})
    doc = gen.generate(_docx_options(thread.id))
    row = db.get(ThreadOutput, doc.id)
    assert row.generation_config["branding"] == {"organization_name": "Acme", "primary_color": "#123456"}


def test_markdown_generation_writes_content(db, thread):
    gen = _generator(db)
    doc = gen.generate({"title": "Notes", "content": "Plain body", "format": "md", "threadId": thread.id})
    assert Path(doc.filepath).read_text(encoding="utf-8") == "# Notes\n\nPlain body\n"
    assert doc.file_size == len("# Notes\n\nPlain body\n")


def test_disabled_format_raises_configuration_error(db, thread):
    gen = _generator(db, enabled_formats=[DocumentFormat.DOCX, DocumentFormat.MD])
    with pytest.raises(ConfigurationError) as exc:
        gen.generate(GenerateDocumentOptions(title="T", content="x", format="pdf", thread_id=thread.id))
    assert exc.value.allowed_formats == ["docx", "md"]
    assert "docx, md" in str(exc.value)
    assert _files() == []


def test_unknown_thread_raises_without_writing(db):
    gen = _generator(db)
    with pytest.raises(ValidationError) as exc:
        gen.generate(_docx_options("no-such-thread"))
    assert exc.value.thread_id == "no-such-thread"
    assert _files() == []
    assert db.query(ThreadOutput).count() == 0


def test_size_limit(db, thread, monkeypatch):
    import docgen.generator as generator_module
    from docgen.blocks import RenderResult

    big = b"x" * (1024 * 1024 + 1)
    monkeypatch.setitem(generator_module.RENDERERS, DocumentFormat.MD, lambda *a: RenderResult(buffer=big))
    gen = _generator(db, max_document_size_mb=1)
    with pytest.raises(SizeLimitError) as exc:
        gen.generate({"title": "Big", "content": "x", "format": "md", "thread_id": thread.id})
    assert exc.value.allowed_mb == 1
    assert exc.value.actual_mb > 1
    assert _files() == []


def test_no_thread_writes_file_but_skips_row(db):
    gen = _generator(db)
    doc = gen.generate(_docx_options())
    assert doc.id == 0 and not doc.is_persisted
    assert doc.download_url == ""
    assert doc.expires_at is None
    assert Path(doc.filepath).is_file()
    assert db.query(ThreadOutput).count() == 0


def test_zero_expiration_means_never(db, thread):
    doc = _generator(db, expiration_days=0).generate(_docx_options(thread.id))
    assert doc.expires_at is None
    assert get_expired_documents(db, datetime.utcnow() + timedelta(days=3650)) == []


def test_request_branding_overrides_category(db, thread):
    gen = DocumentGenerator(
        DocGenConfig(branding={"organizationName": "Global"}),
        category_branding={"enabled": True, "organizationName": "Category"},
        db=db,
    )
    resolved = gen.resolve_branding(_docx_options(thread.id))
    assert resolved.organization_name == "Category" and resolved.enabled
    resolved = gen.resolve_branding(_docx_options(thread.id, branding={"primaryColor": "#abcdef"}))
    assert resolved.organization_name == "Global"
    assert resolved.primary_color == "#abcdef"
    assert resolved.enabled is False


def test_empty_request_branding_still_replaces_category(db, thread):
    gen = DocumentGenerator(
        DocGenConfig(branding={"organizationName": "Global"}),
        category_branding={"enabled": True, "organizationName": "Category"},
        db=db,
    )
    resolved = gen.resolve_branding(_docx_options(thread.id, branding={}))
    assert resolved.organization_name == "Global"
    assert resolved.enabled is False


def test_null_branding_fields_fall_back_to_lower_layers(db, thread):
    gen = _generator(db, branding={"enabled": True, "organizationName": "Global"})
    doc = gen.generate(_docx_options(thread.id, branding={"header": None, "organizationName": None}))
    assert doc.id > 0
    resolved = gen.resolve_branding(_docx_options(thread.id, branding={"header": {"content": None}}))
    assert resolved.organization_name == "Global"
    assert resolved.header.enabled is True and resolved.header.content == ""


def test_failed_insert_removes_written_file(db, thread, monkeypatch):
    def fail_commit():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", fail_commit)
    with pytest.raises(OperationalError):
        _generator(db).generate(_docx_options(thread.id))
    assert _files() == []
    assert db.query(ThreadOutput).count() == 0


def test_category_id_selects_brand_preset(db):
    gen = create_document_generator(DocGenConfig(), db=db)
    resolved = gen.resolve_branding(_docx_options(category_id="sample"))
    assert resolved.organization_name == "Sample Organization"
    preset = create_document_generator(DocGenConfig(), category_id="sample", db=db)
    assert preset.resolve_branding(_docx_options()).organization_name == "Sample Organization"


def test_supported_formats(db):
    gen = _generator(db, enabled_formats=[DocumentFormat.MD])
    assert gen.get_supported_formats() == [DocumentFormat.MD]
    assert gen.is_format_enabled("md") and gen.is_format_enabled(DocumentFormat.MD)
    assert not gen.is_format_enabled("pdf")


# --- lifecycle ---
def _make_md(db, thread_id: str, title: str = "Doc"):
    return _generator(db).generate({"title": title, "content": "x", "format": "md", "thread_id": thread_id})


def test_get_document_and_thread_listing(db, thread):
    first = _make_md(db, thread.id, "First")
    second = _make_md(db, thread.id, "Second")
    db.get(ThreadOutput, first.id).created_at = datetime.utcnow() - timedelta(hours=1)
    db.commit()

    assert get_document(db, second.id).filename == second.filename
    assert get_document(db, 9999) is None
    assert [d.id for d in get_thread_documents(db, thread.id)] == [second.id, first.id]
    assert get_thread_documents(db, "other") == []


def test_expired_documents_oldest_first_and_cleanup(db, thread):
    docs = [_make_md(db, thread.id, f"D{i}") for i in range(3)]
    now = datetime.utcnow()
    db.get(ThreadOutput, docs[0].id).expires_at = now - timedelta(days=1)
    db.get(ThreadOutput, docs[1].id).expires_at = now - timedelta(days=5)
    db.commit()

    assert [d.id for d in get_expired_documents(db)] == [docs[1].id, docs[0].id]
    assert cleanup_expired_documents(db) == 2
    assert not Path(docs[0].filepath).exists()
    assert Path(docs[2].filepath).exists()
    assert [d.id for d in get_thread_documents(db, thread.id)] == [docs[2].id]
    assert cleanup_expired_documents(db) == 0


def test_delete_document_is_idempotent_and_tolerates_missing_file(db, thread):
    doc = _make_md(db, thread.id)
    Path(doc.filepath).unlink()
    assert delete_document(db, doc.id) is True
    assert delete_document(db, doc.id) is False
    assert get_document(db, doc.id) is None


def test_download_count(db, thread):
    doc = _make_md(db, thread.id)
    assert get_download_count(db, doc.id) == 0
    increment_download_count(db, doc.id)
    increment_download_count(db, doc.id)
    assert get_download_count(db, doc.id) == 2
    assert get_document(db, doc.id).download_count == 2
    # Unknown ids are a no-op, never an error.
    increment_download_count(db, 424242)
    assert get_download_count(db, 424242) == 0
