"""
Document generation orchestrator and generated-document lifecycle.

generate(): validate format -> resolve branding -> render -> enforce size
-> check thread -> write file -> record row -> descriptor.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Iterator, Optional

from sqlalchemy.orm import Session

import storage
from brands import get_brand
from db.models import Thread, ThreadOutput
from db.session import SessionLocal
from models import (
    DocGenConfig,
    DocumentFormat,
    DocumentMetadata,
    GenerateDocumentOptions,
    GeneratedDocument,
)
from models_branding import BrandingConfig

from .blocks import RenderResult
from .branding import BrandingLayer, generate_document_filename, merge_branding_configs
from .docx_builder import generate_docx
from .errors import ConfigurationError, SizeLimitError, ValidationError
from .format_utils import bytes_to_mb, format_megabytes
from .md_builder import generate_md
from .pdf_builder import generate_pdf

logger = logging.getLogger(__name__)

Renderer = Callable[[str, str, BrandingConfig, Optional[DocumentMetadata]], RenderResult]

RENDERERS: dict[DocumentFormat, Renderer] = {
    DocumentFormat.PDF: generate_pdf,
    DocumentFormat.DOCX: generate_docx,
    DocumentFormat.MD: generate_md,
}


def _utcnow() -> datetime:
    return datetime.utcnow()


def download_url(doc_id: int) -> str:
    return f"/api/documents/{doc_id}/download"


@contextmanager
def _session(db: Session | None) -> Iterator[Session]:
    """Use the caller's session, or open (and close) one of our own."""
    if db is not None:
        yield db
        return
    own = SessionLocal()
    try:
        yield own
    finally:
        own.close()


def _to_descriptor(row: ThreadOutput) -> GeneratedDocument:
    config = row.generation_config or {}
    return GeneratedDocument(
        id=row.id,
        thread_id=row.thread_id,
        message_id=row.message_id,
        filename=row.filename,
        filepath=row.filepath,
        file_type=DocumentFormat(row.file_type),
        file_size=row.file_size,
        download_url=download_url(row.id),
        expires_at=row.expires_at,
        download_count=row.download_count or 0,
        created_at=row.created_at,
        page_count=config.get("page_count"),
    )


class DocumentGenerator:
    def __init__(
        self,
        config: DocGenConfig,
        category_branding: BrandingLayer = None,
        db: Session | None = None,
    ):
        self.config = config
        self.category_branding = category_branding
        self.db = db

    def get_supported_formats(self) -> list[DocumentFormat]:
        return list(self.config.enabled_formats)

    def is_format_enabled(self, file_format: DocumentFormat | str) -> bool:
        value = file_format.value if isinstance(file_format, DocumentFormat) else str(file_format).lower()
        return any(fmt.value == value for fmt in self.config.enabled_formats)

    def resolve_branding(self, options: GenerateDocumentOptions) -> BrandingConfig:
        """Default < generator config < (request override, else category override)."""
        # An explicit request override, even an empty one, replaces the category layer.
        override: BrandingLayer = (
            options.branding if options.branding is not None else self.category_branding
        )
        if override is None and options.category_id:
            override = get_brand(options.category_id)
        return merge_branding_configs(self.config.branding, override)

    def _check_size(self, buffer: bytes) -> None:
        size_mb = bytes_to_mb(len(buffer))
        if size_mb > self.config.max_document_size_mb:
            raise SizeLimitError(size_mb, self.config.max_document_size_mb)

    def _check_thread(self, db: Session, thread_id: str) -> None:
        if db.get(Thread, thread_id) is None:
            logger.error("Thread not found in database: %s", thread_id)
            raise ValidationError(thread_id)

    def generate(self, options: GenerateDocumentOptions | dict[str, Any]) -> GeneratedDocument:
        if not isinstance(options, GenerateDocumentOptions):
            options = GenerateDocumentOptions.model_validate(options)
        if not self.is_format_enabled(options.format):
            raise ConfigurationError(options.format.value, [f.value for f in self.config.enabled_formats])

        branding = self.resolve_branding(options)
        result = RENDERERS[options.format](options.title, options.content, branding, options.metadata)
        self._check_size(result.buffer)

        with _session(self.db) as db:
            if options.thread_id:
                self._check_thread(db, options.thread_id)

            filename = generate_document_filename(options.title, options.format.value, options.thread_id)
            filepath = storage.write_output(filename, result.buffer)
            now = _utcnow()

            if not options.thread_id:
                logger.warning("No thread_id provided - %s will not be saved to database", filename)
                return GeneratedDocument(
                    id=0,
                    message_id=options.message_id,
                    filename=filename,
                    filepath=str(filepath),
                    file_type=options.format,
                    file_size=result.file_size,
                    created_at=now,
                    page_count=result.page_count,
                )

            expires_at = (
                now + timedelta(days=self.config.expiration_days)
                if self.config.expiration_days > 0 else None
            )
            row = ThreadOutput(
                thread_id=options.thread_id,
                message_id=options.message_id,
                filename=filename,
                filepath=str(filepath),
                file_type=options.format.value,
                file_size=result.file_size,
                generation_config={
                    "title": options.title,
                    "branding": {
                        "organization_name": branding.organization_name,
                        "primary_color": branding.primary_color,
                    } if branding.enabled else None,
                    "page_count": result.page_count,
                },
                expires_at=expires_at,
                download_count=0,
                created_at=now,
            )
            try:
                db.add(row)
                db.commit()
                db.refresh(row)
            except Exception:
                db.rollback()
                storage.delete_output(filepath)
                logger.error("Failed to record %s for thread %s; removed %s", filename, options.thread_id, filepath)
                raise
            logger.info(
                "Generated %s document %s (%s) for thread %s",
                options.format.value, row.id, format_megabytes(row.file_size), options.thread_id,
            )
            return _to_descriptor(row)


def create_document_generator(
    config: DocGenConfig | None = None,
    category_id: str | None = None,
    db: Session | None = None,
) -> DocumentGenerator:
    """Generator from env config, with the category's brand preset (if any) as override."""
    category_branding = get_brand(category_id) if category_id else None
    return DocumentGenerator(config or DocGenConfig.from_env(), category_branding, db)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def get_document(db: Session, doc_id: int) -> GeneratedDocument | None:
    row = db.get(ThreadOutput, doc_id)
    return _to_descriptor(row) if row is not None else None


def get_thread_documents(db: Session, thread_id: str) -> list[GeneratedDocument]:
    rows = (
        db.query(ThreadOutput)
        .filter(ThreadOutput.thread_id == thread_id)
        .order_by(ThreadOutput.created_at.desc(), ThreadOutput.id.desc())
        .all()
    )
    return [_to_descriptor(row) for row in rows]


def get_expired_documents(db: Session, now: datetime | None = None) -> list[GeneratedDocument]:
    cutoff = now or _utcnow()
    rows = (
        db.query(ThreadOutput)
        .filter(ThreadOutput.expires_at.isnot(None), ThreadOutput.expires_at < cutoff)
        .order_by(ThreadOutput.expires_at.asc())
        .all()
    )
    return [_to_descriptor(row) for row in rows]


def delete_document(db: Session, doc_id: int) -> bool:
    """Remove the row and its file. False when the id is unknown."""
    row = db.get(ThreadOutput, doc_id)
    if row is None:
        return False
    if not storage.delete_output(row.filepath):
        logger.warning("File for document %s already gone: %s", doc_id, row.filepath)
    db.delete(row)
    db.commit()
    logger.info("Deleted document %s", doc_id)
    return True


def cleanup_expired_documents(db: Session, now: datetime | None = None) -> int:
    deleted = 0
    for doc in get_expired_documents(db, now):
        if delete_document(db, doc.id):
            deleted += 1
    if deleted:
        logger.info("Cleaned up %d expired documents", deleted)
    return deleted


def increment_download_count(db: Session, doc_id: int) -> None:
    """Best effort; a failed update is logged and never surfaces."""
    try:
        db.query(ThreadOutput).filter(ThreadOutput.id == doc_id).update(
            {ThreadOutput.download_count: ThreadOutput.download_count + 1},
            synchronize_session=False,
        )
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.warning("Failed to increment download count for %s: %s", doc_id, exc)


def get_download_count(db: Session, doc_id: int) -> int:
    count = db.query(ThreadOutput.download_count).filter(ThreadOutput.id == doc_id).scalar()
    return count or 0
