from __future__ import annotations

import os
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from models_branding import BrandingConfig


class DocumentFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    MD = "md"


ALL_FORMATS: List[DocumentFormat] = [DocumentFormat.PDF, DocumentFormat.DOCX, DocumentFormat.MD]

CONTENT_TYPES = {
    DocumentFormat.PDF.value: "application/pdf",
    DocumentFormat.DOCX.value: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    DocumentFormat.MD.value: "text/markdown",
}


class DocumentMetadata(BaseModel):
    """Optional document properties written into the generated file."""
    model_config = ConfigDict(populate_by_name=True)

    author: Optional[str] = None
    subject: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    # DOCX only: insert a Word TOC field after the title.
    include_toc: bool = Field(default=False, validation_alias=AliasChoices("include_toc", "includeToc"))


class GenerateDocumentOptions(BaseModel):
    """Input for DocumentGenerator.generate."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str
    content: str
    format: DocumentFormat
    thread_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("thread_id", "threadId"))
    message_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("message_id", "messageId"))
    category_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("category_id", "categoryId"))
    # Partial override: only the keys present replace the resolved branding.
    branding: Optional[dict[str, Any]] = None
    metadata: Optional[DocumentMetadata] = None

    @field_validator("thread_id", "message_id", "category_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class GeneratedDocument(BaseModel):
    """Descriptor returned by the generator and the lifecycle queries."""
    id: int
    thread_id: Optional[str] = None
    message_id: Optional[str] = None
    filename: str
    filepath: str
    file_type: DocumentFormat
    file_size: int
    download_url: str = ""
    expires_at: Optional[datetime] = None
    download_count: int = 0
    created_at: datetime
    page_count: Optional[int] = None

    @property
    def is_persisted(self) -> bool:
        return self.id > 0


def _env_formats(raw: str) -> List[DocumentFormat]:
    formats: List[DocumentFormat] = []
    for part in raw.split(","):
        value = part.strip().lower()
        if value and value in DocumentFormat._value2member_map_:
            fmt = DocumentFormat(value)
            if fmt not in formats:
                formats.append(fmt)
    return formats


class DocGenConfig(BaseModel):
    """Generator-level settings (normally loaded from the environment)."""
    enabled: bool = True
    default_format: DocumentFormat = DocumentFormat.PDF
    enabled_formats: List[DocumentFormat] = Field(default_factory=lambda: list(ALL_FORMATS))
    # Generator-level (global) branding layer, partial.
    branding: dict[str, Any] = Field(default_factory=dict)
    expiration_days: int = Field(default=30, ge=0, le=365)
    max_document_size_mb: float = Field(default=50, ge=1, le=100)

    @classmethod
    def from_env(cls, branding: Optional[dict[str, Any] | BrandingConfig] = None) -> "DocGenConfig":
        formats = _env_formats(os.environ.get("DOCGEN_ENABLED_FORMATS", "pdf,docx,md")) or list(ALL_FORMATS)
        if isinstance(branding, BrandingConfig):
            branding = branding.model_dump(exclude_unset=True)
        return cls(
            default_format=os.environ.get("DOCGEN_DEFAULT_FORMAT", "pdf").strip().lower() or "pdf",
            enabled_formats=formats,
            branding=branding or {},
            expiration_days=int(os.environ.get("DOCGEN_EXPIRATION_DAYS", "30")),
            max_document_size_mb=float(os.environ.get("DOCGEN_MAX_SIZE_MB", "50")),
        )
