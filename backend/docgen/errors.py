"""Errors surfaced by document generation. None of them are retried."""
from __future__ import annotations


class DocGenError(Exception):
    """Base class for document generation failures."""


class ConfigurationError(DocGenError):
    def __init__(self, requested: str, allowed_formats: list[str]):
        self.requested = requested
        self.allowed_formats = list(allowed_formats)
        super().__init__(
            f"Format '{requested}' is not enabled. Available formats: {', '.join(self.allowed_formats)}"
        )


class ValidationError(DocGenError):
    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(f"Thread {thread_id} not found - cannot save generated document")


class SizeLimitError(DocGenError):
    def __init__(self, actual_mb: float, allowed_mb: float):
        self.actual_mb = actual_mb
        self.allowed_mb = allowed_mb
        super().__init__(
            f"Generated document ({actual_mb:.2f} MB) exceeds maximum size limit ({allowed_mb:g} MB)"
        )


class RendererUnavailableError(DocGenError):
    """The runtime a renderer depends on (e.g. headless Chromium) is missing."""
