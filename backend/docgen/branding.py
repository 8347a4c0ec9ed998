"""
Branding utilities for document generation.

Colour maths, logo processing, font-name mapping, header/footer template
substitution and the layered branding merge.
"""
from __future__ import annotations

import base64
import binascii
import logging
import os
import re
import time
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, Mapping, Union

import requests
from PIL import Image

from brands import DEFAULT_BRANDING
from cache.disk_cache import get_cached_logo, set_cached_logo
from models_branding import BrandingConfig, normalize_hex_color

from .format_utils import format_date

logger = logging.getLogger(__name__)

LOGO_FETCH_TIMEOUT = float(os.environ.get("DOCGEN_LOGO_TIMEOUT", "10"))
LOGO_MAX_WIDTH = 200
LOGO_MAX_HEIGHT = 80

MAX_LOGO_URL_LENGTH = 2000
MAX_ORGANIZATION_NAME_LENGTH = 200
MAX_HEADER_FOOTER_LENGTH = 500

_STRICT_HEX_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------

def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    value = int(normalize_hex_color(hex_color).lstrip("#"), 16)
    return (value >> 16) & 255, (value >> 8) & 255, value & 255


def rgb_to_hex(rgb: tuple[int, int, int]) -> str:
    return "#" + "".join(f"{max(0, min(255, int(c))):02x}" for c in rgb)


def lighten_color(hex_color: str, percent: float) -> str:
    factor = percent / 100
    return rgb_to_hex(tuple(min(255, round(c + (255 - c) * factor)) for c in hex_to_rgb(hex_color)))


def darken_color(hex_color: str, percent: float) -> str:
    factor = 1 - percent / 100
    return rgb_to_hex(tuple(round(c * factor) for c in hex_to_rgb(hex_color)))


def is_light_color(hex_color: str) -> bool:
    r, g, b = hex_to_rgb(hex_color)
    return (0.299 * r + 0.587 * g + 0.114 * b) / 255 > 0.5


def get_contrast_color(background: str) -> str:
    """Black or white, whichever reads better on the background."""
    return "#000000" if is_light_color(background) else "#ffffff"


# ---------------------------------------------------------------------------
# Logos
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProcessedLogo:
    buffer: bytes
    width: int
    height: int
    format: Literal["png", "jpeg"] = "png"

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.buffer).decode("ascii")
        return f"data:image/{self.format};base64,{encoded}"


def _read_logo_bytes(source: str | bytes) -> bytes | None:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    text = (source or "").strip()
    if text.startswith("data:image"):
        _, _, payload = text.partition(",")
        return base64.b64decode(payload, validate=False)
    if text.startswith("http://") or text.startswith("https://"):
        response = requests.get(text, timeout=LOGO_FETCH_TIMEOUT)
        if not response.ok:
            logger.warning("Failed to fetch logo: HTTP %s", response.status_code)
            return None
        return response.content
    path = Path(text)
    if text and path.is_file():
        return path.read_bytes()
    logger.warning("Invalid logo source: %s", text[:50])
    return None


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Shrink (never enlarge) to fit the box, keeping the aspect ratio."""
    target_w, target_h = width, height
    if target_w > max_width:
        target_h = round(target_h * max_width / target_w)
        target_w = max_width
    if target_h > max_height:
        target_w = round(target_w * max_height / target_h)
        target_h = max_height
    return max(1, target_w), max(1, target_h)


def process_logo(
    source: str | bytes,
    max_width: int = LOGO_MAX_WIDTH,
    max_height: int = LOGO_MAX_HEIGHT,
) -> ProcessedLogo | None:
    """
    Load a logo from bytes, a data URI, an http(s) URL or a file path, resize it
    into the box and re-encode as PNG. Returns None on any failure.
    """
    try:
        raw = _read_logo_bytes(source)
        if not raw:
            return None
        with Image.open(BytesIO(raw)) as image:
            image.load()
            width, height = image.size
            if not width or not height:
                logger.warning("Could not get logo dimensions")
                return None
            target = fit_within(width, height, max_width, max_height)
            if image.mode not in ("RGB", "RGBA", "L", "LA"):
                image = image.convert("RGBA")
            if target != (width, height):
                image = image.resize(target, Image.LANCZOS)
            out = BytesIO()
            image.save(out, format="PNG")
    except (OSError, ValueError, binascii.Error, requests.RequestException) as exc:
        logger.warning("Failed to process logo: %s", exc)
        return None
    return ProcessedLogo(buffer=out.getvalue(), width=target[0], height=target[1], format="png")


def load_logo(
    source: str | bytes,
    max_width: int = LOGO_MAX_WIDTH,
    max_height: int = LOGO_MAX_HEIGHT,
) -> ProcessedLogo | None:
    """process_logo behind the on-disk cache keyed by source and box."""
    cached = get_cached_logo(source, max_width, max_height)
    if cached is not None:
        try:
            with Image.open(BytesIO(cached)) as image:
                width, height = image.size
            return ProcessedLogo(buffer=cached, width=width, height=height, format="png")
        except OSError:
            logger.warning("Discarding unreadable cached logo")
    logo = process_logo(source, max_width, max_height)
    if logo is not None:
        set_cached_logo(source, max_width, max_height, logo.buffer)
    return logo


# ---------------------------------------------------------------------------
# Fonts
# ---------------------------------------------------------------------------

PDF_FONT_MAP: Mapping[str, str] = MappingProxyType({
    "calibri": "Helvetica",
    "arial": "Helvetica",
    "helvetica": "Helvetica",
    "times new roman": "Times-Roman",
    "times": "Times-Roman",
    "courier": "Courier",
    "courier new": "Courier",
    "georgia": "Times-Roman",
    "verdana": "Helvetica",
    "tahoma": "Helvetica",
    "trebuchet": "Helvetica",
    "trebuchet ms": "Helvetica",
    "segoe": "Helvetica",
    "segoe ui": "Helvetica",
})

DOCX_FONT_MAP: Mapping[str, str] = MappingProxyType({
    "calibri": "Calibri",
    "arial": "Arial",
    "times new roman": "Times New Roman",
    "times": "Times New Roman",
    "courier": "Courier New",
    "courier new": "Courier New",
    "georgia": "Georgia",
    "verdana": "Verdana",
    "tahoma": "Tahoma",
    "trebuchet ms": "Trebuchet MS",
    "trebuchet": "Trebuchet MS",
    "segoe ui": "Segoe UI",
    "segoe": "Segoe UI",
})

DEFAULT_PDF_FONT = "Helvetica"


def _first_family(font_family: str) -> str:
    # CSS-style stacks ("Georgia, 'Times New Roman', serif") resolve by their first entry.
    first = (font_family or "").split(",")[0]
    return first.strip().strip("'\"").strip()


def map_font_family(font_family: str) -> str:
    """Map to one of the PDF base families; unknown names become Helvetica."""
    return PDF_FONT_MAP.get(_first_family(font_family).lower(), DEFAULT_PDF_FONT)


def get_docx_font_family(font_family: str) -> str:
    """Word resolves installed fonts itself, so unknown names pass through."""
    name = _first_family(font_family)
    return DOCX_FONT_MAP.get(name.lower(), name or DEFAULT_BRANDING.font_family)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def process_template_content(content: str, variables: Mapping[str, Any] | None = None) -> str:
    """Substitute {{date}}, {{year}} and caller variables, case-insensitively."""
    now = datetime.now()
    values: dict[str, str] = {"date": format_date(now), "year": str(now.year)}
    for key, value in (variables or {}).items():
        values[key] = "" if value is None else str(value)
    processed = content or ""
    for key, value in values.items():
        pattern = re.compile(r"\{\{" + re.escape(key) + r"\}\}", re.IGNORECASE)
        processed = pattern.sub(lambda _m, v=value: v, processed)
    return processed


# ---------------------------------------------------------------------------
# Config resolution
# ---------------------------------------------------------------------------

BrandingLayer = Union[BrandingConfig, Mapping[str, Any], None]


def _drop_none(value: Mapping[str, Any]) -> dict[str, Any]:
    """Explicit nulls mean "not set" at every nesting level."""
    return {
        key: _drop_none(item) if isinstance(item, Mapping) else item
        for key, item in value.items()
        if item is not None
    }


def _layer_fields(layer: BrandingLayer) -> dict[str, Any]:
    """Only the keys a layer actually defines, in snake_case."""
    if layer is None:
        return {}
    if not isinstance(layer, BrandingConfig):
        layer = BrandingConfig.model_validate(_drop_none(layer))
    return layer.model_dump(exclude_unset=True)


def merge_branding_configs(*layers: BrandingLayer) -> BrandingConfig:
    """
    Merge branding layers over the system default, later layers winning.
    Each layer replaces only the keys it defines; header and footer merge
    field by field.
    """
    merged = DEFAULT_BRANDING.model_dump()
    for layer in layers:
        fields = _layer_fields(layer)
        header = fields.pop("header", None)
        footer = fields.pop("footer", None)
        merged.update(fields)
        if header:
            merged["header"] = {**merged["header"], **header}
        if footer:
            merged["footer"] = {**merged["footer"], **footer}
    return BrandingConfig.model_validate(merged)


def _raw(config: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in config and config[key] is not None:
            return config[key]
    return None


def validate_branding_config(config: BrandingLayer) -> list[str]:
    """Human-readable problems with a partial branding config; empty when valid."""
    if config is None:
        return []
    if isinstance(config, BrandingConfig):
        config = config.model_dump(exclude_unset=True)
    errors: list[str] = []

    color = _raw(config, "primary_color", "primaryColor")
    if color and not _STRICT_HEX_RE.match(str(color)):
        errors.append("primaryColor must be a valid hex color (e.g., #003366)")

    logo = _raw(config, "logo_url", "logoUrl", "logoSource", "logo_source")
    if logo and len(str(logo)) > MAX_LOGO_URL_LENGTH:
        errors.append(f"logoUrl is too long (max {MAX_LOGO_URL_LENGTH} characters)")

    org = _raw(config, "organization_name", "organizationName")
    if org and len(str(org)) > MAX_ORGANIZATION_NAME_LENGTH:
        errors.append(f"organizationName is too long (max {MAX_ORGANIZATION_NAME_LENGTH} characters)")

    for section in ("header", "footer"):
        part = config.get(section) or {}
        content = part.get("content") if isinstance(part, Mapping) else None
        if content and len(str(content)) > MAX_HEADER_FOOTER_LENGTH:
            errors.append(f"{section} content is too long (max {MAX_HEADER_FOOTER_LENGTH} characters)")
    return errors


# ---------------------------------------------------------------------------
# Filenames
# ---------------------------------------------------------------------------

def generate_document_filename(base_name: str, file_format: str, thread_id: str | None = None) -> str:
    sanitized = re.sub(r"[^a-z0-9]", "_", base_name or "", flags=re.IGNORECASE)[:50].lower()
    timestamp = int(time.time() * 1000)
    prefix = f"{thread_id[:8]}_" if thread_id else ""
    return f"{prefix}{sanitized}_{timestamp}.{file_format}"
