"""
Content-addressed disk cache for processed logos.
Key = sha256(logo source + max box) -> PNG bytes.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path

# Cache directory under backend/cache unless LOGO_CACHE_DIR is set
_CACHE_DIR = Path(__file__).resolve().parent
LOGO_CACHE_DIR = Path(os.environ.get("LOGO_CACHE_DIR") or _CACHE_DIR / "logos")


def _ensure_dir(d: Path) -> None:
    d.mkdir(parents=True, exist_ok=True)


def _logo_key(source: str | bytes, max_width: int, max_height: int) -> str:
    """Byte sources hash their content; string sources (URL, data URI, path) hash the text."""
    if isinstance(source, (bytes, bytearray)):
        h = hashlib.sha256(bytes(source)).hexdigest()
    else:
        h = hashlib.sha256(str(source).strip().encode()).hexdigest()
    return hashlib.sha256(f"{h}|{max_width}x{max_height}".encode()).hexdigest()


def get_cached_logo(source: str | bytes, max_width: int, max_height: int) -> bytes | None:
    """Return cached PNG bytes, or None."""
    path = LOGO_CACHE_DIR / f"{_logo_key(source, max_width, max_height)}.png"
    if not path.exists():
        return None
    try:
        return path.read_bytes()
    except OSError:
        return None


def set_cached_logo(source: str | bytes, max_width: int, max_height: int, png_bytes: bytes) -> None:
    """Store processed PNG bytes. Write failures leave the cache cold."""
    try:
        _ensure_dir(LOGO_CACHE_DIR)
        path = LOGO_CACHE_DIR / f"{_logo_key(source, max_width, max_height)}.png"
        path.write_bytes(png_bytes)
    except OSError:
        return None
