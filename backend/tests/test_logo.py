from __future__ import annotations

import base64
import uuid
from io import BytesIO

from PIL import Image

from cache.disk_cache import get_cached_logo, set_cached_logo
from docgen.branding import fit_within, load_logo, process_logo


def _png(width: int, height: int, color: str = "red") -> bytes:
    out = BytesIO()
    Image.new("RGB", (width, height), color).save(out, format="PNG")
    return out.getvalue()


def test_fit_within_keeps_aspect_and_never_enlarges():
    assert fit_within(400, 100, 200, 80) == (200, 50)
    assert fit_within(100, 400, 200, 80) == (20, 80)
    assert fit_within(50, 20, 200, 80) == (50, 20)


def test_process_logo_resizes_bytes_into_box():
    logo = process_logo(_png(800, 200))
    assert logo is not None
    assert (logo.width, logo.height) == (200, 50)
    with Image.open(BytesIO(logo.buffer)) as image:
        assert image.format == "PNG"
        assert image.size == (200, 50)


def test_process_logo_from_data_uri_and_path(tmp_path):
    raw = _png(60, 30, "blue")
    data_uri = "data:image/png;base64," + base64.b64encode(raw).decode("ascii")
    from_uri = process_logo(data_uri)
    assert from_uri is not None and (from_uri.width, from_uri.height) == (60, 30)
    assert from_uri.data_uri.startswith("data:image/png;base64,")

    path = tmp_path / "logo.png"
    path.write_bytes(raw)
    from_path = process_logo(str(path), 30, 30)
    assert from_path is not None and (from_path.width, from_path.height) == (30, 15)


def test_process_logo_failures_return_none():
    assert process_logo(b"not an image") is None
    assert process_logo("/definitely/not/here.png") is None
    assert process_logo("") is None


def test_logo_cache_isolation_by_source_and_box():
    source = f"https://example.com/{uuid.uuid4()}.png"
    png_bytes = _png(10, 10)

    set_cached_logo(source, 200, 80, png_bytes)

    assert get_cached_logo(source, 200, 80) == png_bytes
    assert get_cached_logo(source, 150, 50) is None
    assert get_cached_logo(f"{source}?v=2", 200, 80) is None


def test_load_logo_populates_cache():
    raw = _png(400, 400)
    assert get_cached_logo(raw, 150, 50) is None
    logo = load_logo(raw, 150, 50)
    assert logo is not None and (logo.width, logo.height) == (50, 50)
    assert get_cached_logo(raw, 150, 50) == logo.buffer
    again = load_logo(raw, 150, 50)
    assert again == logo
