"""
Store generated document files on disk.
"""
from __future__ import annotations

import os
from pathlib import Path

OUTPUT_DIR = Path(os.environ.get("DOC_OUTPUT_DIR") or Path.cwd() / "data" / "outputs")


def ensure_output_dir() -> Path:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    return OUTPUT_DIR


def output_path(filename: str) -> Path:
    return ensure_output_dir() / filename


def write_output(filename: str, data: bytes) -> Path:
    path = output_path(filename)
    with open(path, "wb") as f:
        f.write(data)
    return path


def read_output(filepath: str | Path) -> bytes | None:
    path = Path(filepath)
    if not path.is_file():
        return None
    with open(path, "rb") as f:
        return f.read()


def delete_output(filepath: str | Path) -> bool:
    """Remove the file if it is still there; False when it was already gone."""
    path = Path(filepath)
    if not path.is_file():
        return False
    path.unlink()
    return True
