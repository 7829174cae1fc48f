# src/wvwater/adapters/local_inputs.py
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


def find_file_by_extension(paths: Sequence[Path | str], ext: str) -> Optional[Path]:
    """Primer path cuya extensión coincide (sin distinguir mayúsculas); None si no hay."""
    want = ext.lower() if ext.startswith(".") else f".{ext.lower()}"
    for p in paths:
        path = Path(p)
        if path.suffix.lower() == want:
            return path
    return None


__all__ = ["find_file_by_extension"]
