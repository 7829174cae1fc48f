# src/wvwater/ports/pixel_class.py
from __future__ import annotations

from typing import Protocol, runtime_checkable, Sequence

import numpy as np

from ..contracts.core import ClassLabel
from ..contracts.geo import PixelTile

@runtime_checkable
class PixelClassifierPort(Protocol):
    """
    Clasificador por píxel sobre reflectancia TOA.
    Reglas:
      - classify() devuelve labels uint8 con la forma espacial del tile.
      - píxeles inválidos SIEMPRE salen como NODATA.
      - labels() devuelve el catálogo de clases (id/nombre).
    """
    def classify(self, tile: PixelTile) -> np.ndarray: ...
    def labels(self) -> Sequence[ClassLabel]: ...
    def name(self) -> str: ...

__all__ = ["PixelClassifierPort"]
