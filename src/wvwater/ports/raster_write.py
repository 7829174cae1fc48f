# src/wvwater/ports/raster_write.py
from __future__ import annotations

from typing import Callable, Optional, Protocol, runtime_checkable

import numpy as np

from ..contracts.geo import GeoProfile, TileWindow

URI = str

# Calcula el bloque de salida (rows, cols) para una ventana
TileSource = Callable[[TileWindow], np.ndarray]
# Se invoca en el hilo llamador después de escribir cada ventana
TileCallback = Callable[[TileWindow, np.ndarray], None]

@runtime_checkable
class RasterWriterPort(Protocol):
    """
    Escritor de rasters por bloques (GeoTIFF).
    Reglas:
      - nunca materializa la imagen completa: pide cada ventana a `source`.
      - si `source` falla, aborta y no deja salida parcial.
    """
    def write_tiled(
        self,
        uri: URI,
        source: TileSource,
        profile: GeoProfile,
        *,
        tile_size: int = 256,
        max_workers: int = 1,
        on_tile: Optional[TileCallback] = None,
    ) -> URI: ...

__all__ = ["RasterWriterPort", "TileSource", "TileCallback", "URI"]
