# src/wvwater/ports/raster_read.py
from __future__ import annotations

from typing import Protocol, runtime_checkable
from ..contracts.geo import GeoProfile, PixelTile, TileWindow

URI = str

@runtime_checkable
class RasterReaderPort(Protocol):
    """
    Lector de raster multibanda con acceso por ventanas.
    Reglas:
      - read_window() devuelve TODAS las bandas de la ventana + máscara de validez.
      - profile() expone la georreferencia tal como viene en el archivo.
    """
    def read_window(self, uri: URI, window: TileWindow) -> PixelTile: ...
    def profile(self, uri: URI) -> GeoProfile: ...
    def exists(self, uri: URI) -> bool: ...

__all__ = ["RasterReaderPort", "URI"]
