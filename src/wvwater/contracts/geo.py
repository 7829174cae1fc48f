# src/wvwater/contracts/geo.py

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Iterator, Literal, NamedTuple, Tuple, Optional

import numpy as np
import numpy.typing as npt

GeoTransform = Tuple[float, float, float, float, float, float]
DTypeStr = Literal["uint8","uint16","int16","uint32","int32","float32","float64"]

IDENTITY_GT: GeoTransform = (0.0, 1.0, 0.0, 0.0, 0.0, 1.0)

class Bounds(NamedTuple):
    minx: float; miny: float; maxx: float; maxy: float

# ---------- CRS (puro dominio, sin GDAL) ----------
@dataclass(frozen=True)
class CRSRef:
    wkt: Optional[str] = None
    epsg: Optional[int] = None

    @staticmethod
    def from_epsg(code: int) -> "CRSRef":
        return CRSRef(epsg=int(code))

    @staticmethod
    def from_wkt(wkt: str, epsg: Optional[int] = None) -> "CRSRef":
        return CRSRef(wkt=wkt, epsg=epsg)

    def is_empty(self) -> bool:
        return not self.wkt and self.epsg is None

    def to_wkt(self) -> str:
        """
        Devuelve una representación de texto del CRS.
        - Si hay WKT, retorna el WKT tal cual (así la salida conserva la referencia de la entrada).
        - Si no hay WKT pero sí EPSG, retorna 'EPSG:<code>'.
        - Si no hay nada, error.
        """
        if self.wkt:
            return self.wkt
        if self.epsg is not None:
            return f"EPSG:{int(self.epsg)}"
        raise ValueError("CRSRef vacío: no hay WKT ni EPSG.")

# ---------- Perfil (puro dominio) ----------
@dataclass(frozen=True)
class GeoProfile:
    count: int
    dtype: DTypeStr
    width: int
    height: int
    transform: GeoTransform
    crs: CRSRef
    nodata: Optional[float] = None

    @property
    def bounds(self) -> Bounds:
        return geotransform_bounds(self.transform, self.width, self.height)

    def is_georeferenced(self) -> bool:
        return not self.crs.is_empty() and tuple(self.transform) != IDENTITY_GT

    def for_labels(self, nodata: float, dtype: DTypeStr = "uint8") -> "GeoProfile":
        """Perfil de salida monobanda con la misma huella/georreferencia."""
        return replace(self, count=1, dtype=dtype, nodata=nodata)

# ---------- Ventanas de procesamiento ----------
class TileWindow(NamedTuple):
    col_off: int; row_off: int; width: int; height: int

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

def iter_windows(width: int, height: int, tile_size: int) -> Iterator[TileWindow]:
    """Recorre el raster en orden fila-mayor; cada píxel cae en exactamente una ventana."""
    if tile_size < 1:
        raise ValueError(f"tile_size debe ser >= 1 (es {tile_size})")
    for row in range(0, height, tile_size):
        h = min(tile_size, height - row)
        for col in range(0, width, tile_size):
            w = min(tile_size, width - col)
            yield TileWindow(col, row, w, h)

# ---------- Píxeles con máscara de validez ----------
@dataclass(frozen=True)
class PixelTile:
    """
    Bloque de píxeles multibanda + máscara de validez.
    - data: (bands, rows, cols) o (bands,) para un píxel suelto
    - valid: bool con la forma espacial de data (data.shape[1:])
    """
    data: "npt.NDArray[Any]"  # type: ignore[valid-type]
    valid: "npt.NDArray[np.bool_]"  # type: ignore[valid-type]

    def __post_init__(self):
        if self.valid.shape != self.data.shape[1:]:
            raise ValueError(f"máscara {self.valid.shape} no calza con datos {self.data.shape}")

    @property
    def bands(self) -> int:
        return int(self.data.shape[0])

    def with_data(self, data: "npt.NDArray[Any]") -> "PixelTile":
        # la validez viaja sin cambios
        return PixelTile(data=data, valid=self.valid)

# ---------- GeoTransform helpers (afines a GDAL pero sin dependencia) ----------
def geotransform_bounds(gt: GeoTransform, width: int, height: int) -> Bounds:
    x0, px, rx, y0, ry, py = gt
    x_w = x0 + width * px + height * rx
    y_w = y0 + width * ry + height * py
    minx, maxx = (x0, x_w) if x0 <= x_w else (x_w, x0)
    miny, maxy = (y_w, y0) if y_w <= y0 else (y0, y_w)
    return Bounds(minx, miny, maxx, maxy)

def pretty_bounds(b: Bounds, ndigits: int = 3) -> str:
    return (f"Bounds(minx={b.minx:.{ndigits}f}, miny={b.miny:.{ndigits}f}, "
            f"maxx={b.maxx:.{ndigits}f}, maxy={b.maxy:.{ndigits}f})")

__all__ = [
    "GeoTransform","Bounds","CRSRef","GeoProfile","TileWindow","iter_windows",
    "PixelTile","geotransform_bounds","pretty_bounds","DTypeStr","IDENTITY_GT",
]
