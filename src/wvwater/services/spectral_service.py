# src/wvwater/services/spectral_service.py
from __future__ import annotations
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Tuple

import numpy as np

from ..contracts.core import WorldViewBand
from ..contracts.geo import PixelTile

"""
Índices de diferencia normalizada sobre reflectancia TOA (puro, sin I/O).
- Banda en el eje 0: sirve igual para un píxel (8,) o un bloque (8, rows, cols).
- Si el denominador es exactamente 0 el índice vale 0 (nunca NaN).
"""

# Pares (a, b) -> (a - b) / (a + b)
# NDVI se calcula con NIR2, no con NIR1.
INDEX_BANDS: Mapping[str, Tuple[WorldViewBand, WorldViewBand]] = MappingProxyType({
    "NDVI": (WorldViewBand.RED, WorldViewBand.NIR2),
    "NDWI": (WorldViewBand.BLUE, WorldViewBand.NIR1),
    "NDWI2": (WorldViewBand.COASTAL, WorldViewBand.NIR2),  # también aparece como "NDWI" en la literatura
})


def nd_index(values: np.ndarray, a: int, b: int) -> np.ndarray:
    va = np.asarray(values[a], dtype="float32")
    vb = np.asarray(values[b], dtype="float32")
    num = va - vb
    den = va + vb
    out = np.zeros(den.shape, dtype="float32")
    np.divide(num, den, out=out, where=den != 0)
    return out[()]


def compute_ndvi(values: np.ndarray) -> np.ndarray:
    return nd_index(values, *INDEX_BANDS["NDVI"])


def compute_ndwi(values: np.ndarray) -> np.ndarray:
    return nd_index(values, *INDEX_BANDS["NDWI"])


def compute_ndwi2(values: np.ndarray) -> np.ndarray:
    return nd_index(values, *INDEX_BANDS["NDWI2"])


def compute_indices(tile: PixelTile, names: Iterable[str]) -> Dict[str, np.ndarray]:
    """Varios índices a la vez para estrategias de clasificación alternativas."""
    out: Dict[str, np.ndarray] = {}
    for name in names:
        key = name.upper()
        if key not in INDEX_BANDS:
            raise ValueError(f"Índice no soportado: {name}")
        out[key] = nd_index(tile.data, *INDEX_BANDS[key])
    return out


__all__ = [
    "INDEX_BANDS",
    "nd_index",
    "compute_ndvi",
    "compute_ndwi",
    "compute_ndwi2",
    "compute_indices",
]
