# src/wvwater/services/calibration_service.py
from __future__ import annotations
import math
from dataclasses import dataclass

import numpy as np

from ..contracts.core import NUM_WORLDVIEW_BANDS, WORLDVIEW_ESUN, SceneGeometry, WorldViewMetadata
from ..contracts.geo import PixelTile

_ESUN = np.asarray(WORLDVIEW_ESUN, dtype="float32")


def toa_scale_factor(geometry: SceneGeometry) -> float:
    """d^2 * pi / cos(cenit solar); un solo escalar compartido por todas las bandas."""
    d = geometry.earth_sun_distance
    return d * d * math.pi / math.cos(math.radians(90.0 - geometry.mean_sun_elevation))


def _per_band(values: np.ndarray, ndim: int) -> np.ndarray:
    # (bands,) -> (bands, 1, 1, ...) para broadcast contra (bands, rows, cols)
    return values.reshape((-1,) + (1,) * (ndim - 1))


def convert_to_toa(dn: np.ndarray, metadata: WorldViewMetadata) -> np.ndarray:
    """
    DN -> reflectancia TOA (float32). Banda en el eje 0; acepta un píxel (8,)
    o un bloque (8, rows, cols). Función pura.
    """
    if dn.shape[0] != NUM_WORLDVIEW_BANDS:
        raise ValueError(f"se esperaban {NUM_WORLDVIEW_BANDS} bandas en el eje 0; forma {dn.shape}")
    gain = _per_band(np.asarray(metadata.coefficients.gains(), dtype="float32"), dn.ndim)
    esun = _per_band(_ESUN, dn.ndim)
    scale = np.float32(toa_scale_factor(metadata.geometry))

    radiance = dn.astype("float32") * gain
    return (radiance * scale / esun).astype("float32", copy=False)


@dataclass(frozen=True)
class ToaCalibrator:
    """Calibrador por bloque: PixelTile(DN) -> PixelTile(reflectancia), validez intacta."""
    metadata: WorldViewMetadata

    def __call__(self, tile: PixelTile) -> PixelTile:
        return tile.with_data(convert_to_toa(tile.data, self.metadata))


__all__ = ["toa_scale_factor", "convert_to_toa", "ToaCalibrator"]
