# src/wvwater/adapters/ndwi_pixel_classifier.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..contracts.core import DEFAULT_LABELS, ClassLabel, WaterLabel
from ..contracts.geo import PixelTile
from ..ports.pixel_class import PixelClassifierPort
from ..services.spectral_service import compute_ndwi

@dataclass(frozen=True)
class NdwiWaterClassifier(PixelClassifierPort):
    """Clasificador agua/tierra por umbral de NDWI (Blue vs NIR1).

    Reglas:
      - píxel inválido -> NODATA (sin importar sus valores)
      - NDWI > threshold -> WATER
      - resto -> LAND
    NDVI/NDWI2 quedan disponibles en spectral_service para otras estrategias.
    """
    threshold: float = 0.1

    def name(self) -> str:
        return f"ndwi-threshold-{self.threshold:g}"

    def labels(self) -> Sequence[ClassLabel]:
        return DEFAULT_LABELS

    def classify(self, tile: PixelTile) -> np.ndarray:
        ndwi = compute_ndwi(tile.data)
        labels = np.where(ndwi > self.threshold, WaterLabel.WATER, WaterLabel.LAND)
        return np.where(tile.valid, labels, WaterLabel.NODATA).astype(np.uint8)
