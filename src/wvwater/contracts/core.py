# src/wvwater/contracts/core.py
from __future__ import annotations

from enum import IntEnum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator

# -------------------------
# Bandas WorldView-3 (VNIR)
# -------------------------
NUM_WORLDVIEW_BANDS = 8

class WorldViewBand(IntEnum):
    """Orden de canales en el GeoTIFF multibanda y en los vectores de coeficientes."""
    COASTAL = 0
    BLUE = 1
    GREEN = 2
    YELLOW = 3
    RED = 4
    RED_EDGE = 5
    NIR1 = 6
    NIR2 = 7

# Nombre de grupo en el .IMD -> banda
IMD_GROUP_BANDS: Mapping[str, WorldViewBand] = MappingProxyType({
    "BAND_C": WorldViewBand.COASTAL,
    "BAND_B": WorldViewBand.BLUE,
    "BAND_G": WorldViewBand.GREEN,
    "BAND_Y": WorldViewBand.YELLOW,
    "BAND_R": WorldViewBand.RED,
    "BAND_RE": WorldViewBand.RED_EDGE,
    "BAND_N": WorldViewBand.NIR1,
    "BAND_N2": WorldViewBand.NIR2,
})

# Irradiancia solar espectral promedio por banda (W/m2/um)
# - "Radiometric Use of WorldView-2 Imagery" (sin PAN)
WORLDVIEW_ESUN: Tuple[float, ...] = (
    1758.2229,  # Coastal
    1974.2416,  # Blue
    1856.4104,  # Green
    1738.4791,  # Yellow
    1559.4555,  # Red
    1342.0695,  # Red Edge
    1069.7302,  # NIR 1
    861.2866,   # NIR 2
)

# -------------------------
# Etiquetas de clasificación
# -------------------------
class WaterLabel(IntEnum):
    LAND = 0
    WATER = 1
    NODATA = 255   # también es el nodata del raster de salida

class ClassLabel(BaseModel):
    model_config = ConfigDict(frozen=True)
    id: NonNegativeInt
    name: str

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("name no puede ser vacío")
        return v2

DEFAULT_LABELS: Tuple[ClassLabel, ...] = (
    ClassLabel(id=int(WaterLabel.LAND), name="Tierra"),
    ClassLabel(id=int(WaterLabel.WATER), name="Agua"),
    ClassLabel(id=int(WaterLabel.NODATA), name="NoData"),
)

# -------------------------
# Metadata radiométrica
# -------------------------
class BandCoefficientSet(BaseModel):
    """Coeficientes de calibración absolutos por banda (uno por canal, todos > 0)."""
    model_config = ConfigDict(frozen=True)
    abs_cal_factor: Tuple[float, ...]
    effective_bandwidth: Tuple[float, ...]

    @field_validator("abs_cal_factor", "effective_bandwidth")
    @classmethod
    def _eight_positive(cls, v: Tuple[float, ...], info) -> Tuple[float, ...]:
        if len(v) != NUM_WORLDVIEW_BANDS:
            raise ValueError(f"{info.field_name}: se esperaban {NUM_WORLDVIEW_BANDS} bandas, hay {len(v)}")
        for band, x in zip(WorldViewBand, v):
            if not x > 0:
                raise ValueError(f"{info.field_name}[{band.name}] debe ser > 0 (es {x})")
        return v

    def gains(self) -> Tuple[float, ...]:
        """absCalFactor / effectiveBandwidth por banda (DN -> radiancia)."""
        return tuple(a / b for a, b in zip(self.abs_cal_factor, self.effective_bandwidth))


class SceneGeometry(BaseModel):
    model_config = ConfigDict(frozen=True)
    mean_sun_elevation: float = Field(gt=0.0, le=90.0)  # grados
    earth_sun_distance: float = Field(gt=0.0)           # UA
    datetime: str                                       # firstLineTime tal cual


def _fmt_bands(xs) -> str:
    return "(" + ", ".join(f"{x:.6g}" for x in xs) + ")"


class WorldViewMetadata(BaseModel):
    """Metadata de escena ya finalizada; se comparte en solo-lectura entre workers."""
    model_config = ConfigDict(frozen=True)
    coefficients: BandCoefficientSet
    geometry: SceneGeometry
    source: Optional[Path] = None

    def describe(self) -> str:
        c, g = self.coefficients, self.geometry
        return "\n".join([
            f"abs_cal_factor      {_fmt_bands(c.abs_cal_factor)}",
            f"effective_bandwidth {_fmt_bands(c.effective_bandwidth)}",
            f"mean_sun_elevation  {g.mean_sun_elevation:.4f}",
            f"earth_sun_distance  {g.earth_sun_distance:.6f}",
            f"datetime            {g.datetime}",
        ])


__all__ = [
    "NUM_WORLDVIEW_BANDS", "WorldViewBand", "IMD_GROUP_BANDS", "WORLDVIEW_ESUN",
    "WaterLabel", "ClassLabel", "DEFAULT_LABELS",
    "BandCoefficientSet", "SceneGeometry", "WorldViewMetadata",
]
