# src/wvwater/services/metadata_service.py
from __future__ import annotations

"""
Lectura estricta de metadata WorldView (.IMD).

El .IMD es texto por líneas con grupos:
    BEGIN_GROUP = BAND_C
        absCalFactor = 9.295654e-03;
        effectiveBandwidth = 4.730000e-02;
    END_GROUP = BAND_C
    ...
    BEGIN_GROUP = IMAGE_1
        firstLineTime = 2016-10-23T17:46:54.796950Z;
        meanSunEl = 45.2;
    END_GROUP = IMAGE_1

Parser de una sola pasada: el único estado es la banda actual (o ninguna),
que cambia solo en líneas BEGIN_GROUP. Al final se exige exactamente
2*8 + 2 campos y todas las bandas completas; si no, MetadataError.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from pydantic import ValidationError

from ..contracts.core import (
    IMD_GROUP_BANDS,
    NUM_WORLDVIEW_BANDS,
    BandCoefficientSet,
    SceneGeometry,
    WorldViewBand,
    WorldViewMetadata,
)
from ..contracts.errors import InputNotFoundError, MetadataError
from ..adapters.local_inputs import find_file_by_extension
from .geometry_service import earth_sun_distance_from_timestamp

logger = logging.getLogger(__name__)

REQUIRED_FIELD_COUNT = 2 * NUM_WORLDVIEW_BANDS + 2

_GROUP_KEY = "BEGIN_GROUP"
_ABS_CAL_KEY = "absCalFactor"
_BANDWIDTH_KEY = "effectiveBandwidth"
_SUN_EL_KEY = "meanSunEl"
_TIME_KEY = "firstLineTime"


def parse_metadata_value(line: str, *, lineno: int = 0) -> float:
    """Valor numérico de 'key = 1.23e-02;' (token tras '=', antes del ';')."""
    _, sep, rest = line.partition("=")
    token = rest.strip().rstrip(";").strip()
    if not sep or not token:
        raise MetadataError(f"línea {lineno}: falta valor en {line.strip()!r}")
    try:
        return float(token)
    except ValueError as e:
        raise MetadataError(f"línea {lineno}: valor no numérico {token!r}") from e


@dataclass
class _ScanState:
    band: Optional[WorldViewBand] = None  # None = fuera de un grupo de banda conocido


@dataclass
class _MetadataAccumulator:
    abs_cal_factor: List[Optional[float]] = field(default_factory=lambda: [None] * NUM_WORLDVIEW_BANDS)
    effective_bandwidth: List[Optional[float]] = field(default_factory=lambda: [None] * NUM_WORLDVIEW_BANDS)
    mean_sun_elevation: Optional[float] = None
    datetime: Optional[str] = None
    found_count: int = 0

    def set_band_value(self, slots: List[Optional[float]], state: _ScanState, key: str, value: float, lineno: int) -> None:
        if state.band is None:
            raise MetadataError(f"línea {lineno}: {key} fuera de un grupo de banda reconocido")
        slots[state.band] = value
        self.found_count += 1

    def finalize(self) -> tuple[BandCoefficientSet, SceneGeometry]:
        if self.found_count != REQUIRED_FIELD_COUNT:
            raise MetadataError(
                f"se encontraron {self.found_count} campos requeridos; se esperaban {REQUIRED_FIELD_COUNT}"
            )
        missing = [
            f"{key}[{band.name}]"
            for key, slots in ((_ABS_CAL_KEY, self.abs_cal_factor), (_BANDWIDTH_KEY, self.effective_bandwidth))
            for band, v in zip(WorldViewBand, slots)
            if v is None
        ]
        if self.mean_sun_elevation is None:
            missing.append(_SUN_EL_KEY)
        if self.datetime is None:
            missing.append(_TIME_KEY)
        if missing:
            raise MetadataError(f"faltan campos requeridos (o hay duplicados): {missing}")

        assert self.datetime is not None
        distance = earth_sun_distance_from_timestamp(self.datetime)
        try:
            coefficients = BandCoefficientSet(
                abs_cal_factor=tuple(self.abs_cal_factor),  # type: ignore[arg-type]
                effective_bandwidth=tuple(self.effective_bandwidth),  # type: ignore[arg-type]
            )
            geometry = SceneGeometry(
                mean_sun_elevation=self.mean_sun_elevation,
                earth_sun_distance=distance,
                datetime=self.datetime,
            )
        except ValidationError as e:
            raise MetadataError(f"metadata fuera de rango: {e}") from e
        return coefficients, geometry


def parse_worldview_metadata(lines: Iterable[str], *, source: Optional[Path] = None) -> WorldViewMetadata:
    state = _ScanState()
    acc = _MetadataAccumulator()

    for lineno, line in enumerate(lines, start=1):
        if _GROUP_KEY in line:
            name = line.partition("=")[2].strip().rstrip(";").strip()
            state = _ScanState(band=IMD_GROUP_BANDS.get(name))
            continue
        if _ABS_CAL_KEY in line:
            acc.set_band_value(acc.abs_cal_factor, state, _ABS_CAL_KEY, parse_metadata_value(line, lineno=lineno), lineno)
            continue
        if _BANDWIDTH_KEY in line:
            acc.set_band_value(acc.effective_bandwidth, state, _BANDWIDTH_KEY, parse_metadata_value(line, lineno=lineno), lineno)
            continue
        if _SUN_EL_KEY in line:
            acc.mean_sun_elevation = parse_metadata_value(line, lineno=lineno)
            acc.found_count += 1
            continue
        if _TIME_KEY in line:
            acc.datetime = line.partition("=")[2].strip()
            acc.found_count += 1
            continue

    coefficients, geometry = acc.finalize()
    return WorldViewMetadata(coefficients=coefficients, geometry=geometry, source=source)


def load_worldview_metadata(path: Path | str) -> WorldViewMetadata:
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8", errors="replace") as f:
            return parse_worldview_metadata(f, source=p)
    except MetadataError as e:
        raise MetadataError(f"{p}: {e}") from e


@dataclass
class MetadataService:
    """Ubica el .IMD entre las entradas y lo parsea (falla antes de tocar píxeles)."""
    extension: str = ".IMD"

    def load(self, input_paths: Sequence[Path | str]) -> WorldViewMetadata:
        path = find_file_by_extension(input_paths, self.extension)
        if path is None:
            raise InputNotFoundError(f"no se encontró metadata WorldView ({self.extension}) en {list(map(str, input_paths))}")
        md = load_worldview_metadata(path)
        logger.info("Metadata cargada desde %s (d=%.6f UA, sunEl=%.3f°)",
                    path, md.geometry.earth_sun_distance, md.geometry.mean_sun_elevation)
        return md


__all__ = [
    "REQUIRED_FIELD_COUNT",
    "parse_metadata_value",
    "parse_worldview_metadata",
    "load_worldview_metadata",
    "MetadataService",
]
