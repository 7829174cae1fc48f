# src/wvwater/services/water_detection_service.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np

from ..config import Settings, get_settings
from ..contracts.core import NUM_WORLDVIEW_BANDS, WaterLabel, WorldViewMetadata
from ..contracts.errors import GeoReferenceMissingError, InputNotFoundError
from ..contracts.geo import GeoProfile, TileWindow, pretty_bounds
from ..adapters.local_inputs import find_file_by_extension
from ..ports.pixel_class import PixelClassifierPort
from ..ports.raster_read import RasterReaderPort
from ..ports.raster_write import RasterWriterPort, TileSource
from .calibration_service import ToaCalibrator
from .metadata_service import MetadataService

"""
Detección de agua WorldView-3 por bloques (contracts-first).
Pipeline:
  FIND (.tif + .IMD) → PROFILE/GEOREF → METADATA → por ventana:
  READ (DN + validez) → TOA → CLASSIFY → WRITE

Nunca se materializa la imagen calibrada completa: cada ventana se lee,
calibra y clasifica bajo demanda dentro del bucle de escritura del writer.
Todo lo que puede fallar por entradas (archivos, georreferencia, metadata)
falla ANTES de procesar el primer bloque.
"""

logger = logging.getLogger(__name__)

_LABEL_BINS = 256  # labels uint8

# ----------------------
# DTOs
# ----------------------

@dataclass(frozen=True)
class WaterDetectionInputs:
    paths: Tuple[Path, ...]

    @classmethod
    def from_paths(cls, paths: Sequence[Path | str]) -> "WaterDetectionInputs":
        return cls(paths=tuple(Path(p) for p in paths))

@dataclass(frozen=True)
class WaterDetectionSpec:
    out_tif: Optional[Path] = None      # si None -> Settings.out_path(imagen)
    tile_size: Optional[int] = None     # si None -> Settings.tile_size
    max_workers: Optional[int] = None   # si None -> Settings.max_workers

@dataclass(frozen=True)
class WaterDetectionResult:
    labels_tif: Path
    counts: Mapping[int, int]
    percents: Mapping[int, float]
    tiles: int
    metadata: WorldViewMetadata
    profile: GeoProfile
    classifier: str

# ----------------------
# Servicio
# ----------------------

@dataclass
class WaterDetectionService:
    reader: Optional[RasterReaderPort] = None
    writer: Optional[RasterWriterPort] = None
    classifier: Optional[PixelClassifierPort] = None
    metadata_service: Optional[MetadataService] = None
    settings: Settings = field(default_factory=get_settings)

    def __post_init__(self):
        if self.metadata_service is None:
            self.metadata_service = MetadataService(extension=self.settings.metadata_extension)

    # --------- API principal ---------
    def run(self, inputs: WaterDetectionInputs, spec: WaterDetectionSpec = WaterDetectionSpec()) -> WaterDetectionResult:
        if self.reader is None:
            raise RuntimeError("RasterReaderPort no configurado")
        if self.writer is None:
            raise RuntimeError("RasterWriterPort no configurado")
        if self.classifier is None:
            raise RuntimeError("PixelClassifierPort no configurado")

        # 1) FIND + PROFILE + METADATA (fail-fast)
        image_path = self.find_image(inputs.paths)
        profile = self.load_profile(image_path)
        metadata = self.metadata_service.load(inputs.paths)  # type: ignore[union-attr]
        logger.debug("Metadata cargada:\n%s", metadata.describe())

        # 2) Composición perezosa por ventana
        source = self.build_label_source(str(image_path), metadata)

        # 3) WRITE por bloques (+ conteos en el hilo llamador)
        out_tif = Path(spec.out_tif) if spec.out_tif is not None else self.settings.out_path(image_path)
        tile_size = spec.tile_size or self.settings.tile_size
        max_workers = spec.max_workers or self.settings.max_workers
        counts = np.zeros(_LABEL_BINS, dtype=np.int64)
        n_tiles = 0

        def _on_tile(window: TileWindow, labels: np.ndarray) -> None:
            nonlocal n_tiles
            counts[:] += np.bincount(labels.ravel(), minlength=_LABEL_BINS)[:_LABEL_BINS]
            n_tiles += 1
            logger.debug("bloque %d escrito: %s", n_tiles, window)

        logger.info("Clasificando %s (%dx%d, bloques de %d, %d worker(s)) con %s",
                    image_path, profile.width, profile.height, tile_size, max_workers, self.classifier.name())
        self.writer.write_tiled(
            str(out_tif),
            source,
            profile.for_labels(nodata=float(WaterLabel.NODATA)),
            tile_size=tile_size,
            max_workers=max_workers,
            on_tile=_on_tile,
        )

        nz = {int(k): int(counts[k]) for k in np.flatnonzero(counts)}
        result = WaterDetectionResult(
            labels_tif=out_tif,
            counts=nz,
            percents=self._to_percents(nz, total=profile.width * profile.height),
            tiles=n_tiles,
            metadata=metadata,
            profile=profile,
            classifier=self.classifier.name(),
        )
        logger.info("Salida %s: %d bloques, conteos %s", out_tif, n_tiles, nz)
        return result

    # --------- Fases internas ---------
    def find_image(self, paths: Sequence[Path]) -> Path:
        ext = self.settings.image_extension
        image_path = find_file_by_extension(paths, ext)
        if image_path is None:
            raise InputNotFoundError(f"no se encontró imagen WorldView ({ext}) en {[str(p) for p in paths]}")
        return image_path

    def load_profile(self, image_path: Path) -> GeoProfile:
        assert self.reader is not None
        if not self.reader.exists(str(image_path)):
            raise InputNotFoundError(f"imagen no existe: {image_path}")
        profile = self.reader.profile(str(image_path))
        if not profile.is_georeferenced():
            raise GeoReferenceMissingError(f"no se pudo leer georreferencia de {image_path}")
        if profile.count != NUM_WORLDVIEW_BANDS:
            raise ValueError(f"{image_path}: se esperaban {NUM_WORLDVIEW_BANDS} bandas, tiene {profile.count}")
        logger.info("Imagen %s: %s", image_path, pretty_bounds(profile.bounds))
        return profile

    def build_label_source(self, uri: str, metadata: WorldViewMetadata) -> TileSource:
        """raw → (máscara) → TOA → label; sin estado mutable compartido entre workers."""
        reader, classifier = self.reader, self.classifier
        assert reader is not None and classifier is not None
        calibrate = ToaCalibrator(metadata)

        def _source(window: TileWindow) -> np.ndarray:
            return classifier.classify(calibrate(reader.read_window(uri, window)))

        return _source

    @staticmethod
    def _to_percents(counts: Mapping[int, int], *, total: int) -> Mapping[int, float]:
        if total <= 0:
            return {int(k): 0.0 for k in counts}
        return {int(k): (v / float(total)) * 100.0 for k, v in counts.items()}

__all__ = [
    "WaterDetectionInputs",
    "WaterDetectionSpec",
    "WaterDetectionResult",
    "WaterDetectionService",
]
