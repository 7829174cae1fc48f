from __future__ import annotations
from pathlib import Path
from typing import Optional

import yaml

from ..config import Settings, get_settings
from ..adapters.gdal_raster_reader import GdalRasterReader
from ..adapters.gdal_raster_writer import GdalRasterWriter
from ..adapters.ndwi_pixel_classifier import NdwiWaterClassifier
from ..services.metadata_service import MetadataService
from ..services.water_detection_service import WaterDetectionService

def load_settings_from_yaml(path: Path) -> Settings:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return Settings(**data)

def build_settings(config_path: Optional[Path] = None, **overrides) -> Settings:
    st = load_settings_from_yaml(config_path) if config_path is not None else get_settings()
    upd = {k: v for k, v in overrides.items() if v is not None}
    if upd:
        # re-valida los overrides (model_copy no valida)
        st = Settings(**{**st.model_dump(), **upd})
    return st

def build_water_detection_service(settings: Settings) -> WaterDetectionService:
    return WaterDetectionService(
        reader=GdalRasterReader(backend=settings.raster_backend),
        writer=GdalRasterWriter(compress=settings.compress, backend=settings.raster_backend),
        classifier=NdwiWaterClassifier(threshold=settings.water_ndwi_threshold),
        metadata_service=MetadataService(extension=settings.metadata_extension),
        settings=settings,
    )
