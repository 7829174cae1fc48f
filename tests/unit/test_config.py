# tests/unit/test_config.py
import pytest
import yaml
from pathlib import Path
from pydantic import ValidationError

from wvwater.config import Settings, get_settings
from wvwater.composition.di import build_settings, build_water_detection_service

def test_settings_defaults_and_paths(tmp_path: Path):
    s = Settings()
    assert (s.tile_size, s.max_workers, s.water_ndwi_threshold) == (256, 1, 0.1)
    assert s.out_path(tmp_path / "scene.tif") == (tmp_path / "scene_water.tif").resolve()
    s2 = Settings(output_dir=tmp_path / "out", output_pattern="{stem}.labels.tif")
    assert s2.out_path("x/abc.TIF").name == "abc.labels.tif"

def test_settings_guards():
    with pytest.raises(ValidationError):
        Settings(output_pattern="{date}/x.tif")
    with pytest.raises(ValidationError):
        Settings(tile_size=0)
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")
    assert Settings(metadata_extension="imd").metadata_extension == ".imd"

def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("WVWATER_TILE_SIZE", "512")
    monkeypatch.setenv("WVWATER_WATER_NDWI_THRESHOLD", "0.25")
    s = get_settings()
    assert s.tile_size == 512
    assert s.water_ndwi_threshold == 0.25

def test_build_settings_from_yaml_with_overrides(tmp_path: Path):
    cfg = tmp_path / "settings.yaml"
    cfg.write_text(yaml.safe_dump({
        "tile_size": 128,
        "max_workers": 2,
        "water_ndwi_threshold": 0.2,
        "compress": "LZW",
    }), encoding="utf-8")

    st = build_settings(cfg, max_workers=4, tile_size=None)
    assert (st.tile_size, st.max_workers, st.compress) == (128, 4, "LZW")
    with pytest.raises(ValidationError):
        build_settings(cfg, max_workers=0)

    svc = build_water_detection_service(st)
    assert svc.classifier.threshold == 0.2
    assert svc.writer.compress == "LZW"
    assert svc.metadata_service.extension == ".IMD"


def test_raster_backend_setting(monkeypatch):
    monkeypatch.setenv("WVWATER_RASTER_BACKEND", "gdal")
    svc = build_water_detection_service(build_settings())
    assert svc.reader.backend == "gdal" and svc.writer.backend == "gdal"
    with pytest.raises(ValidationError):
        Settings(raster_backend="netcdf")
