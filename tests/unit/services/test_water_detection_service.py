from pathlib import Path

import numpy as np
import pytest

from wvwater.adapters.ndwi_pixel_classifier import NdwiWaterClassifier
from wvwater.config import Settings
from wvwater.contracts.core import WaterLabel
from wvwater.contracts.errors import GeoReferenceMissingError, InputNotFoundError, MetadataError
from wvwater.contracts.geo import CRSRef, TileWindow
from wvwater.services.water_detection_service import (
    WaterDetectionInputs,
    WaterDetectionService,
    WaterDetectionSpec,
)
from tests.factories import (
    MemoryRasterReader,
    MemoryRasterWriter,
    make_imd_text,
    make_profile,
    make_scenario_raster,
)

N, W, L = int(WaterLabel.NODATA), int(WaterLabel.WATER), int(WaterLabel.LAND)


def _service(reader, writer=None, **settings):
    return WaterDetectionService(
        reader=reader,
        writer=writer or MemoryRasterWriter(),
        classifier=NdwiWaterClassifier(),
        settings=Settings(**settings),
    )


def _inputs(imd_file):
    return WaterDetectionInputs.from_paths(["scene.tif", imd_file])


@pytest.mark.parametrize("tile_size,workers", [(256, 1), (1, 1), (1, 3)])
def test_two_by_two_scenario(imd_file, tile_size, workers):
    reader = MemoryRasterReader(make_scenario_raster(), make_profile())
    writer = MemoryRasterWriter()
    svc = _service(reader, writer, tile_size=tile_size, max_workers=workers)

    res = svc.run(_inputs(imd_file), WaterDetectionSpec(out_tif=Path("out.tif")))

    labels = writer.outputs["out.tif"]
    assert labels.ravel().tolist() == [N, W, L, L]
    assert labels.dtype == np.uint8
    assert res.counts == {L: 2, W: 1, N: 1}
    assert res.percents[L] == pytest.approx(50.0)
    assert res.tiles == (1 if tile_size == 256 else 4)


def test_output_profile_keeps_georeference(imd_file):
    in_prof = make_profile()
    writer = MemoryRasterWriter()
    _service(MemoryRasterReader(make_scenario_raster(), in_prof), writer).run(
        _inputs(imd_file), WaterDetectionSpec(out_tif=Path("out.tif")))

    out_prof = writer.profiles["out.tif"]
    assert out_prof.transform == in_prof.transform
    assert out_prof.crs == in_prof.crs
    assert (out_prof.count, out_prof.dtype, out_prof.nodata) == (1, "uint8", 255.0)
    assert (out_prof.width, out_prof.height) == (in_prof.width, in_prof.height)


def test_default_output_path_from_settings(imd_file, tmp_path):
    writer = MemoryRasterWriter()
    svc = _service(MemoryRasterReader(make_scenario_raster(), make_profile()), writer, output_dir=tmp_path)
    res = svc.run(_inputs(imd_file))
    assert res.labels_tif == (tmp_path / "scene_water.tif").resolve()
    assert str(res.labels_tif) in writer.outputs


def test_missing_image(imd_file):
    reader = MemoryRasterReader(make_scenario_raster(), make_profile())
    with pytest.raises(InputNotFoundError, match=r"\.tif"):
        _service(reader).run(WaterDetectionInputs.from_paths([imd_file]))


def test_missing_metadata_fails_before_any_tile():
    reader = MemoryRasterReader(make_scenario_raster(), make_profile())
    with pytest.raises(InputNotFoundError, match=r"\.IMD"):
        _service(reader).run(WaterDetectionInputs.from_paths(["scene.tif"]))
    assert reader.reads == []


def test_malformed_metadata_fails_before_any_tile(tmp_path):
    imd = tmp_path / "scene.IMD"
    imd.write_text(make_imd_text(first_line_time="garbage"), encoding="utf-8")
    reader = MemoryRasterReader(make_scenario_raster(), make_profile())
    writer = MemoryRasterWriter()
    with pytest.raises(MetadataError):
        _service(reader, writer).run(WaterDetectionInputs.from_paths(["scene.tif", imd]))
    assert reader.reads == []
    assert writer.outputs == {}


def test_metadata_logged_before_tiles(imd_file, caplog):
    reader = MemoryRasterReader(make_scenario_raster(), make_profile(), fail_on=[TileWindow(0, 0, 1, 1)])
    caplog.set_level("DEBUG", logger="wvwater")
    with pytest.raises(IOError):
        _service(reader, tile_size=1).run(_inputs(imd_file), WaterDetectionSpec(out_tif=Path("out.tif")))
    assert "earth_sun_distance" in caplog.text


def test_missing_georeference(imd_file):
    prof = make_profile()
    bare = type(prof)(prof.count, prof.dtype, prof.width, prof.height, prof.transform, CRSRef(), None)
    reader = MemoryRasterReader(make_scenario_raster(), bare)
    with pytest.raises(GeoReferenceMissingError):
        _service(reader).run(_inputs(imd_file))


def test_wrong_band_count(imd_file):
    reader = MemoryRasterReader(np.ones((4, 2, 2), dtype=np.uint16), make_profile(count=4))
    with pytest.raises(ValueError, match="8 bandas"):
        _service(reader).run(_inputs(imd_file))


def test_tile_failure_aborts_run(imd_file):
    reader = MemoryRasterReader(make_scenario_raster(), make_profile(), fail_on=[TileWindow(1, 1, 1, 1)])
    writer = MemoryRasterWriter()
    with pytest.raises(IOError, match="bloque corrupto"):
        _service(reader, writer, tile_size=1).run(_inputs(imd_file), WaterDetectionSpec(out_tif=Path("out.tif")))
    assert writer.outputs == {}


def test_unconfigured_ports():
    with pytest.raises(RuntimeError):
        WaterDetectionService(settings=Settings()).run(WaterDetectionInputs.from_paths([]))
