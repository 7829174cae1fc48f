import numpy as np
import pytest

rasterio = pytest.importorskip("rasterio")

from wvwater.adapters.gdal_raster_reader import GdalRasterReader
from wvwater.contracts.geo import TileWindow
from tests.factories import write_multiband

pytestmark = [pytest.mark.integration, pytest.mark.gdal]


def test_profile_keeps_georeference(tmp_path):
    data = np.ones((8, 5, 4), dtype=np.uint16)
    tif = write_multiband(tmp_path / "a.tif", data)
    p = GdalRasterReader().profile(str(tif))
    assert (p.count, p.width, p.height, p.dtype) == (8, 4, 5, "uint16")
    assert p.crs.epsg == 32619 and p.crs.wkt
    assert p.transform == pytest.approx((500000.0, 1.24, 0.0, 4200000.0, 0.0, -1.24))
    assert p.is_georeferenced()


def test_read_window_and_validity(tmp_path):
    data = np.arange(8 * 4 * 6, dtype=np.uint16).reshape(8, 4, 6) + 1
    data[:, 2, 3] = 0
    data[:, 3, 5] = 9
    tif = write_multiband(tmp_path / "b.tif", data)

    tile = GdalRasterReader().read_window(str(tif), TileWindow(col_off=2, row_off=1, width=4, height=3))
    np.testing.assert_array_equal(tile.data, data[:, 1:4, 2:6])
    assert tile.valid.shape == (3, 4)
    assert not tile.valid[1, 1]
    assert tile.valid.sum() == 11

    declared = write_multiband(tmp_path / "c.tif", data, nodata=9)
    tile = GdalRasterReader().read_window(str(declared), TileWindow(5, 3, 1, 1))
    assert not tile.valid[0, 0]


def test_missing_georeference_is_visible(tmp_path):
    tif = write_multiband(tmp_path / "plain.tif", np.ones((8, 2, 2), dtype=np.uint16), crs=None)
    assert not GdalRasterReader().profile(str(tif)).is_georeferenced()
