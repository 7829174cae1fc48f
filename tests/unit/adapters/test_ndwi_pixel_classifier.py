import numpy as np
import pytest

from wvwater.adapters.ndwi_pixel_classifier import NdwiWaterClassifier
from wvwater.contracts.core import WaterLabel, WorldViewBand
from wvwater.contracts.geo import PixelTile
from wvwater.ports.pixel_class import PixelClassifierPort


def _tile(blue, nir1, valid=True):
    data = np.full((8, 1, 1), 0.3, dtype=np.float32)
    data[WorldViewBand.BLUE] = blue
    data[WorldViewBand.NIR1] = nir1
    return PixelTile(data=data, valid=np.array([[valid]]))


def test_satisfies_port():
    assert isinstance(NdwiWaterClassifier(), PixelClassifierPort)


@pytest.mark.parametrize("blue,nir1", [(0.0, 0.0), (0.9, 0.1), (1e9, -1e9), (np.nan, np.nan), (-5.0, 99.0)])
def test_invalid_is_always_nodata(blue, nir1):
    assert NdwiWaterClassifier().classify(_tile(blue, nir1, valid=False))[0, 0] == WaterLabel.NODATA


@pytest.mark.parametrize("blue,nir1,expected", [
    (0.6, 0.4, WaterLabel.WATER),   # NDWI 0.2
    (0.9, 0.1, WaterLabel.WATER),   # NDWI 0.8
    (0.52, 0.48, WaterLabel.LAND),  # NDWI 0.04
    (0.5, 0.5, WaterLabel.LAND),    # NDWI 0
    (0.1, 0.9, WaterLabel.LAND),    # NDWI -0.8
    (0.0, 0.0, WaterLabel.LAND),    # denominador 0 -> NDWI 0
])
def test_threshold_rule(blue, nir1, expected):
    assert NdwiWaterClassifier().classify(_tile(blue, nir1))[0, 0] == expected


def test_custom_threshold_and_dtype():
    clf = NdwiWaterClassifier(threshold=0.5)
    out = clf.classify(_tile(0.6, 0.4))
    assert out.dtype == np.uint8
    assert out[0, 0] == WaterLabel.LAND
    assert clf.name() == "ndwi-threshold-0.5"
    assert {c.id for c in clf.labels()} == {0, 1, 255}
