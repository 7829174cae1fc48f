import numpy as np
import pytest

from tests.factories import SCENE_STEM, make_imd_text, make_scenario_raster, write_multiband


@pytest.fixture
def scene_dir(tmp_path):
    """Escena 2x2 (.TIF + .IMD) como la entrega el proveedor."""
    write_multiband(tmp_path / f"{SCENE_STEM}.TIF", make_scenario_raster())
    (tmp_path / f"{SCENE_STEM}.IMD").write_text(make_imd_text(), encoding="utf-8")
    return tmp_path


@pytest.fixture
def random_scene(tmp_path):
    rng = np.random.default_rng(7)
    data = rng.integers(1, 3000, size=(8, 37, 23), dtype=np.uint16)
    data[:, :3, :] = 0  # franja sin datos
    tif = write_multiband(tmp_path / "big.tif", data)
    imd = tmp_path / "big.IMD"
    imd.write_text(make_imd_text(abs_cal=0.01, bandwidth=0.05), encoding="utf-8")
    return data, tif, imd
