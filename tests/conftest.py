import os
import pytest
from wvwater.config import get_settings

from tests.factories import make_imd_text

def pytest_configure():
    os.environ.setdefault("WVWATER_LOG_LEVEL", "DEBUG")

@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # evita fuga de estado entre tests
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

@pytest.fixture
def imd_file(tmp_path):
    path = tmp_path / "16OCT23174654-M1BS-058220160010_01_P001.IMD"
    path.write_text(make_imd_text(), encoding="utf-8")
    return path

def pytest_collection_modifyitems(items):
    for item in items:
        if "integration" in item.keywords and os.environ.get("CI") == "true":
            # marca como slow en CI si quieres escalonar
            item.add_marker(pytest.mark.slow)
