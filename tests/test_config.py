import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import numpy as np
import pytest

from normals import NormalsMethod
from utils.config import Config, YamlConfigLoader
from utils.error_tracker import NormalsConfigError

YAML = """
camera:
  width: 80
  height: 60
  fx: 100.0
  fy: 110.0
  cx: 40.0
  cy: 30.0
normals:
  method: sri
  window_size: 3
  dtype: float64
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "normals.yaml"
    path.write_text(YAML)
    Config.load(path, force_reload=True)
    yield path
    Config.reset()


def test_yaml_loader(config_file):
    data = YamlConfigLoader().load(str(config_file))
    assert data["normals"]["method"] == "sri"


def test_get_dotted_path(config_file):
    assert Config.get("camera.fy") == 110.0
    assert Config.get("camera.missing", 5) == 5
    assert Config.get("normals.window_size.deeper", "x") == "x"


def test_camera_matrix(config_file):
    K = Config.camera_matrix()
    assert np.allclose(K, [[100.0, 0.0, 40.0], [0.0, 110.0, 30.0], [0.0, 0.0, 1.0]])


def test_normals_config(config_file):
    config = Config.normals_config()
    assert config.shape == (60, 80)
    assert config.method is NormalsMethod.SRI
    assert config.window_size == 3
    assert config.dtype == np.float64
    assert Config.normals_config(rows=10, cols=20).shape == (10, 20)


def test_invalid_normals_section(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("normals:\n  window_size: 4\n")
    Config.load(path, force_reload=True)
    try:
        with pytest.raises(NormalsConfigError):
            Config.normals_config()
    finally:
        Config.reset()


class DictLoader:
    def __init__(self, data):
        self.data = data

    def load(self, filename):
        return self.data


def test_custom_loader():
    try:
        Config.set_loader(DictLoader({"normals": {"method": "linemod"}}))
        Config.load("unused.yaml", force_reload=True)
        assert Config.normals_config(rows=10, cols=20).method is NormalsMethod.LINEMOD
    finally:
        Config.set_loader(YamlConfigLoader())
        Config.reset()
