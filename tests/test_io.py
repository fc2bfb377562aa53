import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import cv2
import numpy as np
import pytest

from utils.io import (
    load_camera_params,
    load_depth,
    normals_to_rgb,
    save_camera_params_xml,
    save_npy,
)


def test_save_and_load_camera_params(tmp_path):
    K = np.array([[525.0, 0.0, 320.0], [0.0, 525.0, 240.0], [0.0, 0.0, 1.0]])
    dist = np.zeros(5)
    xml = tmp_path / "cam.xml"
    save_camera_params_xml(xml, K, dist)
    K2, dist2 = load_camera_params(xml)
    assert np.allclose(K, K2)
    assert np.allclose(dist, dist2.ravel())


def test_load_camera_params_missing_file(tmp_path):
    with pytest.raises(IOError):
        load_camera_params(tmp_path / "missing.xml")


def test_load_depth_png_and_npy(tmp_path):
    depth = np.arange(12, dtype=np.uint16).reshape(3, 4) * 1000
    png = tmp_path / "frame.png"
    cv2.imwrite(str(png), depth)
    loaded = load_depth(png)
    assert loaded.dtype == np.uint16
    assert np.array_equal(loaded, depth)

    npy = tmp_path / "frame.npy"
    save_npy(npy, depth.astype(np.float32) / 1000.0)
    loaded = load_depth(npy)
    assert loaded.dtype == np.float32
    assert np.allclose(loaded, depth / 1000.0)


def test_load_depth_rejects_unknown_suffix(tmp_path):
    with pytest.raises(ValueError):
        load_depth(tmp_path / "frame.tiff")


def test_normals_to_rgb():
    normals = np.array([[[0.0, 0.0, -1.0], [np.nan, np.nan, np.nan]]])
    rgb = normals_to_rgb(normals)
    assert rgb.dtype == np.uint8
    # BGR order: blue carries z
    assert rgb[0, 0].tolist() == [0, 128, 128]
    assert rgb[0, 1].tolist() == [0, 0, 0]
