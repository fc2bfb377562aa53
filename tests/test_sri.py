import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import numpy as np
import pytest

from conftest import angular_error_deg, plane_points
from geometry.depth_projection import compute_radius
from normals.base import NormalsConfig
from normals.sri import SriEstimator
from utils.error_tracker import NormalsConfigError

ROWS, COLS = 480, 640
CROP = (slice(120, 360), slice(160, 480))


def _estimator(K, window_size=5, dtype=np.float64, rows=ROWS, cols=COLS):
    est = SriEstimator(NormalsConfig(rows, cols, dtype, K, window_size, "sri"))
    est.cache()
    return est


def _run(est, points):
    points = points.astype(est.dtype)
    out = np.empty(points.shape, dtype=est.dtype)
    return est.compute(points, compute_radius(points), out)


def test_cache_layout(K):
    est = _estimator(K, dtype=np.float32)
    cache = est.cached
    assert cache.R_hat.shape == (ROWS, COLS, 9)
    assert cache.R_hat.dtype == np.float32
    assert cache.xy.shape == (ROWS, COLS, 2)
    assert cache.inv_xy.shape == (ROWS, COLS, 2)
    theta_min, theta_max = cache.theta_range
    phi_min, phi_max = cache.phi_range
    assert np.isclose(theta_min, -np.arctan(320 / 525.0), atol=1e-6)
    assert np.isclose(theta_max, np.arctan(319 / 525.0), atol=1e-6)
    assert phi_min < 0 < phi_max
    assert np.isclose(cache.theta_step, (theta_max - theta_min) / (COLS - 1))
    assert np.isclose(cache.phi_step, (phi_max - phi_min) / (ROWS - 1))


def test_rotation_field_is_zero_at_center_entry(K):
    est = _estimator(K, rows=60, cols=80)
    assert np.allclose(est.cached.R_hat[..., 4], 0.0, atol=1e-12)


def test_fronto_parallel_plane(K):
    points, _ = plane_points(ROWS, COLS, K, [0.0, 0.0, -1.0], -1000.0)
    normals = _run(_estimator(K), points)
    assert np.allclose(normals[CROP], [0.0, 0.0, -1.0], atol=0.02)


@pytest.mark.parametrize("dtype", [np.float32, np.float64])
def test_tilted_plane(K, tilted_normal, dtype):
    points, n = plane_points(ROWS, COLS, K, tilted_normal, -1000.0)
    normals = _run(_estimator(K, dtype=dtype), points)
    error = angular_error_deg(normals[6:-6, 6:-6].astype(np.float64), n)
    assert error.max() < 1.0


def test_output_unit_and_facing_camera(K, tilted_normal):
    points, _ = plane_points(ROWS, COLS, K, tilted_normal, -1000.0, np.float32)
    normals = _run(_estimator(K, dtype=np.float32), points)
    assert normals.dtype == np.float32
    finite = np.all(np.isfinite(normals), axis=-1)
    assert np.all(finite[CROP])
    assert np.allclose(np.linalg.norm(normals[finite], axis=-1), 1.0, atol=1e-5)
    assert np.all(normals[finite][:, 2] <= 0)


def test_missing_points_stay_nan(K):
    points, _ = plane_points(ROWS, COLS, K, [0.0, 0.0, -1.0], -1000.0)
    points[200:210, 300:310] = np.nan
    points[50, 60] = np.nan
    normals = _run(_estimator(K), points)
    missing = np.isnan(points[..., 2])
    assert np.all(np.isnan(normals[missing]))
    assert np.all(np.isfinite(normals[100:150, 400:450]))


def test_too_small_image_is_rejected(K):
    est = SriEstimator(NormalsConfig(1, 10, np.float32, K, 3, "sri"))
    with pytest.raises(NormalsConfigError):
        est.cache()


def test_compute_before_cache_fails(K):
    est = SriEstimator(NormalsConfig(ROWS, COLS, np.float32, K, 3, "sri"))
    with pytest.raises(RuntimeError):
        est.cached
