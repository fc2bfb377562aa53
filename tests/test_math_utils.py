import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import numpy as np
import pytest

from utils.math_utils import (
    flat9_to_mat33,
    invert_spd_field,
    mat33_to_flat9,
    outer_product_field,
    rotation_field_zy,
)


def test_flat9_layout_is_row_major():
    flat = np.arange(18.0).reshape(2, 9)
    mats = flat9_to_mat33(flat)
    assert mats.shape == (2, 3, 3)
    assert mats[1, 0, 2] == 11.0
    assert mats[0, 2, 1] == 7.0
    assert np.array_equal(mat33_to_flat9(mats), flat)


def test_flat9_rejects_wrong_shape():
    with pytest.raises(ValueError):
        flat9_to_mat33(np.zeros((4, 8)))
    with pytest.raises(ValueError):
        mat33_to_flat9(np.zeros((4, 3, 2)))


def test_outer_product_field():
    v = np.array([[1.0, 2.0, 3.0]])
    assert np.allclose(outer_product_field(v)[0], np.outer(v[0], v[0]))


def test_invert_spd_field_matches_numpy():
    rng = np.random.default_rng(0)
    A = rng.normal(size=(50, 3, 3))
    mats = A @ np.swapaxes(A, -1, -2) + 0.1 * np.eye(3)
    inv = invert_spd_field(mats.reshape(5, 10, 3, 3))
    assert inv.shape == (5, 10, 3, 3)
    assert np.allclose(inv.reshape(50, 3, 3), np.linalg.inv(mats))


def test_invert_spd_field_zeroes_singular_and_nan():
    rank_one = np.outer([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
    with_nan = np.eye(3)
    with_nan[0, 0] = np.nan
    mats = np.stack([rank_one, with_nan, 2 * np.eye(3)])
    inv = invert_spd_field(mats)
    assert np.all(inv[0] == 0)
    assert np.all(inv[1] == 0)
    assert np.allclose(inv[2], 0.5 * np.eye(3))


def test_rotation_field_zy_matches_explicit_product():
    theta = np.array([[0.3, -0.2]])
    phi = np.array([[0.1, 0.4]])
    R = rotation_field_zy(theta, phi)
    assert R.shape == (1, 2, 3, 3)
    for k in range(2):
        t, p = theta[0, k], -phi[0, k]
        Rz = np.array(
            [[np.cos(t), -np.sin(t), 0.0], [np.sin(t), np.cos(t), 0.0], [0.0, 0.0, 1.0]]
        )
        Ry = np.array(
            [[np.cos(p), 0.0, np.sin(p)], [0.0, 1.0, 0.0], [-np.sin(p), 0.0, np.cos(p)]]
        )
        assert np.allclose(R[0, k], Rz @ Ry)


def test_public_api():
    import utils.math_utils as math_utils

    assert set(math_utils.__all__) == {
        "flat9_to_mat33",
        "mat33_to_flat9",
        "outer_product_field",
        "invert_spd_field",
        "rotation_field_zy",
    }
