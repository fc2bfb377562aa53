import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import numpy as np

from normals.sign import sign_normal, sign_normal_components


def test_sign_normal_unit_and_facing_camera():
    rng = np.random.default_rng(1)
    vectors = rng.normal(size=(20, 30, 3))
    out = sign_normal(vectors)
    assert np.allclose(np.linalg.norm(out, axis=-1), 1.0)
    assert np.all(out[..., 2] <= 0)
    # Same line through the origin as the input
    cross = np.cross(out, vectors)
    assert np.allclose(cross, 0.0, atol=1e-9)


def test_sign_normal_is_idempotent():
    rng = np.random.default_rng(2)
    once = sign_normal(rng.normal(size=(100, 3)))
    assert np.allclose(sign_normal(once), once)


def test_sign_normal_examples():
    out = sign_normal(np.array([[0.0, 0.0, 2.0], [3.0, 0.0, -4.0], [1.0, 0.0, 0.0]]))
    assert np.allclose(out[0], [0.0, 0.0, -1.0])
    assert np.allclose(out[1], [0.6, 0.0, -0.8])
    # z == 0 is kept as is
    assert np.allclose(out[2], [1.0, 0.0, 0.0])


def test_sign_normal_zero_vector_is_nan():
    out = sign_normal(np.zeros((1, 3)))
    assert np.all(np.isnan(out))


def test_sign_normal_components_writes_into_out():
    out = np.empty((2, 3), dtype=np.float32)
    result = sign_normal_components(
        np.array([0.0, 1.0]), np.array([0.0, 0.0]), np.array([5.0, 0.0]), out=out
    )
    assert result is out
    assert np.allclose(out, [[0.0, 0.0, -1.0], [1.0, 0.0, 0.0]])


def test_sign_normal_in_place():
    vectors = np.array([[0.0, 3.0, 4.0]])
    sign_normal(vectors, out=vectors)
    assert np.allclose(vectors, [[0.0, -0.6, -0.8]])
