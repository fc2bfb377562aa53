from __future__ import annotations

import numpy as np
from scipy.spatial.transform import Rotation

__all__ = [
    "flat9_to_mat33",
    "mat33_to_flat9",
    "outer_product_field",
    "invert_spd_field",
    "rotation_field_zy",
]

# Smallest accepted eigenvalue ratio of a matrix passed to the SPD inverse
SPD_RCOND = 1e-10


def flat9_to_mat33(flat: np.ndarray) -> np.ndarray:
    """Return a ``(..., 3, 3)`` copy of a row-major ``(..., 9)`` field."""
    flat = np.asarray(flat)
    if flat.shape[-1] != 9:
        raise ValueError(f"Expected trailing dimension 9, got {flat.shape}")
    return flat.reshape(flat.shape[:-1] + (3, 3)).copy()


def mat33_to_flat9(mat: np.ndarray) -> np.ndarray:
    """Return a row-major ``(..., 9)`` copy of a ``(..., 3, 3)`` field."""
    mat = np.asarray(mat)
    if mat.shape[-2:] != (3, 3):
        raise ValueError(f"Expected trailing dimensions (3, 3), got {mat.shape}")
    return mat.reshape(mat.shape[:-2] + (9,)).copy()


def outer_product_field(vectors: np.ndarray) -> np.ndarray:
    """Per-element ``v @ v.T`` of a ``(..., 3)`` field, shaped ``(..., 3, 3)``."""
    return vectors[..., :, None] * vectors[..., None, :]


def invert_spd_field(mats: np.ndarray, rcond: float = SPD_RCOND) -> np.ndarray:
    """
    Invert a field of symmetric positive-semidefinite 3x3 matrices.

    Inversion goes through a batched Cholesky factorization in float64:
    ``M^-1 = L^-T L^-1``. Matrices that are singular or too badly
    conditioned (smallest/largest eigenvalue below ``rcond``) get a zero
    inverse instead of raising.

    Parameters:
        mats:  ``(..., 3, 3)`` array.
        rcond: eigenvalue ratio under which a matrix counts as singular.

    Returns:
        np.ndarray: ``(..., 3, 3)`` float64 inverses.
    """
    mats = np.asarray(mats, dtype=np.float64)
    flat = mats.reshape(-1, 3, 3)
    out = np.zeros_like(flat)
    if flat.shape[0] == 0:
        return out.reshape(mats.shape)

    finite = np.all(np.isfinite(flat), axis=(1, 2))
    ok = finite.copy()
    eig = np.linalg.eigvalsh(flat[finite])
    ok[finite] = (eig[:, 0] > 0) & (eig[:, 0] > rcond * eig[:, -1])

    if np.any(ok):
        L = np.linalg.cholesky(flat[ok])
        L_inv = np.linalg.inv(L)
        out[ok] = np.swapaxes(L_inv, -1, -2) @ L_inv
    return out.reshape(mats.shape)


def rotation_field_zy(theta: np.ndarray, phi: np.ndarray) -> np.ndarray:
    """
    Return ``Rz(theta) @ Ry(-phi)`` for every element, shaped ``(..., 3, 3)``.
    """
    theta = np.asarray(theta, dtype=np.float64)
    phi = np.asarray(phi, dtype=np.float64)
    angles = np.stack([theta.ravel(), -phi.ravel()], axis=1)
    mats = Rotation.from_euler("ZY", angles).as_matrix()
    return mats.reshape(theta.shape + (3, 3))

