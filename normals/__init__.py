"""Surface normal estimation from depth images and organized point clouds.

Three algorithms are available behind :class:`RgbdNormals`:

* ``fals`` - least-squares plane fit in a spherical basis (Badino et al.)
* ``linemod`` - sparse depth-gradient fit on raw depth (Hinterstoisser et al.)
* ``sri`` - derivatives of a spherical range image (Badino et al.)

Configuration dependent data is cached per estimator and rebuilt only when
the configuration changes.
"""

from .base import NormalsConfig, NormalsEstimator, NormalsMethod
from .sign import sign_normal, sign_normal_components
from .fals import FalsCache, FalsEstimator
from .linemod import LinemodEstimator
from .sri import SriCache, SriEstimator
from .rgbd_normals import RgbdNormals

__all__ = [
    "NormalsConfig",
    "NormalsEstimator",
    "NormalsMethod",
    "sign_normal",
    "sign_normal_components",
    "FalsCache",
    "FalsEstimator",
    "LinemodEstimator",
    "SriCache",
    "SriEstimator",
    "RgbdNormals",
]
