from .depth_projection import (
    depth_to_points,
    project_points,
    compute_radius,
)
from .spherical import ThetaPhi, compute_theta_phi, direction_field

__all__ = [
    "depth_to_points",
    "project_points",
    "compute_radius",
    "ThetaPhi",
    "compute_theta_phi",
    "direction_field",
]
