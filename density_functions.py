"""
Node density functions over the deployment area, and a grid estimate of their maximum.

A density is any callable f(x, y) -> non-negative values, evaluated element-wise on
equal-length coordinate arrays. It does not need to be normalized.
"""

import numpy as np


def uniform_density(x, y):
    return np.ones_like(np.asarray(x, dtype=float))


def gaussian_hotspot_density(center=(50.0, 50.0), sigma: float = 20.0, floor: float = 0.0):
    """
    Nodes concentrate around `center` with spread `sigma`. `floor` adds a uniform
    background so that no part of the area is completely empty.
    """
    if sigma <= 0:
        raise ValueError("sigma must be positive.")
    if floor < 0:
        raise ValueError("floor must be non-negative.")
    cx, cy = center

    def density(x, y):
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        r2 = (x - cx) ** 2 + (y - cy) ** 2
        return np.exp(-r2 / (2 * sigma ** 2)) + floor

    return density


def linear_gradient_density(slope_x: float = 0.01, slope_y: float = 0.0, base: float = 0.1):
    """
    Density growing linearly across the area: base + slope_x * x + slope_y * y.
    Negative values are clipped to zero.
    """
    def density(x, y):
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        return np.clip(base + slope_x * x + slope_y * y, 0.0, None)

    return density


def estimate_z_max(density_fn, domain, grid_points: int = 501, margin: float = 0.05) -> float:
    """
    Upper bound for the density over the domain, taken from a regular grid.
    A grid only sees the maximum at its own points, so we add a relative safety margin.
    """
    (x_min, x_max), (y_min, y_max) = domain
    xs = np.linspace(x_min, x_max, grid_points)
    ys = np.linspace(y_min, y_max, grid_points)
    X, Y = np.meshgrid(xs, ys)

    values = np.broadcast_to(np.asarray(density_fn(X.ravel(), Y.ravel()), dtype=float), (X.size,))
    peak = float(np.max(values))
    if not np.isfinite(peak) or peak <= 0:
        raise ValueError(f"Density maximum over the domain must be finite and positive, got {peak}.")
    return peak * (1.0 + margin)
