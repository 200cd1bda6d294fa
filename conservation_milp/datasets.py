"""
Simulated planning data for demos and tests.

Smooth random fields (Gaussian-filtered white noise) give spatially
autocorrelated cost and feature rasters, so solutions form sensible clusters.
"""

from typing import Tuple

import numpy as np
from scipy import ndimage


def _smooth_field(rng: np.random.Generator, shape: Tuple[int, int], sigma: float) -> np.ndarray:
    """Random field rescaled to [0, 1]."""
    field = ndimage.gaussian_filter(rng.normal(size=shape), sigma=sigma, mode="reflect")
    span = field.max() - field.min()
    if span == 0:
        return np.zeros(shape)
    return (field - field.min()) / span


def simulate_raster_data(
    n_rows: int = 10,
    n_cols: int = 10,
    n_features: int = 5,
    seed: int = 500,
    sigma: float = 2.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Simulate a cost raster and a stack of feature rasters.

    Args:
        n_rows, n_cols: Raster dimensions (planning units = n_rows * n_cols).
        n_features: Number of feature layers.
        seed: Random seed.
        sigma: Smoothing length in cells.

    Returns:
        (cost, features): cost has shape (n_rows, n_cols) with values in
        [1, 100]; features has shape (n_features, n_rows, n_cols) with values
        in [0, 1].
    """
    if n_rows < 1 or n_cols < 1 or n_features < 1:
        raise ValueError("n_rows, n_cols and n_features must all be >= 1")
    rng = np.random.default_rng(seed)
    shape = (n_rows, n_cols)
    cost = 1.0 + 99.0 * _smooth_field(rng, shape, sigma)
    features = np.stack([_smooth_field(rng, shape, sigma) for _ in range(n_features)])
    return cost, features
