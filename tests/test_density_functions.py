"""
Tests for the density helpers and the driver plotting.
"""

import pytest
import numpy as np

from density_functions import (
    estimate_z_max,
    gaussian_hotspot_density,
    linear_gradient_density,
    uniform_density,
)


DOMAIN = ((0.0, 100.0), (0.0, 100.0))


def test_uniform_density_is_vectorized():
    x = np.linspace(0, 100, 7)
    np.testing.assert_array_equal(uniform_density(x, x), np.ones(7))


def test_hotspot_peaks_at_center():
    density = gaussian_hotspot_density(center=(30.0, 70.0), sigma=5.0, floor=0.1)

    assert density(30.0, 70.0) == pytest.approx(1.1)
    assert density(0.0, 0.0) == pytest.approx(0.1, abs=1e-6)


@pytest.mark.parametrize("sigma, floor", [(0.0, 0.0), (-1.0, 0.0), (5.0, -0.1)])
def test_hotspot_invalid_parameters(sigma, floor):
    with pytest.raises(ValueError):
        gaussian_hotspot_density(sigma=sigma, floor=floor)


def test_linear_gradient_is_clipped():
    density = linear_gradient_density(slope_x=-0.01, slope_y=0.0, base=0.5)
    values = density(np.array([0.0, 50.0, 100.0]), np.zeros(3))

    np.testing.assert_allclose(values, [0.5, 0.0, 0.0])


def test_estimate_z_max_adds_margin():
    assert estimate_z_max(uniform_density, DOMAIN) == pytest.approx(1.05)
    assert estimate_z_max(uniform_density, DOMAIN, margin=0.0) == pytest.approx(1.0)


def test_estimate_z_max_bounds_density():
    density = gaussian_hotspot_density(center=(33.3, 66.6), sigma=3.0)
    z_max = estimate_z_max(density, DOMAIN)

    xs = np.random.default_rng(0).uniform(0, 100, size=(2, 10000))
    assert np.all(density(xs[0], xs[1]) <= z_max)
    assert z_max >= density(33.3, 66.6)


def test_estimate_z_max_rejects_zero_density():
    with pytest.raises(ValueError):
        estimate_z_max(lambda x, y: np.zeros_like(x), DOMAIN)


def test_plot_cdf_writes_file(tmp_path):
    from run_simulations import plot_cdf

    out = tmp_path / "cdf.png"
    plot_cdf(
        {"n = 10": np.array([3.0, 1.0, 2.0])},
        xlabel="Critical radius",
        ylabel="CDF",
        title="test",
        save_filename=str(out),
    )
    assert out.exists()
