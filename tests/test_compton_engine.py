"""Compton engine — kinematics and Klein-Nishina normalisation."""

import math

import pytest

from epma_xray.constants import ELECTRON_REST_MASS_J
from epma_xray.core.compton_engine import ComptonEngine
from epma_xray.core.units import keV_to_J


@pytest.fixture(scope="module")
def ce() -> ComptonEngine:
    return ComptonEngine()


class TestComptonShift:
    def test_forward_scatter_keeps_energy(self, ce):
        assert ce.compton_shift(0.0, keV_to_J(8.0)) == pytest.approx(1.0)

    def test_backscatter(self, ce):
        e = keV_to_J(8.0)
        a = e / ELECTRON_REST_MASS_J
        assert ce.compton_shift(math.pi, e) == pytest.approx(1.0 / (1.0 + 2.0 * a))

    def test_closed_form(self, ce):
        e = keV_to_J(17.4)
        th = 1.1
        expected = 1.0 / (1.0 + (e / ELECTRON_REST_MASS_J) * (1.0 - math.cos(th)))
        assert ce.compton_shift(th, e) == expected

    def test_scattered_energy_at_511keV_90deg(self, ce):
        """E' = E₀/2 for E₀ = m_e c² at 90°."""
        e = ELECTRON_REST_MASS_J
        assert ce.scattered_energy(e, math.pi / 2) == pytest.approx(e / 2.0)

    def test_energy_conservation(self, ce):
        e = keV_to_J(100.0)
        for th in (0.3, 1.2, 2.8):
            assert ce.scattered_energy(e, th) + ce.recoil_electron_energy(e, th) == pytest.approx(e)


class TestTotalCrossSection:
    def test_thomson_limit(self, ce):
        assert ce.total_cross_section(keV_to_J(1e-3)) == pytest.approx(6.6524e-29, rel=1e-3)

    def test_sigma_511keV(self, ce):
        assert ce.total_cross_section(keV_to_J(511.0)) == pytest.approx(2.716e-29, rel=5e-3)

    def test_continuous_at_series_switch(self, ce):
        lo = ce.total_cross_section(0.9999e-3 * ELECTRON_REST_MASS_J)
        hi = ce.total_cross_section(1.0001e-3 * ELECTRON_REST_MASS_J)
        assert lo == pytest.approx(hi, rel=1e-6)

    def test_decreases_with_energy(self, ce):
        sigmas = [ce.total_cross_section(keV_to_J(e)) for e in (1, 10, 100, 1000)]
        assert all(a > b for a, b in zip(sigmas, sigmas[1:]))


class TestAngularNormalisation:
    @pytest.mark.parametrize("energy_keV", [0.1, 1.0, 8.0, 30.0, 511.0, 2000.0])
    def test_integral_over_sphere_is_one(self, ce, energy_keV):
        assert ce.angular_integral(keV_to_J(energy_keV)) == pytest.approx(1.0, abs=1e-6)

    def test_low_energy_is_dipole(self, ce):
        """Thomson limit: 3(1 + cos²θ)/(16π)."""
        e = keV_to_J(0.01)
        for th in (0.0, 0.7, math.pi / 2, 2.5):
            expected = 3.0 * (1.0 + math.cos(th) ** 2) / (16.0 * math.pi)
            assert ce.compton_angular(e, th) == pytest.approx(expected, rel=1e-3)

    def test_forward_peaked_at_high_energy(self, ce):
        e = keV_to_J(1000.0)
        assert ce.compton_angular(e, 0.2) > ce.compton_angular(e, 2.9)
