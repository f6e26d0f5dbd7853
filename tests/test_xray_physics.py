"""xraylib-backed photon physics — spot checks against tabulated values."""

import numpy as np
import pytest

xraylib = pytest.importorskip("xraylib")

from epma_xray.core.units import J_to_keV, keV_to_J  # noqa: E402
from epma_xray.core.xray_physics import PhysicsDataError, XraylibPhysics  # noqa: E402
from epma_xray.models.atomic import K, L3, AtomicShell  # noqa: E402


@pytest.fixture(scope="module")
def xp():
    return XraylibPhysics()


@pytest.fixture(scope="module")
def copper(xp):
    return xp.pure_element("Cu")


class TestElements:
    def test_copper(self, xp):
        cu = xp.element("Cu")
        assert cu.atomic_number == 29
        assert cu.atomic_weight == pytest.approx(0.063546, rel=1e-3)

    def test_unknown_symbol(self, xp):
        with pytest.raises(PhysicsDataError):
            xp.element("Xx")

    def test_pure_element_density(self, copper):
        assert copper.density == pytest.approx(8960.0, rel=0.01)

    def test_material_from_fractions(self, xp):
        brass = xp.material("Brass", {"Cu": 0.7, "Zn": 0.3}, 8.5)
        assert brass.density == pytest.approx(8500.0)
        assert sum(w for _, w in brass.composition) == pytest.approx(1.0)


class TestShells:
    def test_k_edge(self, xp):
        shell = AtomicShell(xp.element("Cu"), K)
        assert J_to_keV(xp.edge_energy(shell)) == pytest.approx(8.979, abs=0.01)

    def test_ionization_fraction(self, xp):
        frac = xp.ionization_fraction(AtomicShell(xp.element("Cu"), K))
        assert 0.8 < frac < 0.95

    def test_k_lines(self, xp):
        trs = xp.transitions(AtomicShell(xp.element("Cu"), K), 0.001)
        names = {xrt.name: p for xrt, p in trs.items()}
        assert "KL3" in names and "KL2" in names
        assert max(names, key=names.get) == "KL3"
        kl3 = next(xrt for xrt in trs if xrt.name == "KL3")
        assert J_to_keV(kl3.energy) == pytest.approx(8.048, abs=0.01)

    def test_pruning_threshold(self, xp):
        shell = AtomicShell(xp.element("Cu"), K)
        loose = xp.transitions(shell, 0.0)
        tight = xp.transitions(shell, 0.1)
        assert set(tight) <= set(loose)
        top = max(tight.values())
        assert all(p > 0.1 * top for p in tight.values())

    def test_l3_lines(self, xp):
        trs = xp.transitions(AtomicShell(xp.element("Cu"), L3), 0.001)
        assert any(xrt.name == "L3M5" for xrt in trs)


class TestAbsorption:
    def test_copper_mac_8keV(self, xp, copper):
        assert xp.mass_absorption_coefficient(copper, keV_to_J(8.0)) == pytest.approx(5.2, rel=0.1)

    def test_edge_jump(self, xp, copper):
        below = xp.mass_absorption_coefficient(copper, keV_to_J(8.9))
        above = xp.mass_absorption_coefficient(copper, keV_to_J(9.1))
        assert above > 4.0 * below

    def test_mean_free_path(self, xp, copper):
        e = keV_to_J(8.0)
        mfp = xp.mean_free_path(copper, e)
        assert mfp == pytest.approx(1.0 / (xp.mass_absorption_coefficient(copper, e) * copper.density))

    def test_incoherent_longer_than_photoabsorption(self, xp, copper):
        e = keV_to_J(8.0)
        assert xp.incoherent_mean_free_path(copper, e) > xp.mean_free_path(copper, e)

    def test_absorbing_element_weighted(self, xp):
        mix = xp.material("CuAl", {"Cu": 0.5, "Al": 0.5}, 5.0)
        rng = np.random.default_rng(0)
        picks = [xp.randomized_absorbing_element(mix, keV_to_J(9.5), rng).symbol for _ in range(500)]
        assert picks.count("Cu") > 4 * picks.count("Al")
