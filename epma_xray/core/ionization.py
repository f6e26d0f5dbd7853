"""Electron-impact ionization cross-sections.

Casnati, Tartari & Baraldi, J. Phys. B 15 (1982) 155, as quoted by
C. Powell, Ultramicroscopy 28 (1989) 24–31. Fitted for the K shell to
about ±10 % over 1 ≤ U ≤ 20 and 6 ≤ Z ≤ 79; used for L and M as well.

Energies in J, cross-sections in m² (core units).
"""

from __future__ import annotations

import math
from typing import Protocol

from epma_xray.constants import BOHR_RADIUS_M, ELECTRON_REST_MASS_J, RYDBERG_ENERGY_J
from epma_xray.core.xray_physics import PhotonPhysics
from epma_xray.models.atomic import AtomicShell


class IonizationCrossSection(Protocol):
    def compute_shell(self, shell: AtomicShell, electron_energy: float) -> float:
        """Ionization cross-section of *shell* for an electron [m²]."""
        ...


class CasnatiIonizationCrossSection:
    """Casnati's empirical absolute ionization cross-section.

    Args:
        physics: Source of shell edge energies.
    """

    def __init__(self, physics: PhotonPhysics) -> None:
        self.physics = physics
        self._edges: dict[AtomicShell, float] = {}

    def edge_energy(self, shell: AtomicShell) -> float:
        ee = self._edges.get(shell)
        if ee is None:
            ee = self.physics.edge_energy(shell)
            self._edges[shell] = ee
        return ee

    def compute_shell(self, shell: AtomicShell, electron_energy: float) -> float:
        """σ(shell, E) [m²]; 0.0 at or below the edge.

        Args:
            shell: Ionized shell.
            electron_energy: Electron kinetic energy [J].
        """
        ee = self.edge_energy(shell)
        if ee <= 0.0:
            return 0.0
        u = electron_energy / ee
        if u <= 1.0:
            return 0.0
        u2 = u * u
        phi = 10.57 * math.exp(-1.736 / u + 0.317 / u2)
        psi = (ee / RYDBERG_ENERGY_J) ** (-0.0318 + 0.3160 / u - 0.1135 / u2)
        i = ee / ELECTRON_REST_MASS_J
        t = electron_energy / ELECTRON_REST_MASS_J
        f = (
            ((2.0 + i) / (2.0 + t))
            * ((1.0 + t) / (1.0 + i)) ** 2
            * (
                ((i + t) * (2.0 + t) * (1.0 + i) ** 2)
                / (t * (2.0 + t) * (1.0 + i) ** 2 + i * (2.0 + i))
            ) ** 1.5
        )
        return (
            shell.occupancy
            * (BOHR_RADIUS_M * RYDBERG_ENERGY_J / ee) ** 2
            * f * psi * phi * math.log(u) / u
        )
