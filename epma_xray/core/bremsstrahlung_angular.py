"""Angular distributions of continuum (Bremsstrahlung) emission.

A distribution gives the relative emission probability at angle θ from the
electron's direction of travel, normalised so that its average over the
sphere is (close to) 1. Stages multiply continuum intensities by it.

Energies in J, angles in radians (core units).
"""

from __future__ import annotations

import math
from typing import Protocol

from epma_xray.constants import ELECTRON_REST_MASS_J
from epma_xray.models.atomic import Element


class AngularDistribution(Protocol):
    def compute(
        self,
        element: Element,
        theta: float,
        electron_energy: float,
        photon_energy: float,
    ) -> float: ...


class IsotropicAngularDistribution:
    """Uniform emission: 1.0 in every direction."""

    def compute(
        self,
        element: Element,
        theta: float,
        electron_energy: float,
        photon_energy: float,
    ) -> float:
        return 1.0


class AcostaAngularDistribution:
    """Dipole shape boosted into the electron's direction of travel.

    Acosta, Llovet & Salvat, Appl. Phys. Lett. 80 (2002) 3228. The mixture
    of the two dipole terms (``a``) and the boost correction (``b``) are
    fixed here rather than interpolated from the published Z/E/W tables.

    Args:
        a: Weight of the (1 + cos²) term, in [0, 1].
        b: Relative correction to the electron velocity β.
    """

    def __init__(self, a: float = 0.5, b: float = 0.0) -> None:
        self.a = a
        self.b = b

    def compute(
        self,
        element: Element,
        theta: float,
        electron_energy: float,
        photon_energy: float,
    ) -> float:
        gamma = 1.0 + max(electron_energy, 0.0) / ELECTRON_REST_MASS_J
        beta = math.sqrt(1.0 - 1.0 / (gamma * gamma))
        beta_p = beta * (1.0 + self.b)
        ct = math.cos(theta)
        den = 1.0 - beta_p * ct
        x1 = ((ct - beta_p) / den) ** 2
        x2 = (1.0 - beta_p * beta_p) / (den * den)
        a = self.a
        # Sphere average of the bracket for β → 0
        norm = (16.0 - 7.0 * a) / 18.0
        return x2 * (0.375 * a * (1.0 + x1) + (4.0 / 3.0) * (1.0 - a) * (1.0 - x1)) / norm
