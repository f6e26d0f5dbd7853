"""Secondary fluorescence stage.

Upstream photons are followed from their generation point in a random
direction until they are photoabsorbed. The absorbing element is drawn from
the local composition, the ionized shell by sequential rejection within the
deepest shell family the photon can ionize, and the shell's transitions are
emitted as new characteristic photons at the absorption point.

Energies in J, lengths in m (core units).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from epma_xray.constants import VACUUM_STEP_M
from epma_xray.core.bremsstrahlung_angular import AngularDistribution
from epma_xray.core.generation import BaseXRayGeneration
from epma_xray.core.sampling import exp_rand
from epma_xray.core.secondary_generation import SecondaryXRayGeneration
from epma_xray.core.specimen import Region, Specimen
from epma_xray.core.xray_physics import PhotonPhysics
from epma_xray.models.atomic import K, M5, NO_SHELL, AtomicShell, Element, XRayTransition, last_in_family
from epma_xray.models.config import FluorescenceConfig
from epma_xray.models.material import Material
from epma_xray.models.xray import XRay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShellData:
    """Cached per-shell absorption data.

    Attributes:
        shell: The shell.
        edge_energy: Ionization edge [J].
        ionization_fraction: Probability that an absorption above the edge
            ionizes this shell.
    """
    shell: AtomicShell
    edge_energy: float
    ionization_fraction: float


class FluorescenceXRayGeneration(SecondaryXRayGeneration):
    """Secondary fluorescence excited by the photons of an upstream stage.

    Args:
        specimen: Region hierarchy the photons travel through.
        source: Upstream stage; this stage subscribes to it.
        physics: Photon physics service.
        config: Model fraction, line pruning and ray-march parameters.
        angular: Continuum angular distribution (isotropic by default).
        rng: Random generator owned by this stage.
    """

    def __init__(
        self,
        specimen: Specimen,
        source: BaseXRayGeneration,
        physics: PhotonPhysics,
        config: FluorescenceConfig | None = None,
        angular: AngularDistribution | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        super().__init__(
            "Secondary Fluorescence", specimen, source, physics,
            config or FluorescenceConfig(), angular, rng,
        )
        self._shells: dict[Element, list[ShellData | None]] = {}
        self._transitions: dict[AtomicShell, dict[XRayTransition, float]] = {}

    # ------------------------------------------------------------------
    # Shell data
    # ------------------------------------------------------------------

    def get_shells(self, element: Element) -> list[ShellData | None]:
        """Shells K..M5 of *element*; None where absent or never ionized."""
        shells = self._shells.get(element)
        if shells is None:
            shells = []
            for sh in range(K, M5 + 1):
                shell = AtomicShell(element, sh)
                edge = self.physics.edge_energy(shell)
                data = None
                if edge > 0.0:
                    frac = self.physics.ionization_fraction(shell)
                    if frac > 0.0:
                        data = ShellData(shell, edge, frac)
                shells.append(data)
            logger.debug(
                "%s: cached %d shells", element, sum(s is not None for s in shells),
            )
            self._shells[element] = shells
        return shells

    def get_transitions(self, shell: AtomicShell) -> dict[XRayTransition, float]:
        trs = self._transitions.get(shell)
        if trs is None:
            trs = self.physics.transitions(shell, self.config.min_weight)
            logger.debug("%s: cached %d transitions", shell, len(trs))
            self._transitions[shell] = trs
        return trs

    def shell_probabilities(self, element: Element, energy: float) -> list[tuple[AtomicShell, float]]:
        """Selection probability of each shell :meth:`pick_shell` may return.

        Follows the same bookkeeping as :meth:`pick_shell`. The acceptance
        weights are not renormalised; when they add up to more than 1 the
        later shells only get what is left of the unit interval.

        Args:
            element: Absorbing element.
            energy: Photon energy [J].
        """
        shells = self.get_shells(element)
        high = self._highest_shell(shells, energy)
        res: list[tuple[AtomicShell, float]] = []
        if high == NO_SHELL:
            return res
        sc = 1.0
        total = 0.0
        for sh in range(high, last_in_family(high) + 1):
            data = shells[sh]
            if data is not None:
                f = sc * data.ionization_fraction
                p = min(f, max(0.0, 1.0 - total))
                res.append((data.shell, p))
                total += p
                sc *= 1.0 - f
        return res

    def pick_shell(self, material: Material, energy: float) -> AtomicShell | None:
        """Randomly select the shell ionized by a photon absorbed in *material*.

        The absorbing element is drawn by weighted mass absorption. Within
        that element only the deepest shell family with an edge below
        *energy* is considered; its shells are tried from the deepest down,
        each accepted with probability ``sc · ionization_fraction`` where
        ``sc`` is what remains after the previous rejections.

        Returns:
            The ionized shell, or None if no shell was ionized.
        """
        absorber = self.physics.randomized_absorbing_element(material, energy, self.rng)
        shells = self.get_shells(absorber)
        high = self._highest_shell(shells, energy)
        if high == NO_SHELL:
            return None
        r = self.rng.random()
        sc = 1.0
        for sh in range(high, last_in_family(high) + 1):
            data = shells[sh]
            if data is not None:
                f = sc * data.ionization_fraction
                r -= f
                if r < 0.0:
                    return data.shell
                sc *= 1.0 - f
        return None

    @staticmethod
    def _highest_shell(shells: list[ShellData | None], energy: float) -> int:
        for sh, data in enumerate(shells):
            if data is not None and energy > data.edge_energy:
                return sh
        return NO_SHELL

    # ------------------------------------------------------------------
    # Ray march
    # ------------------------------------------------------------------

    def propagate(
        self,
        xr: XRay,
        region: Region,
        direction: NDArray[np.float64],
        intensity: float,
    ) -> None:
        pos = xr.position
        energy = xr.energy
        eps = self.config.boundary_epsilon * direction
        end = pos.copy()
        while True:
            start = end
            absorbing = not self.is_vacuum(region)
            if absorbing:
                length = self.physics.mean_free_path(region.material, energy) * exp_rand(self.rng)
            else:
                length = VACUUM_STEP_M
            next_region, end = region.find_end_of_step(start, start + length * direction)
            if next_region is None or next_region is region:
                break
            # Pass through the interface and continue
            end = end + eps
            region = next_region
            if float(np.linalg.norm(pos - end)) > self.config.max_travel:
                return
        if next_region is None or not absorbing:
            return
        self._fluoresce(region.material, end, energy, intensity)

    def _fluoresce(
        self,
        material: Material,
        position: NDArray[np.float64],
        energy: float,
        intensity: float,
    ) -> None:
        ionized = self.pick_shell(material, energy)
        if ionized is None:
            return
        for xrt, prob in self.get_transitions(ionized).items():
            if xrt.energy > 0.0:
                self.add_characteristic_xray(
                    position, xrt.energy, prob * intensity, prob * intensity, xrt,
                )
