"""Compton scattering stage.

Upstream photons are followed from their generation point in a random
direction until they scatter incoherently. The photoabsorption along the way
is integrated, and a Compton event carrying the incident direction is
emitted at the scattering point. The energy shift and the Klein-Nishina
weighting toward the detector are applied later by :class:`XRayTransport`,
so events are only produced when such a stage is subscribed.

Energies in J, lengths in m (core units).
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

from epma_xray.constants import VACUUM_STEP_M
from epma_xray.core.bremsstrahlung_angular import AngularDistribution
from epma_xray.core.generation import BaseXRayGeneration
from epma_xray.core.sampling import exp_rand
from epma_xray.core.secondary_generation import SecondaryXRayGeneration
from epma_xray.core.specimen import Region, Specimen
from epma_xray.core.xray_physics import PhotonPhysics
from epma_xray.core.xray_transport import XRayTransport
from epma_xray.models.config import ComptonConfig
from epma_xray.models.xray import XRay


class ComptonXRayGeneration(SecondaryXRayGeneration):
    """Compton-scattered photons from the photons of an upstream stage.

    Args:
        specimen: Region hierarchy the photons travel through.
        source: Upstream stage; this stage subscribes to it.
        physics: Photon physics service.
        config: Model fraction and ray-march parameters.
        angular: Continuum angular distribution (isotropic by default).
        rng: Random generator owned by this stage.
    """

    def __init__(
        self,
        specimen: Specimen,
        source: BaseXRayGeneration,
        physics: PhotonPhysics,
        config: ComptonConfig | None = None,
        angular: AngularDistribution | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        super().__init__(
            "Compton", specimen, source, physics,
            config or ComptonConfig(), angular, rng,
        )

    def has_transport(self) -> bool:
        """True if any subscriber resolves Compton events."""
        return any(isinstance(s, XRayTransport) for s in self.subscribers)

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
        absorb = 0.0
        while True:
            start = end
            material = region.material
            empty = self.is_vacuum(region)
            if empty:
                length = 2.0 * VACUUM_STEP_M
            else:
                length = self.physics.incoherent_mean_free_path(material, energy) * exp_rand(self.rng)
            next_region, end = region.find_end_of_step(start, start + length * direction)
            if not empty:
                absorb += (
                    self.physics.mass_absorption_coefficient(material, energy)
                    * material.density * float(np.linalg.norm(end - start))
                )
            if float(np.linalg.norm(pos - end)) > self.config.max_travel:
                return
            if next_region is None or next_region is region:
                break
            # Pass through the interface and continue
            end = end + eps
            region = next_region
        if next_region is None or empty:
            return
        if self.has_transport():
            ray = end - pos
            if float(np.linalg.norm(ray)) > 0.0:
                self.add_compton_xray(end, ray, intensity * math.exp(-absorb), xr)
