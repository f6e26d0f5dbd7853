"""Shared cycle of the secondary (ray-marching) stages.

Fluorescence and Compton scattering walk the same way through the upstream
buffer: thin the events to a model fraction, look up the region at each
event's position, draw an isotropic emission direction, weight continuum
photons by their angular distribution and hand the photon to the
stage-specific ray march.
"""

from __future__ import annotations

import logging
from abc import abstractmethod

import numpy as np
from numpy.typing import NDArray

from epma_xray.core.bremsstrahlung_angular import (
    AngularDistribution,
    IsotropicAngularDistribution,
)
from epma_xray.core.generation import BaseXRayGeneration, EventKind
from epma_xray.core.sampling import random_direction
from epma_xray.core.specimen import Region, Specimen
from epma_xray.core.statistics import DescriptiveStatistics
from epma_xray.core.xray_physics import PhotonPhysics, PhysicsDataError
from epma_xray.models.config import SecondaryConfig, clamp_model_fraction
from epma_xray.models.xray import BremsstrahlungXRay, XRay

logger = logging.getLogger(__name__)


class SecondaryXRayGeneration(BaseXRayGeneration):
    """Base for stages that re-emit upstream photons after a ray march.

    Args:
        name: Stage name.
        specimen: Region hierarchy the photons travel through.
        source: Upstream stage; this stage subscribes to it.
        physics: Photon physics service.
        config: Thinning and ray-march parameters.
        angular: Continuum angular distribution (isotropic by default).
        rng: Random generator owned by this stage.
    """

    def __init__(
        self,
        name: str,
        specimen: Specimen,
        source: BaseXRayGeneration,
        physics: PhotonPhysics,
        config: SecondaryConfig,
        angular: AngularDistribution | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        super().__init__(name)
        self.specimen = specimen
        self.source = source
        self.physics = physics
        self.config = config
        self.angular = angular or IsotropicAngularDistribution()
        self.rng = rng if rng is not None else np.random.default_rng()
        self._model_fraction = clamp_model_fraction(config.model_fraction)
        self._scale_stats = DescriptiveStatistics()
        source.subscribe(self)

    @property
    def model_fraction(self) -> float:
        """Share of upstream photons simulated, in [0.01, 1.0]."""
        return self._model_fraction

    @model_fraction.setter
    def model_fraction(self, value: float) -> None:
        self._model_fraction = clamp_model_fraction(value)

    @property
    def scale_stats(self) -> DescriptiveStatistics:
        """Running statistics of the continuum angular weight factor."""
        return self._scale_stats

    def handle_notification(self, source: object, kind: EventKind) -> None:
        self.reset()
        if kind != EventKind.XRAY_GENERATION:
            self.notify_subscribers(kind)
            return
        upstream = source if isinstance(source, BaseXRayGeneration) else self.source
        f = self._model_fraction
        pos: NDArray[np.float64] | None = None
        region: Region | None = None
        for i in range(upstream.event_count - 1, -1, -1):
            xr = upstream.get_event(i)
            if self.rng.random() >= f:
                continue
            if xr.energy <= 0.0:
                logger.warning("%s: event with non-positive energy skipped: %r", self.name, xr)
                continue
            # Scale survivors to account for the thinned events
            xr_i = xr.intensity / f
            if xr_i <= 0.0:
                continue
            if pos is None or not np.array_equal(xr.position, pos):
                pos = xr.position
                region = self.specimen.find_region_containing(pos)
            if region is None:
                logger.debug("%s: event at %s outside the chamber", self.name, pos)
                continue
            direction = random_direction(self.rng)
            scale = self._angular_scale(xr, direction)
            try:
                self.propagate(xr, region, direction, scale * xr_i)
            except PhysicsDataError:
                logger.exception("%s: skipped event %r", self.name, xr)
        self.notify_subscribers(EventKind.XRAY_GENERATION)

    def _angular_scale(self, xr: XRay, direction: NDArray[np.float64]) -> float:
        scale = 1.0
        if isinstance(xr, BremsstrahlungXRay):
            scale = self.angular.compute(
                xr.element, xr.angle(direction), xr.electron_energy, xr.energy,
            )
        self._scale_stats.add(scale)
        return scale

    def is_vacuum(self, region: Region) -> bool:
        return region.material.density < self.config.vacuum_density

    @abstractmethod
    def propagate(
        self,
        xr: XRay,
        region: Region,
        direction: NDArray[np.float64],
        intensity: float,
    ) -> None:
        """March one photon from ``xr.position`` and emit its products.

        Args:
            xr: Upstream event being followed.
            region: Region containing ``xr.position``.
            direction: Unit emission direction.
            intensity: Weighted intensity (angular scale × thinned intensity).

        Raises:
            PhysicsDataError: If a physics lookup fails; the event is skipped.
        """
