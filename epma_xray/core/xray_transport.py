"""Transport-to-detector stage.

Every upstream photon is carried in a straight line to a fixed detection
point. The stage applies inverse-square fall-off and absorption along the
path, weights continuum photons by their angular distribution and Compton
photons by the normalised Klein-Nishina distribution (at the shifted
energy), and re-emits one event per photon at the detector position.

Energies in J, lengths in m (core units).
"""

from __future__ import annotations

import logging
import math

import numpy as np
from numpy.typing import ArrayLike, NDArray

from epma_xray.core.bremsstrahlung_angular import (
    AngularDistribution,
    IsotropicAngularDistribution,
)
from epma_xray.core.compton_engine import ComptonEngine
from epma_xray.core.generation import BaseXRayGeneration, EventKind
from epma_xray.core.specimen import Specimen
from epma_xray.core.xray_physics import PhotonPhysics, PhysicsDataError
from epma_xray.models.config import TransportConfig
from epma_xray.models.material import Material
from epma_xray.models.xray import BremsstrahlungXRay, ComptonXRay, XRay, angle_between

logger = logging.getLogger(__name__)


class XRayTransport(BaseXRayGeneration):
    """Carry upstream photons to a detector and attenuate them.

    Args:
        specimen: Region hierarchy between the photons and the detector.
        endpoint: Detector position [m]; copied and fixed for the stage's life.
        source: Upstream stage; this stage subscribes to it.
        physics: Photon physics service.
        angular: Continuum angular distribution (isotropic by default).
        config: Path caching options.
    """

    def __init__(
        self,
        specimen: Specimen,
        endpoint: ArrayLike,
        source: BaseXRayGeneration,
        physics: PhotonPhysics,
        angular: AngularDistribution | None = None,
        config: TransportConfig | None = None,
    ) -> None:
        super().__init__("X-Ray Transport")
        self.specimen = specimen
        self._endpoint = np.array(endpoint, dtype=float)
        self._endpoint.setflags(write=False)
        self.source = source
        self.physics = physics
        self.angular = angular or IsotropicAngularDistribution()
        self.config = config or TransportConfig()
        self.compton = ComptonEngine()
        self._paths: dict[tuple[float, ...], dict[Material, float]] = {}
        source.subscribe(self)

    @property
    def endpoint(self) -> NDArray[np.float64]:
        """Detector position [m] (a copy)."""
        return self._endpoint.copy()

    # ------------------------------------------------------------------
    # Absorption
    # ------------------------------------------------------------------

    def material_path(self, position: NDArray[np.float64]) -> dict[Material, float]:
        """Material → path length [m] from *position* to the detector."""
        if not self.config.cache_paths:
            return self.specimen.get_material_map(position, self._endpoint)
        key = tuple(position.tolist())
        path = self._paths.get(key)
        if path is None:
            path = self.specimen.get_material_map(position, self._endpoint)
            self._paths[key] = path
        return path

    def absorption(self, path: dict[Material, float], energy: float) -> float:
        """Optical depth Σ μ/ρ · ρ · length over the non-vacuum segments."""
        res = 0.0
        for material, length in path.items():
            if not material.is_vacuum:
                res += (
                    self.physics.mass_absorption_coefficient(material, energy)
                    * material.density * length
                )
        return res

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    def handle_notification(self, source: object, kind: EventKind) -> None:
        self.reset()
        if kind != EventKind.XRAY_GENERATION:
            self.notify_subscribers(kind)
            return
        upstream = source if isinstance(source, BaseXRayGeneration) else self.source
        self._paths.clear()
        for i in range(upstream.event_count - 1, -1, -1):
            xr = upstream.get_event(i)
            try:
                self._transport(xr)
            except PhysicsDataError:
                logger.exception("%s: skipped event %r", self.name, xr)
        self.notify_subscribers(EventKind.XRAY_GENERATION)

    def _transport(self, xr: XRay) -> None:
        if xr.energy <= 0.0:
            logger.warning("%s: event with non-positive energy skipped: %r", self.name, xr)
            return
        pos = xr.position
        outgoing = self._endpoint - pos
        dist2 = float(np.dot(outgoing, outgoing))
        if dist2 <= 0.0:
            logger.warning("%s: event at the detector position skipped", self.name)
            return
        geo = 1.0 / dist2
        path = self.material_path(pos)
        energy = xr.energy
        wo_abs = geo * xr.intensity
        if isinstance(xr, BremsstrahlungXRay):
            generated = wo_abs * self.angular.compute(
                xr.element, xr.angle(outgoing), xr.electron_energy, energy,
            )
            self.add_xray(
                xr, self._endpoint,
                generated * math.exp(-self.absorption(path, energy)), generated,
            )
        elif isinstance(xr, ComptonXRay):
            th = angle_between(xr.primary_direction, outgoing)
            shifted = energy * self.compton.compton_shift(th, energy)
            generated = self.compton.compton_angular(energy, th) * wo_abs
            self.add_shifted_xray(
                xr, self._endpoint, shifted,
                generated * math.exp(-self.absorption(path, shifted)), generated,
            )
        else:
            self.add_xray(
                xr, self._endpoint,
                wo_abs * math.exp(-self.absorption(path, energy)), wo_abs,
            )
