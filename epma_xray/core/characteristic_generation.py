"""Primary characteristic X-ray generation stage.

Listens to the specimen's trajectory notifications. For every electron step
it computes the number of inner-shell ionizations along the step and emits
one characteristic event per transition of each ionized shell, placed at a
random point on the step.

Energies in J, lengths in m (core units).
"""

from __future__ import annotations

import logging

import numpy as np

from epma_xray.constants import CHARACTERISTIC_MIN_WEIGHT
from epma_xray.core.generation import BaseXRayGeneration, EventKind
from epma_xray.core.ionization import IonizationCrossSection
from epma_xray.core.sampling import point_between
from epma_xray.core.specimen import Specimen
from epma_xray.core.xray_physics import PhotonPhysics, PhysicsDataError
from epma_xray.models.atomic import K, M5, AtomicShell, XRayTransition

logger = logging.getLogger(__name__)


class CharacteristicXRayGeneration(BaseXRayGeneration):
    """Characteristic emission from electron-impact ionization.

    Args:
        specimen: Specimen whose notifications drive this stage; the stage
            registers itself as a listener.
        physics: Source of edges and transition probabilities.
        cross_section: Ionization cross-section σ(shell, E).
        min_weight: Lines weaker than this fraction of the strongest line of
            a shell are not emitted.
        rng: Random generator owned by this stage.
    """

    def __init__(
        self,
        specimen: Specimen,
        physics: PhotonPhysics,
        cross_section: IonizationCrossSection,
        min_weight: float = CHARACTERISTIC_MIN_WEIGHT,
        rng: np.random.Generator | None = None,
    ) -> None:
        super().__init__("Characteristic")
        self.specimen = specimen
        self.physics = physics
        self.cross_section = cross_section
        self.min_weight = min_weight
        self.rng = rng if rng is not None else np.random.default_rng()
        self._data: dict[AtomicShell, tuple[float, dict[XRayTransition, float]]] | None = None
        self.trajectory_count = 0
        specimen.add_listener(self)

    def initialize(self) -> None:
        """Tabulate the shells the beam can ionize and their transitions."""
        if self._data is not None:
            return
        beam_energy = self.specimen.beam_energy
        data: dict[AtomicShell, tuple[float, dict[XRayTransition, float]]] = {}
        for elm in sorted(self.specimen.element_set):
            for sh in range(K, M5 + 1):
                shell = AtomicShell(elm, sh)
                edge = self.physics.edge_energy(shell)
                if not 0.0 < edge < beam_energy:
                    continue
                try:
                    trs = self.physics.transitions(shell, self.min_weight)
                except PhysicsDataError:
                    logger.exception("Unable to simulate %s", shell)
                    continue
                trs = {xrt: p for xrt, p in trs.items() if xrt.energy > 0.0}
                if trs:
                    data[shell] = (edge, trs)
        logger.debug("%s: %d ionizable shells", self.name, len(data))
        self._data = data

    def transitions(self) -> list[XRayTransition]:
        """Every transition this stage can emit, sorted."""
        self.initialize()
        res: set[XRayTransition] = set()
        for _, trs in self._data.values():
            res.update(trs)
        return sorted(res)

    def handle_notification(self, source: object, kind: EventKind) -> None:
        self.reset()
        if kind == EventKind.FIRST_TRAJECTORY:
            self.initialize()
            self.trajectory_count += 1
            self.notify_subscribers(kind)
        elif kind in (EventKind.SCATTER, EventKind.NON_SCATTER):
            self.initialize()
            if self._data:
                self._ionize()
                self.notify_subscribers(EventKind.XRAY_GENERATION)
        elif kind == EventKind.BEAM_ENERGY_CHANGED:
            self._data = None
            self.initialize()
            self.notify_subscribers(kind)
        else:
            self.notify_subscribers(kind)

    def _ionize(self) -> None:
        electron = self.specimen.electron
        if electron is None:
            logger.warning("%s: step notification without an electron", self.name)
            return
        material = electron.region.material
        pos = point_between(electron.prev_position, electron.position, self.rng.random())
        step_len = electron.step_length
        energy = electron.energy
        for shell, (edge, trs) in self._data.items():
            if energy <= edge:
                continue
            density = material.atoms_per_cubic_meter(shell.element)
            if density <= 0.0:
                continue
            iz = self.cross_section.compute_shell(shell, energy) * step_len * density
            if iz > 0.0:
                for xrt, prob in trs.items():
                    self.add_characteristic_xray(pos, xrt.energy, iz * prob, iz * prob, xrt)
