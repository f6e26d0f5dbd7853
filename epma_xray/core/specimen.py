"""Specimen region hierarchy — the geometry side of the trajectory engine.

A specimen is a tree of regions inside a vacuum chamber. Each region has a
shape, a homogeneous material and fully contained sub-regions. The X-ray
stages only need four things from it: which region contains a point, where a
straight step ends (leaving a region or entering a sub-region), the
(material, length) decomposition of a segment, and the electron-step
notifications that drive primary emission.

All lengths in m, energies in J (core units).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from epma_xray.constants import (
    DEFAULT_CHAMBER_RADIUS_M,
    MATERIAL_MAP_TOLERANCE_M,
    SMALL_DISP_M,
)
from epma_xray.core.generation import EventKind, XRayListener
from epma_xray.core.shapes import Shape, Sphere
from epma_xray.models.atomic import Element
from epma_xray.models.material import VACUUM, Material

logger = logging.getLogger(__name__)


def _unit(v: NDArray[np.float64]) -> NDArray[np.float64]:
    n = float(np.linalg.norm(v))
    return v / n if n > 0.0 else v


class Region:
    """A volume of homogeneous material with fully contained sub-regions.

    Args:
        parent: Enclosing region (None only for the chamber).
        material: Material filling the region outside its sub-regions.
        shape: Region boundary.
    """

    def __init__(
        self,
        parent: Region | None,
        material: Material,
        shape: Shape,
    ) -> None:
        self.parent = parent
        self.material = material
        self.shape = shape
        self.sub_regions: list[Region] = []
        if parent is not None:
            parent.sub_regions.append(self)

    def find_containing(self, pos: NDArray[np.float64]) -> Region | None:
        """Deepest region (this one or a descendant) containing *pos*."""
        if self.shape.contains(pos):
            for sub in self.sub_regions:
                res = sub.find_containing(pos)
                if res is not None:
                    return res
            return self
        return None

    def find_end_of_step(
        self,
        p0: NDArray[np.float64],
        p1: NDArray[np.float64],
    ) -> tuple[Region | None, NDArray[np.float64]]:
        """Clip the step ``p0 → p1`` at the first region boundary it crosses.

        Args:
            p0: Step start, inside this region [m].
            p1: Candidate step end [m].

        Returns:
            ``(region, end)``: the region in which *end* lies and the actual
            end point (on the boundary when a boundary was crossed). The
            region is None when the step leaves the chamber.
        """
        base: Region | None = self
        t = self.shape.first_intersection(p0, p1)
        if t <= 1.0 and self.parent is not None:
            base = self.parent
        # Sub-regions are fully contained, so grandchildren need no check
        for sub in self.sub_regions:
            candidate = sub.shape.first_intersection(p0, p1)
            if candidate <= 1.0 and candidate < t:
                t = candidate
                base = sub
        if t > 1.0:
            return self, p1
        delta = p1 - p0
        end = p0 + t * delta
        over = end + SMALL_DISP_M * _unit(delta)
        while base is not None:
            res = base.find_containing(over)
            if res is not None:
                return res, end
            base = base.parent
        return None, end

    def elements(self, recurse: bool = True) -> set[Element]:
        res = set(self.material.elements)
        if recurse:
            for sub in self.sub_regions:
                res |= sub.elements(True)
        return res

    def __repr__(self) -> str:
        return f"Region(material={self.material.name!r}, shape={self.shape!r})"


@dataclass
class ElectronStep:
    """State of the electron at the end of its most recent step.

    Filled in by the trajectory engine before it fires a step notification.

    Attributes:
        prev_position: Position at the start of the step [m].
        position: Position at the end of the step [m].
        energy: Kinetic energy [J].
        region: Region in which the step was taken.
        direction: Unit direction of travel.
    """
    prev_position: NDArray[np.float64]
    position: NDArray[np.float64]
    energy: float
    region: Region
    direction: NDArray[np.float64] | None = None

    @property
    def step_length(self) -> float:
        return float(np.linalg.norm(self.position - self.prev_position))


class Specimen:
    """Chamber + specimen regions, and the notification hub of one simulation.

    The electron transport itself lives elsewhere; it places the current
    :class:`ElectronStep` in :attr:`electron` and calls :meth:`fire_event`.

    Args:
        beam_energy: Incident electron energy [J].
        chamber_radius: Radius of the vacuum chamber [m].
    """

    def __init__(
        self,
        beam_energy: float,
        chamber_radius: float = DEFAULT_CHAMBER_RADIUS_M,
    ) -> None:
        self.beam_energy = beam_energy
        self.chamber = Region(None, VACUUM, Sphere([0.0, 0.0, 0.0], chamber_radius))
        self.electron: ElectronStep | None = None
        self._listeners: list[XRayListener] = []

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def add_region(
        self,
        material: Material,
        shape: Shape,
        parent: Region | None = None,
    ) -> Region:
        """Add a sub-region to *parent* (the chamber by default)."""
        return Region(parent or self.chamber, material, shape)

    def find_region_containing(self, pos: ArrayLike) -> Region | None:
        return self.chamber.find_containing(np.asarray(pos, dtype=float))

    def get_material_map(
        self,
        start: ArrayLike,
        end: ArrayLike,
    ) -> dict[Material, float]:
        """Decompose the straight segment ``start → end`` by material.

        Returns:
            Material → total path length through it [m]. Vacuum segments are
            included; consumers skip them.
        """
        start_pt = np.asarray(start, dtype=float)
        end_pt = np.asarray(end, dtype=float)
        traj: dict[Material, float] = {}
        region = self.chamber.find_containing(start_pt)
        while region is not None and float(np.linalg.norm(end_pt - start_pt)) > MATERIAL_MAP_TOLERANCE_M:
            next_region, step_end = region.find_end_of_step(start_pt, end_pt.copy())
            dist = float(np.linalg.norm(step_end - start_pt))
            if dist > 0.0:
                traj[region.material] = traj.get(region.material, 0.0) + dist
            start_pt = step_end + SMALL_DISP_M * _unit(end_pt - start_pt)
            region = next_region
        return traj

    @property
    def element_set(self) -> set[Element]:
        return self.chamber.elements(True)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def add_listener(self, listener: XRayListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: XRayListener) -> None:
        self._listeners.remove(listener)

    def fire_event(self, kind: EventKind) -> None:
        """Push a trajectory notification to every attached stage."""
        for listener in list(self._listeners):
            listener.handle_notification(self, kind)

    def set_beam_energy(self, beam_energy: float) -> None:
        self.beam_energy = beam_energy
        logger.debug("Beam energy changed to %g J", beam_energy)
        self.fire_event(EventKind.BEAM_ENERGY_CHANGED)
