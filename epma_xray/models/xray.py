"""X-ray event records.

An event is one weighted photon packet: a generation position, an energy,
a current (transmitted) intensity and the originally generated intensity.
Derived events keep a reference to the event they were derived from so the
physical birth point can always be recovered.

All positions in m, energies in J (core units). Intensities are relative
weights, not photon counts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from epma_xray.models.atomic import Element, XRayTransition


def angle_between(a: NDArray[np.float64], b: NDArray[np.float64]) -> float:
    """Angle between two vectors [radian]; 0 when either has zero length."""
    na = float(np.linalg.norm(a))
    nb = float(np.linalg.norm(b))
    if na == 0.0 or nb == 0.0:
        return 0.0
    c = float(np.dot(a, b)) / (na * nb)
    return math.acos(max(-1.0, min(1.0, c)))


def _frozen_vector(value: NDArray[np.float64]) -> NDArray[np.float64]:
    """Read-only float copy of a 3-vector."""
    res = np.array(value, dtype=float)
    res.setflags(write=False)
    return res


@dataclass(frozen=True, eq=False)
class XRay:
    """Plain X-ray event.

    Attributes:
        position: Point at which this event was recorded [m].
        energy: Photon energy [J].
        intensity: Current (transmitted) intensity [relative photons].
        generated: Intensity before absorption [relative photons].
        parent: Event this one was derived from, None for a root event.
    """
    position: NDArray[np.float64]
    energy: float
    intensity: float
    generated: float
    parent: XRay | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        # Events are immutable; detach from the caller's array
        object.__setattr__(self, "position", _frozen_vector(self.position))

    @property
    def generation_position(self) -> NDArray[np.float64]:
        """Position at which the physical photon was first created."""
        xr = self
        while xr.parent is not None:
            xr = xr.parent
        return xr.position

    @property
    def root(self) -> XRay:
        xr = self
        while xr.parent is not None:
            xr = xr.parent
        return xr


@dataclass(frozen=True, eq=False, kw_only=True)
class CharacteristicXRay(XRay):
    """Photon from a shell-to-shell transition."""
    transition: XRayTransition


@dataclass(frozen=True, eq=False, kw_only=True)
class BremsstrahlungXRay(XRay):
    """Continuum photon emitted by a decelerating electron.

    Attributes:
        element: Element in whose field the electron decelerated.
        direction: Electron direction of travel at emission.
        electron_energy: Electron kinetic energy at emission [J].
    """
    element: Element
    direction: NDArray[np.float64]
    electron_energy: float

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "direction", _frozen_vector(self.direction))

    def angle(self, xray_direction: NDArray[np.float64]) -> float:
        """Angle between the electron direction and an emission direction."""
        return angle_between(self.direction, xray_direction)


@dataclass(frozen=True, eq=False, kw_only=True)
class ComptonXRay(XRay):
    """Photon scattered incoherently inside the specimen.

    Attributes:
        primary_direction: Direction of the incident photon before scattering.
    """
    primary_direction: NDArray[np.float64]

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(
            self, "primary_direction", _frozen_vector(self.primary_direction),
        )
