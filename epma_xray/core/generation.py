"""X-ray generation stage base — event buffer, subscribers, propagation.

Every physics stage extends :class:`BaseXRayGeneration`. A stage owns the
events it produced during the current notification cycle and a list of
subscribers. When an upstream source notifies it, the stage resets its
buffer, does its physics (adding events through the ``add_*`` factories) and
then notifies its own subscribers synchronously. Subscribers read the buffer
by reference during their handler and must copy out anything they want to
keep: the buffer is cleared at the start of the next cycle.

Downstream stages visit the upstream buffer from ``event_count - 1`` down
to 0.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Protocol

import numpy as np
from numpy.typing import ArrayLike, NDArray

from epma_xray.constants import XRAY_GENERATION_ID
from epma_xray.models.atomic import Element, XRayTransition
from epma_xray.models.xray import (
    BremsstrahlungXRay,
    CharacteristicXRay,
    ComptonXRay,
    XRay,
)

logger = logging.getLogger(__name__)


class EventKind(IntEnum):
    """Notification identifiers.

    XRAY_GENERATION announces a new photon batch; the others are trajectory
    lifecycle notifications that stages forward unchanged.
    """
    SCATTER = 1
    NON_SCATTER = 2
    BACKSCATTER = 3
    EXIT_MATERIAL = 4
    TRAJECTORY_START = 5
    TRAJECTORY_END = 6
    LAST_TRAJECTORY = 7
    FIRST_TRAJECTORY = 8
    BEAM_ENERGY_CHANGED = 9
    XRAY_GENERATION = XRAY_GENERATION_ID


class XRayListener(Protocol):
    """Anything that can subscribe to a stage or a specimen."""

    def handle_notification(self, source: object, kind: EventKind) -> None: ...


class ReentrantNotificationError(RuntimeError):
    """A stage tried to notify its subscribers while already doing so.

    Always indicates a subscriber cycle in the pipeline wiring.
    """


def _as_position(pos: ArrayLike) -> NDArray[np.float64]:
    return np.asarray(pos, dtype=float)


class BaseXRayGeneration(ABC):
    """Common plumbing for every X-ray producing stage.

    Args:
        name: Human-readable stage name (used in log messages and errors).
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._events: list[XRay] = []
        self._subscribers: list[XRayListener] = []
        self._in_event = False

    # ------------------------------------------------------------------
    # Event factories
    # ------------------------------------------------------------------

    def add_xray(
        self,
        parent: XRay,
        position: ArrayLike,
        intensity: float,
        generated: float,
    ) -> XRay:
        """Buffer an event derived from *parent* at a new position.

        Characteristic parents yield characteristic events carrying the same
        transition; every other kind yields a plain event. Energy is
        inherited from *parent*.
        """
        pos = _as_position(position)
        if isinstance(parent, CharacteristicXRay):
            res: XRay = CharacteristicXRay(
                pos, parent.energy, intensity, generated, parent,
                transition=parent.transition,
            )
        else:
            res = XRay(pos, parent.energy, intensity, generated, parent)
        self._events.append(res)
        return res

    def add_shifted_xray(
        self,
        parent: ComptonXRay,
        position: ArrayLike,
        energy: float,
        intensity: float,
        generated: float,
    ) -> XRay:
        """Buffer a plain event derived from a Compton event at a new energy."""
        res = XRay(_as_position(position), energy, intensity, generated, parent)
        self._events.append(res)
        return res

    def add_characteristic_xray(
        self,
        position: ArrayLike,
        energy: float,
        intensity: float,
        generated: float,
        transition: XRayTransition,
    ) -> CharacteristicXRay:
        """Buffer a root characteristic event."""
        res = CharacteristicXRay(
            _as_position(position), energy, intensity, generated,
            transition=transition,
        )
        self._events.append(res)
        return res

    def add_compton_xray(
        self,
        position: ArrayLike,
        direction: ArrayLike,
        intensity: float,
        source: XRay,
    ) -> ComptonXRay:
        """Buffer a Compton-scattered event derived from *source*.

        Args:
            position: Scattering point [m].
            direction: Direction of the incident photon.
            intensity: Intensity arriving at the scattering point; also
                recorded as the generated intensity.
            source: Event whose photon was scattered.
        """
        res = ComptonXRay(
            _as_position(position), source.energy, intensity, intensity, source,
            primary_direction=_as_position(direction),
        )
        self._events.append(res)
        return res

    def add_continuum_xray(
        self,
        position: ArrayLike,
        energy: float,
        intensity: float,
        element: Element,
        direction: ArrayLike,
        electron_energy: float,
    ) -> BremsstrahlungXRay:
        """Buffer a root continuum (Bremsstrahlung) event."""
        res = BremsstrahlungXRay(
            _as_position(position), energy, intensity, intensity,
            element=element,
            direction=_as_position(direction),
            electron_energy=electron_energy,
        )
        self._events.append(res)
        return res

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def event_count(self) -> int:
        return len(self._events)

    def get_event_count(self) -> int:
        return len(self._events)

    def get_event(self, index: int) -> XRay:
        return self._events[index]

    def get_event_by_energy(self, energy: float) -> XRay | None:
        """First buffered event with exactly this energy."""
        for xr in self._events:
            if xr.energy == energy:
                return xr
        return None

    def get_event_by_transition(
        self, transition: XRayTransition,
    ) -> CharacteristicXRay | None:
        """First buffered characteristic event for *transition*."""
        for xr in self._events:
            if isinstance(xr, CharacteristicXRay) and xr.transition == transition:
                return xr
        return None

    def events_in_visit_order(self) -> list[XRay]:
        """Buffered events from the last added to the first."""
        return self._events[::-1]

    def reset(self) -> None:
        """Discard the events of the previous cycle."""
        self._events.clear()

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    @property
    def subscribers(self) -> tuple[XRayListener, ...]:
        return tuple(self._subscribers)

    def subscribe(self, listener: XRayListener) -> None:
        self._subscribers.append(listener)

    def unsubscribe(self, listener: XRayListener) -> None:
        self._subscribers.remove(listener)

    def notify_subscribers(
        self,
        kind: EventKind = EventKind.XRAY_GENERATION,
    ) -> None:
        """Synchronously invoke every subscriber's handler.

        Raises:
            ReentrantNotificationError: If this stage is already notifying,
                i.e. the subscriber graph contains a cycle.
        """
        if not self._subscribers:
            return
        if self._in_event:
            raise ReentrantNotificationError(
                f"{self.name}: notified subscribers while already notifying"
            )
        self._in_event = True
        try:
            for i in range(len(self._subscribers) - 1, -1, -1):
                self._subscribers[i].handle_notification(self, kind)
        finally:
            self._in_event = False

    @abstractmethod
    def handle_notification(self, source: object, kind: EventKind) -> None:
        """React to an upstream notification.

        Implementations call :meth:`reset` first, then produce events, then
        :meth:`notify_subscribers`. Kinds they do not handle are forwarded
        unchanged.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, events={len(self._events)})"
