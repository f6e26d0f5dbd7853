"""Detector-side accumulator of characteristic intensities.

Subscribes to a transport stage, sums the generated and transmitted
intensity of each characteristic transition, and counts electrons from the
trajectory-start notifications forwarded down the chain. Results are
reported per electron, scaled to the probe dose and per millisteradian.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass

from epma_xray.constants import ELECTRON_CHARGE, I_NORM
from epma_xray.core.generation import BaseXRayGeneration, EventKind
from epma_xray.core.units import J_to_eV
from epma_xray.models.atomic import XRayTransition
from epma_xray.models.xray import CharacteristicXRay

logger = logging.getLogger(__name__)


@dataclass
class _Sums:
    generated: float = 0.0
    transmitted: float = 0.0


@dataclass
class AccumulatorRow:
    """Per-transition accumulator result.

    Attributes:
        transition: Characteristic transition.
        energy_eV: Line energy [eV].
        generated: Generated intensity [1/msr].
        emitted: Transmitted intensity [1/msr].
        ratio: emitted / generated, None when nothing was generated.
    """
    transition: XRayTransition
    energy_eV: float = 0.0
    generated: float = 0.0
    emitted: float = 0.0
    ratio: float | None = None


class XRayAccumulator:
    """Per-transition generated/emitted intensity totals.

    Args:
        transitions: Transitions to accumulate; others are ignored.
        label: Display label (e.g. "Characteristic + fluorescence").
        dose: Probe dose [C].
    """

    def __init__(
        self,
        transitions: list[XRayTransition],
        label: str,
        dose: float,
    ) -> None:
        self.label = label
        self._sums: dict[XRayTransition, _Sums] = {xrt: _Sums() for xrt in transitions}
        self._scale = dose / ELECTRON_CHARGE
        self.electron_count = 0
        self.event_count = 0

    def attach(self, stage: BaseXRayGeneration) -> XRayAccumulator:
        stage.subscribe(self)
        return self

    @property
    def transitions(self) -> list[XRayTransition]:
        return list(self._sums)

    def contains(self, transition: XRayTransition) -> bool:
        return transition in self._sums

    def clear(self) -> None:
        for acc in self._sums.values():
            acc.generated = 0.0
            acc.transmitted = 0.0
        self.electron_count = 0
        self.event_count = 0

    def handle_notification(self, source: object, kind: EventKind) -> None:
        if kind == EventKind.XRAY_GENERATION:
            if not isinstance(source, BaseXRayGeneration):
                return
            for i in range(source.event_count - 1, -1, -1):
                xr = source.get_event(i)
                if isinstance(xr, CharacteristicXRay):
                    acc = self._sums.get(xr.transition)
                    if acc is not None:
                        acc.generated += xr.generated
                        acc.transmitted += xr.intensity
            self.event_count += 1
        elif kind == EventKind.TRAJECTORY_START:
            self.electron_count += 1

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _per_electron(self, value: float) -> float:
        if self.electron_count == 0:
            return 0.0
        return I_NORM * self._scale * value / self.electron_count

    def get_generated(self, transition: XRayTransition) -> float:
        acc = self._sums.get(transition)
        return self._per_electron(acc.generated) if acc is not None else 0.0

    def get_emitted(self, transition: XRayTransition) -> float:
        acc = self._sums.get(transition)
        return self._per_electron(acc.transmitted) if acc is not None else 0.0

    def get_sum_generated(self) -> float:
        return self._per_electron(sum(acc.generated for acc in self._sums.values()))

    def get_sum_emitted(self) -> float:
        return self._per_electron(sum(acc.transmitted for acc in self._sums.values()))

    def results(self) -> list[AccumulatorRow]:
        """One row per transition, sorted by transition."""
        rows = []
        for xrt in sorted(self._sums):
            gen = self.get_generated(xrt)
            emit = self.get_emitted(xrt)
            rows.append(AccumulatorRow(
                transition=xrt,
                energy_eV=J_to_eV(xrt.energy),
                generated=gen,
                emitted=emit,
                ratio=emit / gen if gen > 0.0 else None,
            ))
        return rows

    def export_csv(self, output_path: str) -> None:
        """Write :meth:`results` as CSV.

        Columns: Transition, Energy (eV), Generated (1/msr), Emitted (1/msr),
        Ratio (%).

        Args:
            output_path: Destination file path (.csv).
        """
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["Transition", "Energy (eV)", "Generated (1/msr)", "Emitted (1/msr)", "Ratio (%)"])
            for row in self.results():
                ratio = f"{100.0 * row.ratio:.2f}" if row.ratio is not None else ""
                writer.writerow([
                    str(row.transition), f"{row.energy_eV:.1f}",
                    f"{row.generated:.6g}", f"{row.emitted:.6g}", ratio,
                ])
        logger.info("%s: wrote %d transitions to %s", self.label, len(self._sums), output_path)

    def __repr__(self) -> str:
        return f"XRayAccumulator({self.label!r}, electrons={self.electron_count})"
