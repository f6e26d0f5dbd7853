"""Material data models.

A material is a mass-fraction composition with a density.
All values in SI (core units): density [kg/m³].
"""

from __future__ import annotations

from dataclasses import dataclass, field

from epma_xray.constants import AVOGADRO_CONSTANT
from epma_xray.models.atomic import Element


@dataclass(frozen=True)
class Material:
    """Homogeneous material.

    Materials are immutable and hashable so they can key path-length maps
    and memoisation tables.

    Attributes:
        name: Display name.
        composition: ``(element, weight_fraction)`` pairs, fractions summing to 1.
        density: Density [kg/m³].
    """
    name: str
    composition: tuple[tuple[Element, float], ...] = field(default=())
    density: float = 0.0

    @classmethod
    def from_weight_fractions(
        cls,
        name: str,
        fractions: dict[Element, float],
        density: float,
    ) -> Material:
        """Build a material from (possibly unnormalised) weight fractions.

        Args:
            name: Display name.
            fractions: Element → weight fraction.
            density: Density [kg/m³].
        """
        total = sum(w for w in fractions.values() if w > 0.0)
        if total <= 0.0:
            return cls(name=name, composition=(), density=density)
        comp = tuple(
            (elm, w / total)
            for elm, w in sorted(fractions.items())
            if w > 0.0
        )
        return cls(name=name, composition=comp, density=density)

    @property
    def elements(self) -> tuple[Element, ...]:
        return tuple(elm for elm, _ in self.composition)

    @property
    def is_vacuum(self) -> bool:
        """True for the empty material (no composition or no density)."""
        return not self.composition or self.density <= 0.0

    def weight_fraction(self, element: Element) -> float:
        for elm, w in self.composition:
            if elm == element:
                return w
        return 0.0

    def atoms_per_cubic_meter(self, element: Element) -> float:
        """Number density of *element* in this material [1/m³]."""
        w = self.weight_fraction(element)
        if w <= 0.0 or element.atomic_weight <= 0.0:
            return 0.0
        return self.density * w * AVOGADRO_CONSTANT / element.atomic_weight

    def __str__(self) -> str:
        return self.name


VACUUM = Material(name="Vacuum")
