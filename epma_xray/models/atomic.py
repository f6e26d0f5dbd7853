"""Atomic data models — elements, shells and X-ray transitions.

Shell indices follow the xraylib shell macros (K_SHELL = 0 ... M5_SHELL = 8).
Energies are in J (core units).
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Shell indices
K = 0
L1, L2, L3 = 1, 2, 3
M1, M2, M3, M4, M5 = 4, 5, 6, 7, 8
NO_SHELL = -1

SHELL_NAMES: tuple[str, ...] = ("K", "L1", "L2", "L3", "M1", "M2", "M3", "M4", "M5")

# Number of electrons in a filled (sub)shell
SHELL_OCCUPANCY: tuple[int, ...] = (2, 2, 2, 4, 2, 2, 4, 4, 6)

_FAMILY_RANGES: dict[str, tuple[int, int]] = {
    "K": (K, K),
    "L": (L1, L3),
    "M": (M1, M5),
}


def shell_family(shell: int) -> str:
    """Family letter ("K", "L" or "M") of a shell index."""
    return SHELL_NAMES[shell][0]


def last_in_family(shell: int) -> int:
    """Shallowest (lowest binding energy) shell of the shell's family."""
    return _FAMILY_RANGES[shell_family(shell)][1]


@dataclass(frozen=True, order=True)
class Element:
    """Chemical element.

    Attributes:
        atomic_number: Z.
        symbol: Chemical symbol.
        atomic_weight: Molar mass [kg/mol].
    """
    atomic_number: int
    symbol: str = field(compare=False)
    atomic_weight: float = field(compare=False)

    def __str__(self) -> str:
        return self.symbol


@dataclass(frozen=True, order=True)
class AtomicShell:
    """A single atomic (sub)shell of an element.

    Attributes:
        element: Owning element.
        shell: Shell index (K = 0 ... M5 = 8).
    """
    element: Element
    shell: int

    @property
    def name(self) -> str:
        return SHELL_NAMES[self.shell]

    @property
    def family(self) -> str:
        return shell_family(self.shell)

    @property
    def occupancy(self) -> int:
        return SHELL_OCCUPANCY[self.shell]

    def __str__(self) -> str:
        return f"{self.element.symbol} {self.name}"


@dataclass(frozen=True, order=True)
class XRayTransition:
    """Characteristic X-ray transition, identified by element and IUPAC name.

    Attributes:
        element: Emitting element.
        name: IUPAC transition name, vacancy shell first (e.g. ``"KL3"``).
        energy: Line energy [J].
    """
    element: Element
    name: str
    energy: float = field(compare=False)

    def __str__(self) -> str:
        return f"{self.element.symbol} {self.name}"
