"""Shared test helpers — deterministic physics stubs, scripted sources, constants."""

from __future__ import annotations

from epma_xray.core.generation import BaseXRayGeneration, EventKind
from epma_xray.core.units import keV_to_J
from epma_xray.core.xray_physics import PhysicsDataError
from epma_xray.models.atomic import K, L1, L2, L3, AtomicShell, Element, XRayTransition
from epma_xray.models.material import Material

FE = Element(26, "Fe", 0.055845)
NI = Element(28, "Ni", 0.0586934)

FE_KL3 = XRayTransition(FE, "KL3", keV_to_J(6.404))
FE_KL2 = XRayTransition(FE, "KL2", keV_to_J(6.391))
FE_L3M5 = XRayTransition(FE, "L3M5", keV_to_J(0.705))
NI_KL3 = XRayTransition(NI, "KL3", keV_to_J(7.478))

IRON = Material.from_weight_fractions("Fe", {FE: 1.0}, 7874.0)

# Specimen block: 2 mm × 2 mm, 1 mm deep, top face at z = 0
BLOCK_LOWER = (-1.0e-3, -1.0e-3, -1.0e-3)
BLOCK_UPPER = (1.0e-3, 1.0e-3, 0.0)


class StubPhysics:
    """Deterministic stand-in for the xraylib-backed physics.

    Args:
        mac: Mass absorption coefficient for every non-vacuum material [m²/kg].
        incoherent_mfp: Compton mean free path [m].
        edges: (Z, shell) → edge energy [J].
        fractions: Shell index → ionization fraction.
        lines: (Z, shell) → {transition: probability}.
        bad_energy: Energy at which every lookup raises PhysicsDataError.
    """

    def __init__(
        self,
        mac: float = 127.0,
        incoherent_mfp: float = 1.0e-6,
        edges: dict[tuple[int, int], float] | None = None,
        fractions: dict[int, float] | None = None,
        lines: dict[tuple[int, int], dict[XRayTransition, float]] | None = None,
        bad_energy: float | None = None,
    ) -> None:
        self.mac = mac
        self.incoherent_mfp = incoherent_mfp
        self.edges = edges if edges is not None else {
            (26, K): keV_to_J(7.112),
            (26, L1): keV_to_J(0.846),
            (26, L2): keV_to_J(0.721),
            (26, L3): keV_to_J(0.708),
        }
        self.fractions = fractions if fractions is not None else {
            K: 0.8, L1: 0.1, L2: 0.3, L3: 0.6,
        }
        self.lines = lines if lines is not None else {
            (26, K): {FE_KL3: 0.3, FE_KL2: 0.15},
            (26, L3): {FE_L3M5: 0.01},
        }
        self.bad_energy = bad_energy

    def _check(self, energy: float) -> None:
        if self.bad_energy is not None and energy == self.bad_energy:
            raise PhysicsDataError(f"no data at {energy}")

    def mass_absorption_coefficient(self, material: Material, energy: float) -> float:
        self._check(energy)
        return 0.0 if material.is_vacuum else self.mac

    def mean_free_path(self, material: Material, energy: float) -> float:
        self._check(energy)
        return 1.0 / (self.mac * material.density)

    def incoherent_mean_free_path(self, material: Material, energy: float) -> float:
        self._check(energy)
        return self.incoherent_mfp

    def randomized_absorbing_element(self, material, energy, rng):
        self._check(energy)
        return material.composition[0][0]

    def edge_energy(self, shell: AtomicShell) -> float:
        return self.edges.get((shell.element.atomic_number, shell.shell), 0.0)

    def ionization_fraction(self, shell: AtomicShell) -> float:
        return self.fractions.get(shell.shell, 0.0)

    def transitions(self, shell: AtomicShell, min_weight: float) -> dict[XRayTransition, float]:
        return dict(self.lines.get((shell.element.atomic_number, shell.shell), {}))


class ScriptedSource(BaseXRayGeneration):
    """Upstream stage whose batches are supplied by the test."""

    def __init__(self) -> None:
        super().__init__("Scripted")

    def emit(self, build) -> None:
        """Reset, let *build(self)* add events, then notify."""
        self.reset()
        build(self)
        self.notify_subscribers(EventKind.XRAY_GENERATION)

    def handle_notification(self, source, kind) -> None:
        self.reset()
        self.notify_subscribers(kind)


class Collector:
    """Listener that copies out every notification it receives."""

    def __init__(self) -> None:
        self.kinds: list[EventKind] = []
        self.batches: list[list] = []

    def handle_notification(self, source, kind) -> None:
        self.kinds.append(kind)
        if kind == EventKind.XRAY_GENERATION:
            self.batches.append(
                [source.get_event(i) for i in range(source.event_count - 1, -1, -1)]
            )

    @property
    def events(self) -> list:
        return [xr for batch in self.batches for xr in batch]


# Thin foil holding the source and a dense slab 2 cm below it
FOIL = Material.from_weight_fractions("Fe foil", {FE: 1.0}, 7874.0)
FOIL_LOWER = (-1.0e-2, -1.0e-2, -1.0e-4)
FOIL_UPPER = (1.0e-2, 1.0e-2, 0.0)
SLAB_LOWER = (-5.0e-2, -5.0e-2, -4.0e-2)
SLAB_UPPER = (5.0e-2, 5.0e-2, -2.0e-2)


class LayeredPhysics(StubPhysics):
    """Stub physics with a mean free path per material name.

    Args:
        photo_mfp: Material name → photoabsorption mean free path [m].
        incoherent_mfp: Material name → Compton mean free path [m].
    """

    def __init__(
        self,
        photo_mfp: dict[str, float],
        incoherent_mfp: dict[str, float],
    ) -> None:
        super().__init__()
        self.photo_mfp = photo_mfp
        self.incoherent_by_material = incoherent_mfp

    def mass_absorption_coefficient(self, material: Material, energy: float) -> float:
        if material.is_vacuum:
            return 0.0
        return 1.0 / (self.photo_mfp[material.name] * material.density)

    def mean_free_path(self, material: Material, energy: float) -> float:
        return self.photo_mfp[material.name]

    def incoherent_mean_free_path(self, material: Material, energy: float) -> float:
        return self.incoherent_by_material[material.name]
