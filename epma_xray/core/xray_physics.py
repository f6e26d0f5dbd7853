"""Photon physics service — absorption, shells and transition tables.

The stages depend on the :class:`PhotonPhysics` protocol only.
:class:`XraylibPhysics` implements it on top of xraylib: tabulated values
(keV, cm²/g, g/cm³) are converted to SI at this boundary via
:mod:`epma_xray.core.units`.

All returned values are in core units: J, m, m²/kg.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

import numpy as np
import xraylib

from epma_xray.core.units import (
    J_to_keV,
    cm2_per_g_to_m2_per_kg,
    g_cm3_to_kg_m3,
    g_mol_to_kg_mol,
    keV_to_J,
)
from epma_xray.models.atomic import M5, SHELL_NAMES, AtomicShell, Element, XRayTransition
from epma_xray.models.material import Material

logger = logging.getLogger(__name__)

# IUPAC line macros: vacancy shell (K, L1–L3, M1–M5) + filling shell
_IUPAC_LINE = re.compile(r"^(K|L[1-3]|M[1-5])([LMNOPQ][1-7])_LINE$")

# Memoised MAC entries before the table is flushed
_MAC_CACHE_LIMIT = 100_000


class PhysicsDataError(ValueError):
    """A coefficient, edge or transition table is unavailable."""


class PhotonPhysics(Protocol):
    """Photon-matter data needed by the generation stages."""

    def mass_absorption_coefficient(self, material: Material, energy: float) -> float:
        """Photoabsorption μ/ρ [m²/kg]."""
        ...

    def mean_free_path(self, material: Material, energy: float) -> float:
        """Mean photoabsorption path [m]."""
        ...

    def incoherent_mean_free_path(self, material: Material, energy: float) -> float:
        """Mean path between Compton scatterings [m]."""
        ...

    def randomized_absorbing_element(
        self, material: Material, energy: float, rng: np.random.Generator,
    ) -> Element:
        """Element that absorbed a photon, drawn by weighted μ/ρ."""
        ...

    def edge_energy(self, shell: AtomicShell) -> float:
        """Ionization edge [J]; 0.0 if the shell does not exist."""
        ...

    def ionization_fraction(self, shell: AtomicShell) -> float:
        """Probability that an absorption above the edge ionizes *shell*."""
        ...

    def transitions(
        self, shell: AtomicShell, min_weight: float,
    ) -> dict[XRayTransition, float]:
        """Emission probability per ionization of *shell*, pruned at *min_weight*."""
        ...


def _lines_by_shell() -> dict[str, list[tuple[str, int]]]:
    """IUPAC line names and xraylib macros grouped by vacancy shell."""
    res: dict[str, list[tuple[str, int]]] = {name: [] for name in SHELL_NAMES}
    for attr in dir(xraylib):
        m = _IUPAC_LINE.match(attr)
        if m is not None:
            res[m.group(1)].append((m.group(1) + m.group(2), getattr(xraylib, attr)))
    return res


class XraylibPhysics:
    """:class:`PhotonPhysics` backed by the xraylib database.

    Absorption uses the photoelectric cross-section (``CS_Photo``), Compton
    mean free paths the incoherent one (``CS_Compt``). Ionization fractions
    come from jump ratios r as (r − 1)/r; transition probabilities are the
    fluorescence yield times the radiative rate.
    """

    def __init__(self) -> None:
        self._lines = _lines_by_shell()
        self._mac_cache: dict[tuple[int, float], float] = {}
        self._incoherent_cache: dict[tuple[int, float], float] = {}

    # ------------------------------------------------------------------
    # Elements and materials
    # ------------------------------------------------------------------

    def element(self, symbol: str) -> Element:
        """Element from its chemical symbol.

        Raises:
            PhysicsDataError: If the symbol is unknown.
        """
        try:
            z = xraylib.SymbolToAtomicNumber(symbol)
            weight = xraylib.AtomicWeight(z)
        except ValueError as exc:
            raise PhysicsDataError(f"Unknown element: {symbol!r}") from exc
        return Element(atomic_number=z, symbol=symbol, atomic_weight=g_mol_to_kg_mol(weight))

    def material(
        self,
        name: str,
        fractions: dict[str, float],
        density_g_cm3: float,
    ) -> Material:
        """Material from symbol → weight fraction and a density in g/cm³."""
        comp = {self.element(sym): w for sym, w in fractions.items()}
        return Material.from_weight_fractions(name, comp, g_cm3_to_kg_m3(density_g_cm3))

    def pure_element(self, symbol: str) -> Material:
        """Pure element at its tabulated bulk density."""
        elm = self.element(symbol)
        try:
            density = xraylib.ElementDensity(elm.atomic_number)
        except ValueError as exc:
            raise PhysicsDataError(f"No density for {symbol}") from exc
        return Material.from_weight_fractions(symbol, {elm: 1.0}, g_cm3_to_kg_m3(density))

    # ------------------------------------------------------------------
    # Absorption
    # ------------------------------------------------------------------

    def element_mac(self, element: Element, energy: float) -> float:
        """Photoabsorption μ/ρ of a pure element [m²/kg]."""
        key = (element.atomic_number, energy)
        mac = self._mac_cache.get(key)
        if mac is None:
            mac = self._cross_section(xraylib.CS_Photo, element, energy)
            if len(self._mac_cache) >= _MAC_CACHE_LIMIT:
                self._mac_cache.clear()
            self._mac_cache[key] = mac
        return mac

    def mass_absorption_coefficient(self, material: Material, energy: float) -> float:
        if material.is_vacuum:
            return 0.0
        return sum(w * self.element_mac(elm, energy) for elm, w in material.composition)

    def mean_free_path(self, material: Material, energy: float) -> float:
        mu = self.mass_absorption_coefficient(material, energy) * material.density
        if mu <= 0.0:
            raise PhysicsDataError(f"No absorption in {material} at {J_to_keV(energy):.4g} keV")
        return 1.0 / mu

    def incoherent_mean_free_path(self, material: Material, energy: float) -> float:
        if material.is_vacuum:
            raise PhysicsDataError(f"No scattering in {material}")
        total = 0.0
        for elm, w in material.composition:
            key = (elm.atomic_number, energy)
            mac = self._incoherent_cache.get(key)
            if mac is None:
                mac = self._cross_section(xraylib.CS_Compt, elm, energy)
                if len(self._incoherent_cache) >= _MAC_CACHE_LIMIT:
                    self._incoherent_cache.clear()
                self._incoherent_cache[key] = mac
            total += w * mac
        mu = total * material.density
        if mu <= 0.0:
            raise PhysicsDataError(
                f"No incoherent scattering in {material} at {J_to_keV(energy):.4g} keV"
            )
        return 1.0 / mu

    def randomized_absorbing_element(
        self,
        material: Material,
        energy: float,
        rng: np.random.Generator,
    ) -> Element:
        weights = [w * self.element_mac(elm, energy) for elm, w in material.composition]
        total = sum(weights)
        if total <= 0.0:
            raise PhysicsDataError(f"No absorbing element in {material}")
        r = rng.random() * total
        for (elm, _), wt in zip(material.composition, weights):
            r -= wt
            if r <= 0.0:
                return elm
        return material.composition[-1][0]

    # ------------------------------------------------------------------
    # Shells and transitions
    # ------------------------------------------------------------------

    def edge_energy(self, shell: AtomicShell) -> float:
        try:
            return keV_to_J(xraylib.EdgeEnergy(shell.element.atomic_number, shell.shell))
        except ValueError:
            return 0.0

    def ionization_fraction(self, shell: AtomicShell) -> float:
        try:
            r = xraylib.JumpFactor(shell.element.atomic_number, shell.shell)
        except ValueError as exc:
            raise PhysicsDataError(f"No jump ratio for {shell}") from exc
        return (r - 1.0) / r if r >= 1.0 else 0.0

    def transitions(
        self,
        shell: AtomicShell,
        min_weight: float,
    ) -> dict[XRayTransition, float]:
        if shell.shell > M5:
            return {}
        z = shell.element.atomic_number
        try:
            yield_ = xraylib.FluorYield(z, shell.shell)
        except ValueError as exc:
            raise PhysicsDataError(f"No fluorescence yield for {shell}") from exc
        found: dict[XRayTransition, float] = {}
        for name, line in self._lines[shell.name]:
            try:
                rate = xraylib.RadRate(z, line)
                energy = xraylib.LineEnergy(z, line)
            except ValueError:
                continue
            if rate > 0.0 and energy > 0.0:
                xrt = XRayTransition(shell.element, name, keV_to_J(energy))
                found[xrt] = yield_ * rate
        if not found:
            return {}
        threshold = min_weight * max(found.values())
        res = {xrt: p for xrt, p in found.items() if p > threshold}
        logger.debug("%s: %d of %d transitions above %.3g", shell, len(res), len(found), min_weight)
        return res

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _cross_section(func, element: Element, energy: float) -> float:
        try:
            value = func(element.atomic_number, J_to_keV(energy))
        except ValueError as exc:
            raise PhysicsDataError(
                f"{func.__name__} unavailable for {element} at {J_to_keV(energy):.4g} keV"
            ) from exc
        return cm2_per_g_to_m2_per_kg(value)
