"""Unit conversion module — single conversion point between data and core.

CRITICAL: All unit conversions MUST go through this module.

Internal (core) units:
    Length   : m
    Energy   : J
    Density  : kg/m³
    μ/ρ      : m²/kg
    σ        : m²
    Angle    : radian

Tabulated (xraylib) units:
    Length   : cm
    Energy   : keV
    Density  : g/cm³
    μ/ρ      : cm²/g
"""

import math
from typing import NewType

from epma_xray.constants import ELECTRON_CHARGE

# Type aliases — zero runtime cost, visible in IDE for unit-error detection
Joule = NewType('Joule', float)
Meter = NewType('Meter', float)
Radian = NewType('Radian', float)


# ---------------------------------------------------------------------------
# Energy conversions
# ---------------------------------------------------------------------------

def eV_to_J(ev: float) -> Joule:
    """eV → J."""
    return Joule(ev * ELECTRON_CHARGE)


def J_to_eV(joule: float) -> float:
    """J → eV."""
    return joule / ELECTRON_CHARGE


def keV_to_J(kev: float) -> Joule:
    """keV → J."""
    return Joule(kev * 1000.0 * ELECTRON_CHARGE)


def J_to_keV(joule: float) -> float:
    """J → keV."""
    return joule / (1000.0 * ELECTRON_CHARGE)


# ---------------------------------------------------------------------------
# Length conversions
# ---------------------------------------------------------------------------

def cm_to_m(cm: float) -> Meter:
    """cm → m."""
    return Meter(cm * 0.01)


def m_to_cm(m: float) -> float:
    """m → cm."""
    return m * 100.0


def um_to_m(um: float) -> Meter:
    """µm → m."""
    return Meter(um * 1.0e-6)


# ---------------------------------------------------------------------------
# Material quantities
# ---------------------------------------------------------------------------

def cm2_per_g_to_m2_per_kg(value: float) -> float:
    """Mass attenuation cm²/g → m²/kg."""
    return value * 0.1


def m2_per_kg_to_cm2_per_g(value: float) -> float:
    """Mass attenuation m²/kg → cm²/g."""
    return value * 10.0


def g_cm3_to_kg_m3(value: float) -> float:
    """Density g/cm³ → kg/m³."""
    return value * 1000.0


def g_mol_to_kg_mol(value: float) -> float:
    """Molar mass g/mol → kg/mol."""
    return value * 1.0e-3


# ---------------------------------------------------------------------------
# Angle conversions
# ---------------------------------------------------------------------------

def deg_to_rad(deg: float) -> Radian:
    """Degree → Radian."""
    return Radian(deg * (math.pi / 180.0))


def rad_to_deg(rad: float) -> float:
    """Radian → Degree."""
    return rad * (180.0 / math.pi)
