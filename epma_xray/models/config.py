"""Pipeline stage configuration models.

All lengths in m, densities in kg/m³ (core units).
"""

from dataclasses import dataclass

import numpy as np

from epma_xray.constants import (
    BOUNDARY_EPSILON_M,
    DEFAULT_MODEL_FRACTION,
    FLUORESCENCE_MIN_WEIGHT,
    MAX_MODEL_FRACTION,
    MAX_TRAVEL_M,
    MIN_MODEL_FRACTION,
    VACUUM_DENSITY,
)


def clamp_model_fraction(value: float) -> float:
    """Bound a model fraction to [0.01, 1.0]."""
    return float(np.clip(value, MIN_MODEL_FRACTION, MAX_MODEL_FRACTION))


@dataclass
class SecondaryConfig:
    """Parameters shared by the secondary (ray-marching) stages.

    Attributes:
        model_fraction: Share of upstream photons that are simulated; the
            survivors are scaled by 1/model_fraction. Clamped to [0.01, 1.0].
        max_travel: Distance from the origin beyond which a photon is
            discarded [m].
        vacuum_density: Regions below this density are non-absorbing [kg/m³].
        boundary_epsilon: Nudge applied past an interface [m].
    """
    model_fraction: float = DEFAULT_MODEL_FRACTION
    max_travel: float = MAX_TRAVEL_M
    vacuum_density: float = VACUUM_DENSITY
    boundary_epsilon: float = BOUNDARY_EPSILON_M

    def __post_init__(self) -> None:
        self.model_fraction = clamp_model_fraction(self.model_fraction)


@dataclass
class FluorescenceConfig(SecondaryConfig):
    """Secondary fluorescence parameters.

    Attributes:
        min_weight: Lines weaker than this fraction of the strongest line of
            the ionized shell are not emitted.
    """
    min_weight: float = FLUORESCENCE_MIN_WEIGHT


@dataclass
class ComptonConfig(SecondaryConfig):
    """Compton scattering stage parameters."""


@dataclass
class TransportConfig:
    """Transport-to-detector parameters.

    Attributes:
        cache_paths: Reuse the material path decomposition for events that
            share a generation point within one cycle.
    """
    cache_paths: bool = True
