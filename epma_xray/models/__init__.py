"""Models — atomic identifiers, materials, X-ray events and stage configuration."""

from epma_xray.models.atomic import AtomicShell, Element, XRayTransition
from epma_xray.models.config import ComptonConfig, FluorescenceConfig, TransportConfig
from epma_xray.models.material import VACUUM, Material
from epma_xray.models.xray import (
    BremsstrahlungXRay,
    CharacteristicXRay,
    ComptonXRay,
    XRay,
)

__all__ = [
    "AtomicShell",
    "BremsstrahlungXRay",
    "CharacteristicXRay",
    "ComptonConfig",
    "ComptonXRay",
    "Element",
    "FluorescenceConfig",
    "Material",
    "TransportConfig",
    "VACUUM",
    "XRay",
    "XRayTransition",
]
