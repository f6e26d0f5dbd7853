"""Physical constants and pipeline defaults.

All values are in SI (core units): J, m, kg, s.
"""

import math

# Physical constants (CODATA 2018)
ELECTRON_CHARGE = 1.602176634e-19  # C
ELECTRON_REST_MASS_J = 8.1871057769e-14  # m_e c^2 [J]
AVOGADRO_CONSTANT = 6.02214076e23  # mol⁻¹
BOHR_RADIUS_M = 5.29177210903e-11  # a₀ [m]
RYDBERG_ENERGY_J = 13.605693122994 * ELECTRON_CHARGE  # Ry [J]
CLASSICAL_ELECTRON_RADIUS_M = 2.8179403262e-15  # r₀ [m]

# Notification identifier of a fresh photon batch
XRAY_GENERATION_ID = 200

# Secondary generation defaults
DEFAULT_MODEL_FRACTION = 0.1
MIN_MODEL_FRACTION = 0.01
MAX_MODEL_FRACTION = 1.0
MAX_TRAVEL_M = 0.01  # photons further than 1 cm from their origin are discarded
FLUORESCENCE_MIN_WEIGHT = 0.01  # fraction of the strongest line in a shell
CHARACTERISTIC_MIN_WEIGHT = 0.001
VACUUM_DENSITY = 1.0e-6  # kg/m³, below this a region is treated as empty
BOUNDARY_EPSILON_M = 1.0e-12  # nudge past an interface
VACUUM_STEP_M = 1.0e6  # step length used to cross near-vacuum regions

# Region stepping
SMALL_DISP_M = 1.0e-15  # probe distance beyond a boundary
MATERIAL_MAP_TOLERANCE_M = 1.0e-7

# Default specimen chamber
DEFAULT_CHAMBER_RADIUS_M = 0.1

# Detector-side normalisation (per msr)
I_NORM = 1.0e-6 / (4.0 * math.pi)
