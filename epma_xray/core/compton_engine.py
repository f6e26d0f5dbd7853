"""Compton scattering engine — Klein-Nishina, kinematics, cross-sections.

All energies in J, angles in radians, cross-sections in m² (core units).
"""

from __future__ import annotations

import math

from scipy import integrate

from epma_xray.constants import CLASSICAL_ELECTRON_RADIUS_M, ELECTRON_REST_MASS_J

# Below this a = E/m_e c² the analytic total loses precision to cancellation
_SMALL_A = 1e-3


class ComptonEngine:
    """Analytical Compton scattering calculations.

    Provides Compton kinematics, Klein-Nishina differential and total
    cross-sections, and the unit-normalised angular distribution used to
    weight scattered photons heading to the detector.
    """

    ELECTRON_MASS_J: float = ELECTRON_REST_MASS_J
    CLASSICAL_ELECTRON_RADIUS: float = CLASSICAL_ELECTRON_RADIUS_M  # r₀ [m]
    THOMSON_CROSS_SECTION: float = 8.0 * math.pi / 3.0 * CLASSICAL_ELECTRON_RADIUS_M ** 2  # σ_T [m²]

    def compton_shift(self, theta_rad: float, energy_J: float) -> float:
        """Fractional energy retained by a photon scattered through θ.

        E'/E₀ = 1 / [1 + (E₀/m_e c²)(1 - cos θ)]

        Args:
            theta_rad: Scattering angle [radian].
            energy_J: Incident photon energy [J].

        Returns:
            E'/E₀ in (0, 1].
        """
        alpha = energy_J / self.ELECTRON_MASS_J
        return 1.0 / (1.0 + alpha * (1.0 - math.cos(theta_rad)))

    def scattered_energy(self, E0_J: float, theta_rad: float) -> float:
        """Scattered photon energy after Compton scattering [J]."""
        return E0_J * self.compton_shift(theta_rad, E0_J)

    def recoil_electron_energy(self, E0_J: float, theta_rad: float) -> float:
        """Recoil electron kinetic energy T = E₀ - E' [J]."""
        return E0_J - self.scattered_energy(E0_J, theta_rad)

    def klein_nishina_differential(self, E0_J: float, theta_rad: float) -> float:
        """Klein-Nishina differential cross-section.

        dσ/dΩ = (r₀²/2) × (E'/E₀)² × [E'/E₀ + E₀/E' - sin²θ]

        Args:
            E0_J: Incident photon energy [J].
            theta_rad: Scattering angle [radian].

        Returns:
            dσ/dΩ [m²/sr/electron].
        """
        r0 = self.CLASSICAL_ELECTRON_RADIUS
        ratio = self.compton_shift(theta_rad, E0_J)
        sin2_theta = math.sin(theta_rad) ** 2
        return (r0 ** 2 / 2.0) * ratio ** 2 * (ratio + 1.0 / ratio - sin2_theta)

    def total_cross_section(self, E0_J: float) -> float:
        """Total Klein-Nishina cross-section (analytical).

        σ_KN = 2πr₀² { [(1+a)/a²][2(1+a)/(1+2a) - ln(1+2a)/a]
                        + ln(1+2a)/(2a) - (1+3a)/(1+2a)² }

        where a = E₀/m_e c²

        Args:
            E0_J: Incident photon energy [J].

        Returns:
            σ_KN [m²/electron].
        """
        r0 = self.CLASSICAL_ELECTRON_RADIUS
        a = E0_J / self.ELECTRON_MASS_J

        if a < _SMALL_A:
            # Expansion about the Thomson limit σ_T
            return self.THOMSON_CROSS_SECTION * (
                1.0 - 2.0 * a + 26.0 / 5.0 * a ** 2
                - 133.0 / 10.0 * a ** 3 + 1144.0 / 35.0 * a ** 4
            )

        term1 = ((1 + a) / a ** 2) * (
            2 * (1 + a) / (1 + 2 * a) - math.log(1 + 2 * a) / a
        )
        term2 = math.log(1 + 2 * a) / (2 * a)
        term3 = (1 + 3 * a) / (1 + 2 * a) ** 2

        return 2 * math.pi * r0 ** 2 * (term1 + term2 - term3)

    def compton_angular(self, energy_J: float, theta_rad: float) -> float:
        """Klein-Nishina angular density normalised over the full sphere.

        (dσ/dΩ) / σ_KN, so that ∫ 2π sin θ dθ over [0, π] equals 1.

        Args:
            energy_J: Incident photon energy [J].
            theta_rad: Scattering angle [radian].

        Returns:
            Probability per steradian [1/sr].
        """
        return (
            self.klein_nishina_differential(energy_J, theta_rad)
            / self.total_cross_section(energy_J)
        )

    def angular_integral(self, energy_J: float) -> float:
        """Numerical ∫ compton_angular dΩ; equals 1 up to quadrature error."""
        value, _ = integrate.quad(
            lambda th: 2.0 * math.pi * math.sin(th) * self.compton_angular(energy_J, th),
            0.0,
            math.pi,
        )
        return value
