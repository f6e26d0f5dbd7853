"""EPMA X-ray generation and transport pipeline.

Push-based chain of Monte Carlo stages that records primary X-ray emission,
propagates it through a piecewise-homogeneous specimen (secondary
fluorescence, Compton scattering) and transports the resulting photons to a
fixed detection point.
"""

__version__ = "0.1.0"
