"""Core — geometry, photon physics and the X-ray generation/transport stages."""
