"""Shared fixtures — seeded generators, stub physics, specimens."""

from __future__ import annotations

import numpy as np
import pytest

from epma_xray.core.shapes import Box
from epma_xray.core.specimen import Specimen
from epma_xray.core.units import keV_to_J
from tests.helpers import (
    BLOCK_LOWER,
    BLOCK_UPPER,
    FOIL,
    FOIL_LOWER,
    FOIL_UPPER,
    IRON,
    SLAB_LOWER,
    SLAB_UPPER,
    ScriptedSource,
    StubPhysics,
)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def physics() -> StubPhysics:
    return StubPhysics()


@pytest.fixture
def vacuum_specimen() -> Specimen:
    return Specimen(beam_energy=keV_to_J(20.0))


@pytest.fixture
def iron_specimen() -> Specimen:
    specimen = Specimen(beam_energy=keV_to_J(20.0))
    specimen.add_region(IRON, Box(BLOCK_LOWER, BLOCK_UPPER))
    return specimen


@pytest.fixture
def source() -> ScriptedSource:
    return ScriptedSource()


@pytest.fixture
def foil_and_slab() -> Specimen:
    specimen = Specimen(beam_energy=keV_to_J(20.0))
    specimen.add_region(FOIL, Box(FOIL_LOWER, FOIL_UPPER))
    specimen.add_region(IRON, Box(SLAB_LOWER, SLAB_UPPER))
    return specimen
