"""Compton stage — scattering events and the transport-subscriber check."""

import math

import numpy as np
import pytest

from tests.helpers import FE_KL3, IRON, Collector, LayeredPhysics, StubPhysics

from epma_xray.core.compton_generation import ComptonXRayGeneration
from epma_xray.core.generation import EventKind
from epma_xray.core.units import keV_to_J
from epma_xray.core.xray_transport import XRayTransport
from epma_xray.models.config import ComptonConfig
from epma_xray.models.xray import ComptonXRay

DEPTH = np.array([0.0, 0.0, -5.0e-4])
DETECTOR = [0.0, 0.0, 0.05]


def _stage(specimen, source, physics, fraction=1.0, seed=3):
    return ComptonXRayGeneration(
        specimen, source, physics,
        config=ComptonConfig(model_fraction=fraction),
        rng=np.random.default_rng(seed),
    )


def _emit(source, n, intensity=1.0, position=DEPTH):
    def build(s):
        for _ in range(n):
            s.add_characteristic_xray(position, FE_KL3.energy, intensity, intensity, FE_KL3)
    source.emit(build)


class TestTransportSubscriberCheck:
    def test_no_events_without_transport(self, iron_specimen, source, physics):
        stage = _stage(iron_specimen, source, physics)
        col = Collector()
        stage.subscribe(col)
        _emit(source, 100)
        assert col.kinds == [EventKind.XRAY_GENERATION]
        assert col.events == []

    def test_events_with_transport(self, iron_specimen, source, physics):
        stage = _stage(iron_specimen, source, physics)
        transport = XRayTransport(iron_specimen, DETECTOR, stage, physics)
        assert stage.has_transport()
        col = Collector()
        stage.subscribe(col)
        _emit(source, 100)
        assert len(col.events) == 100
        assert transport.event_count == 100


class TestScatteringEvents:
    @pytest.fixture
    def setup(self, iron_specimen, source):
        # Scatter after ~1 µm; mac·ρ = 100 /m
        physics = StubPhysics(mac=100.0 / 7874.0, incoherent_mfp=1.0e-6)
        stage = _stage(iron_specimen, source, physics)
        XRayTransport(iron_specimen, DETECTOR, stage, physics)
        col = Collector()
        stage.subscribe(col)
        return stage, col

    def test_event_fields(self, setup, source):
        stage, col = setup
        _emit(source, 50, intensity=2.0)
        for cxr in col.events:
            assert isinstance(cxr, ComptonXRay)
            ray = cxr.position - DEPTH
            assert float(np.linalg.norm(ray)) > 0.0
            np.testing.assert_allclose(cxr.primary_direction, ray)
            assert cxr.energy == FE_KL3.energy
            assert cxr.generated == cxr.intensity
            np.testing.assert_array_equal(cxr.generation_position, DEPTH)

    def test_intensity_attenuated_along_path(self, setup, source):
        stage, col = setup
        _emit(source, 50, intensity=2.0)
        for cxr in col.events:
            dist = float(np.linalg.norm(cxr.position - DEPTH))
            assert cxr.intensity == pytest.approx(2.0 * math.exp(-100.0 * dist), rel=1e-9)
            assert cxr.intensity <= 2.0

    def test_thinning_scales_survivors(self, iron_specimen, source):
        physics = StubPhysics(mac=0.0, incoherent_mfp=1.0e-6)
        stage = _stage(iron_specimen, source, physics, fraction=0.25, seed=5)
        XRayTransport(iron_specimen, DETECTOR, stage, physics)
        col = Collector()
        stage.subscribe(col)
        for _ in range(400):
            _emit(source, 10)
        assert all(cxr.intensity == pytest.approx(4.0) for cxr in col.events)
        assert len(col.events) == pytest.approx(1000, rel=0.1)

    def test_escaping_photons_produce_nothing(self, iron_specimen, source, physics):
        physics = StubPhysics(incoherent_mfp=1.0e6)
        stage = _stage(iron_specimen, source, physics)
        XRayTransport(iron_specimen, DETECTOR, stage, physics)
        col = Collector()
        stage.subscribe(col)
        _emit(source, 50)
        assert col.events == []

    def test_lifecycle_forwarded(self, iron_specimen, source, physics):
        stage = _stage(iron_specimen, source, physics)
        col = Collector()
        stage.subscribe(col)
        source.handle_notification(iron_specimen, EventKind.TRAJECTORY_END)
        assert col.kinds == [EventKind.TRAJECTORY_END]


class TestMaximumTravel:
    SOURCE = np.array([0.0, 0.0, -5.0e-5])
    # Photons cross the foil unscattered and scatter on entering the slab
    PHOTO = {"Fe foil": 1.0e6, "Fe": 1.0e6}
    INCOHERENT = {"Fe foil": 1.0e3, "Fe": 1.0e-6}

    def _run(self, specimen, source, max_travel=None, n=400):
        physics = LayeredPhysics(self.PHOTO, self.INCOHERENT)
        config = ComptonConfig(model_fraction=1.0)
        if max_travel is not None:
            config.max_travel = max_travel
        stage = ComptonXRayGeneration(
            specimen, source, physics, config=config, rng=np.random.default_rng(6),
        )
        XRayTransport(specimen, DETECTOR, stage, physics)
        col = Collector()
        stage.subscribe(col)
        _emit(source, n, position=self.SOURCE)
        return col.events

    def test_default_bound_stops_photons_before_distant_slab(self, foil_and_slab, source):
        assert self._run(foil_and_slab, source) == []

    def test_longer_bound_reaches_slab(self, foil_and_slab, source):
        events = self._run(foil_and_slab, source, max_travel=1.0)
        assert events
        for cxr in events:
            assert foil_and_slab.find_region_containing(cxr.position).material == IRON

    def test_nothing_emitted_past_bound(self, foil_and_slab, source):
        bound = 0.03
        events = self._run(foil_and_slab, source, max_travel=bound)
        assert events
        for cxr in events:
            assert float(np.linalg.norm(cxr.position - self.SOURCE)) <= bound


class TestNonPositiveEnergy:
    def test_skipped_with_warning(self, iron_specimen, source, physics, caplog):
        stage = _stage(iron_specimen, source, physics)
        XRayTransport(iron_specimen, DETECTOR, stage, physics)
        col = Collector()
        stage.subscribe(col)

        def build(s):
            s.add_characteristic_xray(DEPTH, -keV_to_J(511.0) / 2.0, 1.0, 1.0, FE_KL3)
            s.add_characteristic_xray(DEPTH, 0.0, 1.0, 1.0, FE_KL3)

        source.emit(build)
        assert col.kinds == [EventKind.XRAY_GENERATION]
        assert col.events == []
        assert caplog.text.count("non-positive energy") == 2
