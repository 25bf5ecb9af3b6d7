import random
from types import SimpleNamespace

import pytest

from coalition import CoalitionManager
from combat import CombatResolver
from config import SimulationConfig
from events import EventLog
from reference_data import CountryProfile, StaticReferenceData
from registry import NationRegistry, PlayerSetup
from war import WarSystem
from world import SimulatedClock


def make_profile(code, name, orientation=0, **kwargs):
    """10M people, economy 60, calm (aggression 2) unless overridden."""
    values = dict(population=10_000_000, economy=60, authority=50, aggression=2)
    values.update(kwargs)
    return CountryProfile(code=code, name=name, orientation=orientation, **values)


# Six identical nations that differ only in political orientation
TEST_PROFILES = {
    "ALD": make_profile("ALD", "Aldoria", 0),
    "BRN": make_profile("BRN", "Brennia", 10),
    "CRV": make_profile("CRV", "Corvania", -10),
    "DRM": make_profile("DRM", "Dravmark", 20),
    "ESK": make_profile("ESK", "Eskara", -20),
    "FNR": make_profile("FNR", "Fenrisia", 80),
}


@pytest.fixture
def config(tmp_path):
    return SimulationConfig(num_steps=10, output_dir=tmp_path, seed=42)


@pytest.fixture
def make_registry(config):
    def build(seed_data=None, real_world=False):
        rng = random.Random(config.seed)
        profiles = None if real_world else TEST_PROFILES
        reference = StaticReferenceData(profiles, rng=rng)
        registry = NationRegistry(config, EventLog(), reference, rng=rng)
        registry.initialize(seed_data if seed_data is not None else reference.codes(), PlayerSetup())
        return registry
    return build


@pytest.fixture
def registry(make_registry):
    return make_registry()


@pytest.fixture
def systems(config, registry):
    """Registry plus war and coalition layers, wired the way World wires them."""
    combat = CombatResolver(config, seed=config.seed)
    clock = SimulatedClock(config.tick_seconds)
    wars = WarSystem(config, registry, registry.events, combat, clock=clock, rng=random.Random(1))
    coalitions = CoalitionManager(config, registry, registry.events, wars, rng=random.Random(2))
    return SimpleNamespace(
        config=config,
        registry=registry,
        events=registry.events,
        combat=combat,
        clock=clock,
        wars=wars,
        coalitions=coalitions,
        geometry=wars.geometry,
    )
