import os

os.environ.setdefault('SDL_VIDEODRIVER', 'dummy')
os.environ.setdefault('SDL_AUDIODRIVER', 'dummy')

import numpy as np
import pytest

from config import EngineSettings, SimulationConfig


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_config():
    def _make(**overrides):
        params = dict(
            emission_rate=100.0,
            slit_width=20.0,
            slit_distance=80.0,
            width=400,
            height=300,
        )
        params.update(overrides)
        return SimulationConfig(**params)

    return _make


class FixedRandom:
    """Stand-in generator returning a fixed sequence of uniform draws."""

    def __init__(self, *values, default=0.5):
        self.values = list(values)
        self.default = default

    def random(self):
        if self.values:
            return self.values.pop(0)
        return self.default


@pytest.fixture
def fixed_random():
    return FixedRandom
