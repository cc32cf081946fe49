import pytest

from mde_engine import EngineConfig, Solver
from mde_engine.geometry import Bounds


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def solver(config):
    return Solver(config)


@pytest.fixture
def square_bounds():
    return Bounds(-10.0, 10.0, 10.0, -10.0)
