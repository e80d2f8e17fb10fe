import pytest

from labcalc import EngineConfig, VolumeUnit


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def steps_config():
    return EngineConfig(show_calculation_steps=True)


@pytest.fixture
def ul_config():
    return EngineConfig(default_volume_unit=VolumeUnit.MICROLITER)
