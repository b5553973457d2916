import numpy as np
import pytest
from loguru import logger

from grid_sources.outputs import ArrayOutput
from grid_sources.settings import SimSettings
from grid_sources.simdata import SimData


@pytest.fixture(autouse=True)
def silence_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def two_grids():
    """Two 4x4 grids with distinct values in every cell."""
    a = np.arange(16, dtype=np.float64).reshape(4, 4)
    b = 100.0 + np.arange(16, dtype=np.float64).reshape(4, 4)
    return {"a": a, "b": b}


@pytest.fixture
def make_data(two_grids):
    """Build SimData over the two grids with a stored 20-frame output."""
    def _make(aux=None, timestep=1, tspan_start=1, store=True, frame=1):
        output = ArrayOutput(two_grids, 20, store=store)
        settings = SimSettings(timestep=timestep, tspan_start=tspan_start)
        data = SimData(two_grids, aux=aux, output=output, settings=settings)
        return data.update_time(frame)
    return _make
