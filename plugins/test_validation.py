"""
Tests for pre-flight validation.

Every failure must surface from run() before any frame is computed.
"""

import numpy as np
import pytest

from grid_sources.errors import (
    AuxiliarySizeMismatch, AuxiliaryTimeAxisMissing, HistoryNotRetained,
    ParameterSourceError, UnknownAuxiliary, UnknownGrid,
)
from grid_sources.rules import Copy, Growth, HistoryMean
from grid_sources.rulesets import Ruleset
from grid_sources.simulator import GridSimulator
from grid_sources.sources import Aux, Delay, Frame, Grid, Lag
from grid_sources.timing import AuxSeries
from grid_sources.validation import check_aux, check_grids, check_history, validate


def _grids():
    return {"a": np.ones((4, 4)), "b": np.zeros((4, 4))}


def test_aux_shape_mismatch_stops_before_first_step():
    sim = GridSimulator(_grids(), Ruleset(Growth(rate=Aux("rain"), grid="a")), nframes=5,
                        aux={"rain": np.zeros((3, 3))})
    with pytest.raises(AuxiliarySizeMismatch) as err:
        sim.run()
    assert err.value.aux_shape == (3, 3)
    assert err.value.grid_shape == (4, 4)
    assert "(3, 3)" in str(err.value) and "(4, 4)" in str(err.value)
    assert sim.data.current_frame == 1
    assert np.all(sim.frames[1]["a"] == 0), "no frame should have been computed"


def test_timed_aux_checks_spatial_dims_only(make_data):
    series = AuxSeries(np.zeros((4, 4, 6)), times=range(6))
    data = make_data(aux={"temp": series})
    assert check_aux(data, (Growth(rate=Aux("temp"), grid="a"),))

    bad = AuxSeries(np.zeros((4, 5, 6)), times=range(6))
    data = make_data(aux={"temp": bad})
    with pytest.raises(AuxiliarySizeMismatch):
        check_aux(data, (Growth(rate=Aux("temp"), grid="a"),))


def test_missing_aux(make_data):
    data = make_data(aux={"rain": np.zeros((4, 4))})
    with pytest.raises(UnknownAuxiliary) as err:
        check_aux(data, (Copy(source=Aux("snow"), grid="a"),))
    assert "snow" in str(err.value)
    assert isinstance(err.value, ParameterSourceError)


def test_bare_3d_aux_needs_time_axis(make_data):
    data = make_data(aux={"temp": np.zeros((4, 4, 3))})
    with pytest.raises(AuxiliaryTimeAxisMissing):
        check_aux(data, (Copy(source=Aux("temp"), grid="a"),))


def test_unused_aux_is_not_checked(make_data):
    data = make_data(aux={"odd": np.zeros((2, 2))})
    assert check_aux(data, (Copy(source=1.0, grid="a"),))


def test_unknown_grid_keys(make_data):
    data = make_data()
    assert check_grids(data, (Copy(source=Grid("b"), grid="a"),))
    for source in [Grid("c"), Lag("c", 1), Delay("c", 1), Frame("c", 1)]:
        with pytest.raises(UnknownGrid):
            check_grids(data, (Copy(source=source, grid="a"),))


@pytest.mark.parametrize("rule", [
    Copy(source=Lag("a", 1), grid="b"),
    Copy(source=Delay("a", 2), grid="b"),
    Copy(source=Frame("a", 1), grid="b"),
    HistoryMean(source="a", grid="b"),
])
def test_history_required(rule):
    sim = GridSimulator(_grids(), Ruleset(rule), nframes=4, store=False)
    with pytest.raises(HistoryNotRetained):
        sim.run()
    assert check_history(GridSimulator(_grids(), Ruleset(rule), nframes=4).output, (rule,))


def test_history_not_needed_without_delays():
    sim = GridSimulator(_grids(), Ruleset(Copy(source=Grid("a"), grid="b")), nframes=3, store=False)
    output = sim.run()
    assert len(output.frames) == 1
    assert np.all(output.frames[0]["b"] == 1.0)


def test_history_without_output(two_grids):
    from grid_sources.simdata import SimData
    data = SimData(two_grids)
    with pytest.raises(HistoryNotRetained):
        validate(data, (Copy(source=Lag("a", 1), grid="b"),))
    assert validate(data, (Copy(source=Grid("a"), grid="b"),))


def test_validate_accepts_mutable_ruleset(make_data):
    data = make_data(store=False, aux={"rain": np.zeros((3, 3))})
    with pytest.raises(HistoryNotRetained):
        validate(data, Ruleset(Copy(source=Lag("a", 1), grid="b")))
    with pytest.raises(AuxiliarySizeMismatch):
        validate(data, Ruleset(Growth(rate=Aux("rain"), grid="a")))
    with pytest.raises(UnknownGrid):
        validate(data, Ruleset(Copy(source=Grid("c"), grid="a")))
    assert validate(data, Ruleset(Copy(source=Grid("b"), grid="a")))


def test_aux_time_type_must_match_clock():
    from datetime import datetime, timedelta

    from grid_sources.errors import AuxiliaryTimeMismatch
    from grid_sources.simdata import SimData

    first = datetime(2021, 1, 1)
    series = AuxSeries(np.zeros((4, 4, 3)), times=[first + timedelta(days=k) for k in range(3)])
    with pytest.raises(AuxiliaryTimeMismatch) as err:
        SimData(_grids(), aux={"temp": series})
    assert "'temp'" in str(err.value)
    assert isinstance(err.value, ParameterSourceError)
