#!/usr/bin/env python3
"""
Tests for parameter source lookup.

Verifies:
1. Literals pass through for any coordinate
2. Grid, Aux and Frame sources read the right array
3. Tuple, split and CellIndex coordinates agree
"""

import numpy as np
import pytest

from grid_sources.errors import UnknownAuxiliary, UnknownGrid
from grid_sources.sources import Aux, CellIndex, Frame, Grid, Lag, get, getter, is_source
from grid_sources.timing import AuxSeries


@pytest.mark.parametrize("literal", [0.5, 3, -2.0, "text", None])
def test_literal_ignores_coordinate(make_data, literal):
    data = make_data()
    for I in [(0, 0), (3, 3), (1, 2)]:
        assert get(data, literal, I) == literal
        assert get(data, literal, *I) == literal


def test_literal_array_returned_unchanged(make_data):
    data = make_data()
    arr = np.ones(3)
    assert get(data, arr, (1, 1)) is arr


def test_grid_source_reads_named_grid(make_data, two_grids):
    data = make_data()
    assert get(data, Grid("b"), (1, 1)) == two_grids["b"][1, 1]
    assert get(data, Grid("a"), (1, 1)) == two_grids["a"][1, 1]


def test_coordinate_forms_agree(make_data):
    data = make_data()
    src = Grid("b")
    by_tuple = get(data, src, (2, 3))
    assert get(data, src, 2, 3) == by_tuple
    assert get(data, src, CellIndex(row=2, col=3)) == by_tuple
    assert get(data, src, CellIndex(2, 3)) == by_tuple


def test_unknown_grid(make_data):
    data = make_data()
    with pytest.raises(UnknownGrid) as err:
        get(data, Grid("missing"), (0, 0))
    assert "missing" in str(err.value)
    assert isinstance(err.value, KeyError)


def test_plain_aux_indexed_directly(make_data):
    rain = np.full((4, 4), 0.25)
    rain[0, 1] = 0.75
    data = make_data(aux={"rain": rain})
    assert get(data, Aux("rain"), (0, 1)) == 0.75
    assert get(data, Aux("rain"), (3, 3)) == 0.25
    assert data.auxframe("rain") is None


def test_timed_aux_uses_cached_frame(make_data):
    series = np.zeros((4, 4, 3))
    for k in range(3):
        series[:, :, k] = k + 1
    aux = {"temp": AuxSeries(series, times=[1, 2, 3])}
    data = make_data(aux=aux, frame=2)
    assert data.auxframe("temp") == 2
    assert get(data, Aux("temp"), (0, 0)) == 2.0
    data.update_time(4)
    assert data.auxframe("temp") == 1
    assert get(data, Aux("temp"), (3, 2)) == 1.0


def test_unknown_aux(make_data):
    data = make_data()
    with pytest.raises(UnknownAuxiliary):
        get(data, Aux("nope"), (0, 0))


def test_frame_reads_dict_frame_by_key(make_data, two_grids):
    data = make_data()
    data.output.store_frame(2, {"a": two_grids["a"] * 2, "b": two_grids["b"] * 3})
    assert get(data, Frame("a", 2), (1, 2)) == two_grids["a"][1, 2] * 2
    assert get(data, Frame("b", 2), (1, 2)) == two_grids["b"][1, 2] * 3
    assert get(data, Frame("a", 1), (1, 2)) == two_grids["a"][1, 2]


def test_frame_reads_single_array_frame():
    from grid_sources.outputs import ArrayOutput
    from grid_sources.simdata import DEFAULT_KEY, SimData

    init = np.arange(9.0).reshape(3, 3)
    output = ArrayOutput(init, 4)
    output.store_frame(2, init + 10)
    data = SimData(init, output=output)
    assert get(data, Frame(DEFAULT_KEY, 2), (0, 0)) == 10.0
    assert get(data, Frame(DEFAULT_KEY, 1), (2, 2)) == 8.0


def test_unmaterialized_lag_resolves_on_the_fly(make_data, two_grids):
    data = make_data(frame=3)
    data.output.store_frame(2, {"a": two_grids["a"] + 1, "b": two_grids["b"]})
    assert get(data, Lag("a", 1), (0, 0)) == two_grids["a"][0, 0] + 1
    assert get(data, Lag("a", 5), (0, 0)) == two_grids["a"][0, 0]


def test_getter_binds_dispatch(make_data, two_grids):
    data = make_data()
    assert getter(0.3)(data, (0, 0)) == 0.3
    assert getter(Grid("a"))(data, (2, 2)) == two_grids["a"][2, 2]


def test_sources_are_hashable_and_comparable():
    assert Grid("a") == Grid("a")
    assert Grid("a") != Grid("b")
    assert len({Aux("x"), Aux("x"), Lag("x", 2)}) == 2
    assert is_source(Lag("a", 1))
    assert not is_source(1.0)


def test_lag_needs_positive_frames():
    with pytest.raises(ValueError):
        Lag("a", 0)
    with pytest.raises(ValueError):
        Lag("a", 1.5)


def test_abstract_bases_cannot_be_instantiated():
    from grid_sources.rulesets import Rule
    from grid_sources.sources import AbstractDelay, ParameterSource

    for base in (ParameterSource, AbstractDelay, Rule):
        with pytest.raises(TypeError):
            base()
