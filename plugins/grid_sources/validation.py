"""
Pre-flight Validation

Checks run once before the first step so configuration mistakes surface
as clear errors instead of an index error halfway through a run:

- every Aux key exists, has a usable time axis, and matches the grid size
- every Grid/Delay/Lag/Frame key names a live grid
- rules that need past frames have an output that stores them
"""

from loguru import logger

from .delays import find_sources, has_delay
from .errors import (
    AuxiliarySizeMismatch, AuxiliaryTimeAxisMissing, HistoryNotRetained,
    UnknownAuxiliary, UnknownGrid,
)
from .sources import AbstractDelay, Aux, Grid
from .timing import has_time_axis, warn_uneven_cycle


def _keys(rules, kind):
    # Preserve first-seen order, drop repeats
    return list(dict.fromkeys(src.key for src in find_sources(rules, kind)))


def check_aux(data, rules):
    """Bounds check every aux array used by `rules` against the grid size."""
    gsize = tuple(data.gridsize)
    for key in _keys(rules, Aux):
        if key not in data.aux_data:
            raise UnknownAuxiliary(key, data.aux_data)
        A = data.aux_data[key]
        if not has_time_axis(A) and A.ndim != 2:
            if A.ndim == 3:
                raise AuxiliaryTimeAxisMissing(key, A.shape)
            raise AuxiliarySizeMismatch(key, A.shape, gsize)
        asize = tuple(A.shape[:2])
        if asize != gsize:
            raise AuxiliarySizeMismatch(key, asize, gsize)
        warn_uneven_cycle(key, A, data.timestep)
    return True


def check_grids(data, rules):
    """Every grid-backed source must name a grid of the simulation."""
    for key in _keys(rules, (Grid, AbstractDelay)):
        if key not in data.grids:
            raise UnknownGrid(key, data.grids)
    return True


def check_history(output, rules):
    """Rules with delays need an output that stores every frame."""
    if has_delay(rules) and (output is None or not output.is_stored()):
        raise HistoryNotRetained(output)
    return True


def validate(data, rules):
    """Run all pre-flight checks for `rules` against `data`.

    Raises:
        UnknownAuxiliary, AuxiliaryTimeAxisMissing, AuxiliarySizeMismatch,
        UnknownGrid, HistoryNotRetained
    """
    check_aux(data, rules)
    check_grids(data, rules)
    check_history(data.output, rules)
    logger.debug(f"Validated rules against grids {list(data.keys)} and aux {list(data.aux_data)}")
    return True
