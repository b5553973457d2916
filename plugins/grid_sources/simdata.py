"""
Simulation Data

Live state handed to rules during a step: the grids as they were when the
step began, the auxiliary collection, the frame store, and the clock.

update_time() runs once per step before any cell is processed. It fixes
the current frame and time and caches the aux sample index and 2-D aux
view for every aux entry, so per-cell lookups never repeat the time
arithmetic. Between update_time() calls the object is read-only, which is
what lets worker threads share it without locking.
"""

import numpy as np
from loguru import logger

from .errors import HistoryNotRetained, UnknownAuxiliary, UnknownGrid
from .settings import SimSettings
from .timing import aux_frames, frame_time, has_time_axis

DEFAULT_KEY = "_default_"


class SimData:
    """Grids, aux arrays, frame store and clock for one simulation run.

    Args:
        init: Initial grid array, or dict of grid arrays (all the same shape)
        aux: Dict of auxiliary arrays (2-D ndarray or AuxSeries)
        output: Frame store (ArrayOutput), or None
        settings: SimSettings with the timestep and start time
    """

    def __init__(self, init, aux=None, output=None, settings=None):
        self.single_grid = not isinstance(init, dict)
        grids = {DEFAULT_KEY: init} if self.single_grid else dict(init)
        if not grids:
            raise ValueError("SimData needs at least one grid")
        self.grids = {key: np.asarray(A) for key, A in grids.items()}
        shapes = {A.shape for A in self.grids.values()}
        if len(shapes) != 1:
            raise ValueError(f"All grids must share one shape, got {sorted(shapes)}")
        self.aux_data = {
            key: A if has_time_axis(A) else np.asarray(A)
            for key, A in (aux or {}).items()
        }
        self.output = output
        self.settings = settings if settings is not None else SimSettings()

        self.current_frame = 1
        self.current_time = self.settings.tspan_start
        self.auxframes = {}
        self._aux_layers = {}
        self.update_time(1)

    # --- clock ---

    @property
    def timestep(self):
        return self.settings.timestep

    @property
    def tspan_start(self):
        return self.settings.tspan_start

    def update_time(self, frame):
        """Advance the clock to `frame` and cache the aux indices for it."""
        self.current_frame = frame
        self.current_time = frame_time(self.tspan_start, self.timestep, frame)
        self.auxframes = aux_frames(self.aux_data, self.current_time, self.timestep)
        layers = {}
        for key, A in self.aux_data.items():
            f = self.auxframes[key]
            layers[key] = A.data[:, :, f - 1] if has_time_axis(A) else A
        self._aux_layers = layers
        if self.auxframes:
            logger.debug(f"Frame {frame} t={self.current_time}: aux frames {self.auxframes}")
        return self

    # --- grids ---

    @property
    def gridsize(self):
        return next(iter(self.grids.values())).shape[:2]

    @property
    def keys(self):
        return tuple(self.grids)

    def grid(self, key):
        try:
            return self.grids[key]
        except KeyError:
            raise UnknownGrid(key, self.grids) from None

    def set_grids(self, grids):
        """Replace the live grids with the results of a finished step."""
        self.grids = dict(grids)

    def snapshot(self):
        """Grids in the shape the frame store expects."""
        if self.single_grid:
            return self.grids[DEFAULT_KEY]
        return self.grids

    # --- aux ---

    def aux(self, key):
        try:
            return self.aux_data[key]
        except KeyError:
            raise UnknownAuxiliary(key, self.aux_data) from None

    def auxframe(self, key):
        """1-based sample index of aux `key` for this step (None if untimed)."""
        self.aux(key)
        return self.auxframes.get(key)

    def aux_layer(self, key):
        try:
            return self._aux_layers[key]
        except KeyError:
            raise UnknownAuxiliary(key, self.aux_data) from None

    # --- history ---

    def frame_at(self, f):
        if self.output is None:
            raise HistoryNotRetained(None)
        return self.output.frame_at(f)
