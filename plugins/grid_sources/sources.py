"""
Parameter Sources

Rule parameters can come from somewhere other than a fixed number:

- Grid(key):   another live grid of the simulation
- Aux(key):    an auxiliary array, optionally time-indexed (see timing.py)
- Delay(key, steps): a grid as it was `steps` of simulation time ago
- Lag(key, n): a grid as it was n frames ago
- Frame(key, f): a grid at absolute frame f (what Delay/Lag become each step)

Any other value is a literal and is returned unchanged.

Rules read a parameter with:

    get(data, self.rate, I)

where I is a (row, col) tuple, CellIndex, or the row and col passed
separately. Each source type carries its own `get` method, so dispatch is
a single attribute lookup rather than a chain of type checks. Nothing here
writes to shared state, so lookups are safe from many threads at once.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple

from .errors import MisalignedDelay
from .timing import same_step


class CellIndex(NamedTuple):
    """Structured (row, col) coordinate. Interchangeable with a plain tuple."""
    row: int
    col: int


class ParameterSource(ABC):
    """Base class for values that must be looked up in the simulation data."""

    @abstractmethod
    def get(self, data, I):
        """Return the value for cell index tuple I."""


def _index(I):
    if len(I) == 1:
        I = I[0]
        return tuple(I) if isinstance(I, tuple) else (I,)
    return I


def get(data, source, *I):
    """Resolve `source` at cell index I.

    Literals are returned as-is without touching the index.
    """
    if not isinstance(source, ParameterSource):
        return source
    return source.get(data, _index(I))


def getter(source):
    """Bind the lookup for `source` once, returning f(data, I).

    Useful in rules that want the source type fixed at construction time.
    Delay and Lag sources are still replaced each step, so rules holding
    them should call `get` on the materialized rule instead.
    """
    if isinstance(source, ParameterSource):
        return source.get
    return lambda data, I: source


def is_source(value):
    return isinstance(value, ParameterSource)


# ---------------------------------------------------------------------------
# Grid and Aux
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Grid(ParameterSource):
    """Use the live grid `key` as a parameter source.

        SomeRule(rate=Grid("rainfall"))
    """
    key: str

    def get(self, data, I):
        return data.grid(self.key)[I]


@dataclass(frozen=True)
class Aux(ParameterSource):
    """Use the auxiliary array `key` as a parameter source.

    Plain 2-D arrays are indexed directly. AuxSeries arrays are indexed at
    the sample chosen for the current step, which SimData calculates once
    per step and caches as a 2-D view.
    """
    key: str

    def get(self, data, I):
        return data.aux_layer(self.key)[I]


# ---------------------------------------------------------------------------
# Delays
# ---------------------------------------------------------------------------

class AbstractDelay(ParameterSource):
    """Sources that read a grid from a previous frame.

    The simulation output must store frames for these to work.
    """

    @abstractmethod
    def frame(self, data):
        """Absolute 1-based frame number to read for the current step."""

    def get(self, data, I):
        return _get_delay(data.frame_at(self.frame(data)), self.key, I)


def _get_delay(frame, key, I):
    # Stored frames are a single array or a dict of arrays by grid key
    if isinstance(frame, dict):
        frame = frame[key]
    return frame[I]


@dataclass(frozen=True)
class Delay(AbstractDelay):
    """Read grid `key` as it was `steps` of simulation time ago.

    `steps` must be a whole multiple of the simulation timestep, in the same
    units (a number, timedelta, or numpy timedelta64). Delays reaching back
    before the start of the run use the first frame.

        SomeRule(pressure=Delay("population", np.timedelta64(3, "M")))
    """
    key: str
    steps: object

    def __post_init__(self):
        if not self.steps > self.steps * 0:
            raise ValueError(f"Delay {self.key!r} needs a positive duration, got {self.steps!r}")

    def nsteps(self, timestep):
        """Delay length in whole simulation steps."""
        nsteps = self.steps / timestep
        isteps = int(round(float(nsteps)))
        if isteps < 1 or not same_step(float(nsteps), float(isteps)):
            raise MisalignedDelay(self.key, self.steps, timestep)
        return isteps

    def frame(self, data):
        return max(data.current_frame - self.nsteps(data.timestep), 1)


@dataclass(frozen=True)
class Lag(AbstractDelay):
    """Read grid `key` as it was `nframes` frames ago (1 or more).

    Lags reaching back before the start of the run use the first frame.
    """
    key: str
    nframes: int

    def __post_init__(self):
        if int(self.nframes) != self.nframes or self.nframes < 1:
            raise ValueError(f"Lag {self.key!r} needs nframes >= 1, got {self.nframes!r}")

    def frame(self, data):
        return max(1, data.current_frame - self.nframes)


@dataclass(frozen=True)
class Frame(AbstractDelay):
    """Read grid `key` at an exact frame number.

    Produced from Delay and Lag once per step. Can be used directly in rule
    code, but should not be set as a rule parameter.
    """
    key: str
    frame_index: int

    def frame(self, data):
        return self.frame_index

    def get(self, data, I):
        return _get_delay(data.frame_at(self.frame_index), self.key, I)
