"""
Temporal Alignment for Auxiliary Series

Maps the simulation clock onto the time axis of an auxiliary series.
External series are often shorter than the simulation (one year of monthly
climate data driving a multi-decade run), so the sample index is cycled
over the series length instead of running off the end.

Cycling is an approximation when the simulation timestep does not fit
evenly into the series period (weekly steps against a yearly series).
The index arithmetic below keeps that behavior as-is.

Times may be plain numbers, datetime/timedelta, or numpy datetime64 /
timedelta64 values, as long as the series and the simulation use the same
family.
"""

import math

import numpy as np
from loguru import logger

from .errors import AuxiliaryTimeMismatch

# Tolerance for float timestamps that land a rounding error short of a step
_FLOAT_EPS = 1e-9


def cyclic_index(i, length):
    """Cycle a 1-based index over a series of `length` samples.

    Args:
        i: Any integer index (may be zero, negative or past the end)
        length: Number of samples in the series (> 0)

    Returns:
        Index in [1, length]
    """
    if i > length:
        return (i + length - 1) % length + 1
    elif i <= 0:
        # Division truncates toward zero here, not floor
        return i + (-(-i // length) - 1) * -length
    else:
        return i


def _is_float(x):
    return isinstance(x, (float, np.floating))


def count_steps(span, step):
    """Number of whole `step` intervals contained in `span` (floored)."""
    if _is_float(span) or _is_float(step):
        return int(math.floor(span / step + _FLOAT_EPS))
    return int(span // step)


def same_step(a, b):
    """Equality of two intervals, tolerant to float rounding."""
    if _is_float(a) or _is_float(b):
        return math.isclose(a, b, rel_tol=_FLOAT_EPS, abs_tol=_FLOAT_EPS)
    return a == b


def frame_time(start, timestep, frame):
    """Simulation time of a 1-based frame number."""
    return start + timestep * (frame - 1)


class AuxSeries:
    """A 3-D auxiliary array with a time axis on its last dimension.

    Plain 2-D numpy arrays have no time axis and are used as-is every step.
    Anything that changes over time must be wrapped in an AuxSeries so the
    sample index for each step can be calculated.
    """

    def __init__(self, data, times, step=None):
        """
        Args:
            data: Array of shape (rows, cols, ntimes)
            times: Strictly increasing, regularly spaced sample times
            step: Sample interval (default: times[1] - times[0])
        """
        data = np.asarray(data)
        if data.ndim != 3:
            raise ValueError(
                f"AuxSeries data must be 3-D (rows, cols, time), got shape {data.shape}"
            )
        times = list(times)
        if len(times) != data.shape[2]:
            raise ValueError(
                f"AuxSeries has {len(times)} timestamps for {data.shape[2]} samples"
            )
        if step is None:
            if len(times) < 2:
                raise ValueError("AuxSeries with a single sample needs an explicit step")
            step = times[1] - times[0]
        for a, b in zip(times, times[1:]):
            if not b > a:
                raise ValueError(f"AuxSeries times must be strictly increasing: {a} then {b}")
            if not same_step(b - a, step):
                raise ValueError(
                    f"AuxSeries times must be regularly spaced by {step}: {a} then {b}"
                )
        self.data = data
        self.times = times
        self.step = step

    @property
    def first(self):
        return self.times[0]

    @property
    def shape(self):
        return self.data.shape

    @property
    def ndim(self):
        return self.data.ndim

    def __len__(self):
        return self.data.shape[2]

    def __repr__(self):
        return (f"AuxSeries(shape={self.data.shape}, first={self.first!r}, "
                f"step={self.step!r})")


def has_time_axis(A):
    return isinstance(A, AuxSeries)


def aux_frame(A, current_time, timestep):
    """Calculate the 1-based sample index of an aux array for this step.

    Args:
        A: Plain 2-D array or AuxSeries
        current_time: Simulation time of the current frame
        timestep: Fixed simulation timestep

    Returns:
        Index in [1, len(A)] for an AuxSeries, None for a plain array
    """
    if not has_time_axis(A):
        return None
    first = A.first
    if current_time >= first:
        i = count_steps(current_time - first, A.step) + 1
    else:
        # Count back from the sample before the first one
        back_start = first - timestep
        if back_start >= current_time:
            i = 1 - (count_steps(back_start - current_time, A.step) + 1)
        else:
            i = 1
    return cyclic_index(i, len(A))


def aux_frames(aux, current_time, timestep):
    """Calculate aux frame indices for a whole aux collection at once.

    Raises:
        AuxiliaryTimeMismatch: an AuxSeries uses a different time type
            from the simulation clock
    """
    frames = {}
    for key, A in aux.items():
        try:
            frames[key] = aux_frame(A, current_time, timestep)
        except TypeError:
            raise AuxiliaryTimeMismatch(key, A.first, current_time) from None
    return frames


def warn_uneven_cycle(key, A, timestep):
    """Log when a timestep does not tile the aux series period evenly."""
    if not has_time_axis(A):
        return False
    period = A.step * len(A)
    try:
        nsteps = period / timestep
    except TypeError:
        # e.g. month-based datetime64 against day-based steps
        logger.debug(f"Aux {key!r}: cannot compare period {period} with step {timestep}")
        return True
    nsteps = float(nsteps)
    if not same_step(nsteps, float(round(nsteps))):
        logger.debug(
            f"Aux {key!r}: timestep {timestep} does not divide series period "
            f"{period}; cycling will drift"
        )
        return True
    return False
