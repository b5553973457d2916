"""
Array Output - Frame Store

Keeps the simulation history as a list of frames. Frame 1 is the initial
state. A frame is either a single array (one-grid simulations) or a dict of
arrays keyed by grid name.

Delay, Lag and Frame sources read from this store. With store=False only
the latest frame is kept, and any rule that needs history is rejected
before the run starts.
"""

import numpy as np

from .errors import HistoryNotRetained


def _copy_frame(grids):
    if isinstance(grids, dict):
        return {key: np.array(A, copy=True) for key, A in grids.items()}
    return np.array(grids, copy=True)


def _zero_frame(init):
    if isinstance(init, dict):
        return {key: np.zeros_like(A) for key, A in init.items()}
    return np.zeros_like(init)


class ArrayOutput:
    """Store each step of the simulation in a list of arrays.

    Args:
        init: Initial grid array, or dict of grid arrays
        length: Total number of frames the run will produce (>= 1)
        store: Keep every frame (True) or only the latest one (False)
    """

    def __init__(self, init, length, store=True):
        if length < 1:
            raise ValueError(f"ArrayOutput length must be >= 1, got {length}")
        self.length = int(length)
        self.store = store
        self.frames = [_copy_frame(init)]
        if store:
            self.frames.extend(_zero_frame(init) for _ in range(self.length - 1))

    def is_stored(self):
        """True when past frames are retained for Delay/Lag lookups."""
        return self.store

    def frame_at(self, f):
        """Return frame number f (1-based)."""
        if not self.store:
            raise HistoryNotRetained(self)
        if not 1 <= f <= len(self.frames):
            raise IndexError(f"Frame {f} is outside the stored range 1..{len(self.frames)}")
        return self.frames[f - 1]

    def store_frame(self, f, grids):
        """Copy the grids into frame slot f. Called between steps only."""
        if not self.store:
            self.frames[0] = _copy_frame(grids)
            return
        if f > len(self.frames):
            raise IndexError(f"Frame {f} is past the output length {self.length}")
        self.frames[f - 1] = _copy_frame(grids)

    def __len__(self):
        return len(self.frames)
