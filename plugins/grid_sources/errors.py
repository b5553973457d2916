"""
Parameter Source Errors

Every error here signals a configuration problem found before (or while
preparing) a simulation step. None of them are retried.
"""


class ParameterSourceError(Exception):
    """Base class for all parameter source configuration errors."""


class UnknownGrid(ParameterSourceError, KeyError):
    """A Grid, Delay, Lag or Frame names a grid that is not in the simulation."""

    def __init__(self, key, available=()):
        self.key = key
        self.available = tuple(available)
        super().__init__(
            f"Grid {key!r} is not present in the simulation grids. "
            f"Available: {list(self.available)}"
        )

    def __str__(self):
        # KeyError would repr() the message otherwise
        return self.args[0]


class UnknownAuxiliary(ParameterSourceError, KeyError):
    """An Aux source names a key missing from the auxiliary collection."""

    def __init__(self, key, available=()):
        self.key = key
        self.available = tuple(available)
        super().__init__(
            f"Aux data {key!r} is not present in aux. "
            f"Available: {list(self.available)}"
        )

    def __str__(self):
        return self.args[0]


class AuxiliarySizeMismatch(ParameterSourceError, ValueError):
    """Spatial extent of an auxiliary array disagrees with the grid size."""

    def __init__(self, key, aux_shape, grid_shape):
        self.key = key
        self.aux_shape = tuple(aux_shape)
        self.grid_shape = tuple(grid_shape)
        super().__init__(
            f"Aux data {key!r} is size {self.aux_shape} "
            f"does not match grid size {self.grid_shape}"
        )


class AuxiliaryTimeAxisMissing(ParameterSourceError, ValueError):
    """A 3-D auxiliary array was supplied without its sample timestamps."""

    def __init__(self, key, shape):
        self.key = key
        self.shape = tuple(shape)
        super().__init__(
            f"Aux data {key!r} has shape {self.shape} but no time axis. "
            f"Wrap 3-D arrays in AuxSeries(data, times)"
        )


class AuxiliaryTimeMismatch(ParameterSourceError, TypeError):
    """An AuxSeries time axis cannot be compared with the simulation clock."""

    def __init__(self, key, first, current_time):
        self.key = key
        self.first = first
        self.current_time = current_time
        super().__init__(
            f"Aux data {key!r} starts at {first!r}, which cannot be aligned with "
            f"simulation time {current_time!r}. Use the same time type for "
            f"AuxSeries times and SimSettings tspan_start/timestep"
        )


class MisalignedDelay(ParameterSourceError, ValueError):
    """A duration-based Delay is not a whole number of simulation steps."""

    def __init__(self, key, steps, timestep):
        self.key = key
        self.steps = steps
        self.timestep = timestep
        super().__init__(
            f"Delay {key!r} size {steps} is not a multiple of "
            f"simulation step {timestep}"
        )


class HistoryNotRetained(ParameterSourceError, ValueError):
    """Rules need past frames but the output does not store them."""

    def __init__(self, output=None):
        self.output = output
        name = type(output).__name__ if output is not None else "Output"
        super().__init__(
            f"{name} does not store frames, which is needed for a Delay, "
            f"Lag or Frame. Use ArrayOutput(init, length, store=True)"
        )
