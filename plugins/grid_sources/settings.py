"""
Simulation Settings

Run-wide configuration shared by the ruleset, the simulation data and the
driver. Validated once with pydantic and frozen afterwards.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SimSettings(BaseModel):
    """Timestep, start time and processor for a simulation run.

    `timestep` and `tspan_start` may be numbers, datetime/timedelta, or
    numpy datetime64/timedelta64, but must be from the same family as the
    times of any AuxSeries and the steps of any Delay.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    timestep: Any = Field(
        default=1,
        description="Fixed simulation step, e.g. 1, timedelta(days=1), np.timedelta64(1, 'M')",
    )
    tspan_start: Any = Field(
        default=1,
        description="Simulation time of frame 1",
    )
    proc: Literal["single", "threaded"] = Field(
        default="single",
        description="Run cells sequentially or in row bands on a thread pool",
    )
    nthreads: int = Field(default=4, ge=1, description="Worker threads for proc='threaded'")

    @field_validator("timestep")
    @classmethod
    def _positive_timestep(cls, v):
        if v is None:
            raise ValueError("timestep is required")
        if not v > v * 0:
            raise ValueError(f"timestep must be positive, got {v!r}")
        return v
