"""
Cell Rules

Ready-made rules whose parameters accept parameter sources:

- Copy:        write a source's value into a grid (e.g. a lagged grid)
- Growth:      discrete logistic growth with sourced rate and capacity
- Life:        B/S life-like rules with a sourced birth probability
- HistoryMean: running mean over the last N frames, read in rule code

All rules are frozen dataclasses, so the delay materializer can walk and
rebuild them without knowing their types.
"""

from dataclasses import dataclass, field, replace
from functools import lru_cache

import numpy as np
from scipy.ndimage import convolve

from .rulesets import Rule
from .simdata import DEFAULT_KEY
from .sources import Frame, get

_MOORE = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.float64)
_VONNEUMANN = np.array([[0, 1, 0], [1, 0, 1], [0, 1, 0]], dtype=np.float64)


@lru_cache(maxsize=None)
def parse_rule(rule_str):
    """Parse B/S notation like 'B3/S23' into (birth_set, survive_set)."""
    rule_str = rule_str.upper().replace(" ", "")
    parts = rule_str.split("/")
    birth = set()
    survive = set()
    for part in parts:
        if part.startswith("B"):
            birth = {int(c) for c in part[1:]}
        elif part.startswith("S"):
            survive = {int(c) for c in part[1:]}
    return frozenset(birth), frozenset(survive)


@dataclass(frozen=True)
class Copy(Rule):
    """Set each cell to the value of `source` (a literal or any source)."""
    source: object = 0.0
    grid: str = DEFAULT_KEY

    def apply(self, data, value, I):
        return get(data, self.source, I)


@dataclass(frozen=True)
class Growth(Rule):
    """Logistic growth: n + rate * n * (1 - n / carrycap).

    Args:
        rate: Intrinsic growth rate per step (number or source)
        carrycap: Carrying capacity (number or source)
        grid: Grid to update
    """
    rate: object = 0.1
    carrycap: object = 1.0
    grid: str = DEFAULT_KEY

    def apply(self, data, value, I):
        rate = get(data, self.rate, I)
        carrycap = get(data, self.carrycap, I)
        if carrycap <= 0:
            return 0.0
        return max(0.0, value + rate * value * (1.0 - value / carrycap))


@dataclass(frozen=True)
class Life(Rule):
    """Life-like rule with B/S notation.

    Neighbor counts are taken once per step in prepare() with a
    convolution; cells outside the grid count as dead. A dead cell with a
    birth count is born with probability `birth_prob` (number or source,
    default certain), drawn from `rng`.
    """
    rule: str = "B3/S23"
    neighborhood: str = "moore"
    birth_prob: object = 1.0
    grid: str = DEFAULT_KEY
    seed: int = 0
    counts: object = field(default=None, compare=False, repr=False)
    draws: object = field(default=None, compare=False, repr=False)

    def prepare(self, data):
        cells = (data.grid(self.grid) > 0.5).astype(np.float64)
        kernel = _VONNEUMANN if self.neighborhood == "vonneumann" else _MOORE
        counts = np.rint(convolve(cells, kernel, mode="constant", cval=0.0)).astype(np.int32)
        rng = np.random.default_rng((self.seed, data.current_frame))
        return replace(self, counts=counts, draws=rng.random(cells.shape))

    def apply(self, data, value, I):
        birth, survive = parse_rule(self.rule)
        n = self.counts[I]
        if value > 0.5:
            return 1.0 if n in survive else 0.0
        if n in birth and self.draws[I] < get(data, self.birth_prob, I):
            return 1.0
        return 0.0


@dataclass(frozen=True)
class HistoryMean(Rule):
    """Mean of grid `source` over the last `nframes` stored frames.

    Reads history directly in rule code rather than through a Delay field,
    so it declares needs_delay.
    """
    source: str = DEFAULT_KEY
    nframes: int = 3
    grid: str = DEFAULT_KEY

    needs_delay = True

    def apply(self, data, value, I):
        first = max(1, data.current_frame - self.nframes)
        frames = range(first, data.current_frame)
        if not frames:
            return value
        total = 0.0
        for f in frames:
            total += get(data, Frame(self.source, f), I)
        return total / len(frames)
