"""
Rules and Rulesets

A Rule is an immutable description of how one grid's cells change each
step. Parameters are plain fields, and any of them may be a parameter
source (Grid, Aux, Delay, Lag) instead of a number:

    @dataclass(frozen=True)
    class Growth(Rule):
        rate: object = 0.1
        grid: str = "population"

        def apply(self, data, value, I):
            return value * (1 + get(data, self.rate, I))

Ruleset holds the rules for editing between steps and guards them with a
lock. StaticRuleset is the frozen snapshot handed to the step loop.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .settings import SimSettings


class Rule(ABC):
    """Base class for cell rules."""

    # Set True on rules that read past frames through rule code rather than
    # through Delay/Lag fields, so runs without stored frames fail up front.
    needs_delay = False

    def prepare(self, data):
        """Return a copy of this rule specialized for the current step.

        Called once per step, after delays are materialized and before any
        cell is processed. Default: no per-step work.
        """
        return self

    @abstractmethod
    def apply(self, data, value, I):
        """Return the next value of cell I, given its current `value`."""

    @property
    def target(self):
        """Key of the grid this rule writes."""
        return self.grid


def _as_rules(rules):
    if len(rules) == 1 and isinstance(rules[0], (tuple, list)):
        rules = rules[0]
    for rule in rules:
        if not isinstance(rule, Rule):
            raise TypeError(f"Expected a Rule, got {type(rule).__name__}")
    return tuple(rules)


class Ruleset:
    """Mutable container of rules, run in the order given.

    Usage:
        rs = Ruleset(Growth(rate=Aux("rain")), Copy(source=Lag("pop", 1)),
                     timestep=1)
        rs.set_rules((Growth(rate=0.2),))   # safe between steps
    """

    def __init__(self, *rules, settings=None, **kwargs):
        self._rules = _as_rules(rules)
        self.settings = settings if settings is not None else SimSettings(**kwargs)
        self._lock = threading.Lock()

    @property
    def rules(self):
        with self._lock:
            return self._rules

    def set_rules(self, rules):
        rules = _as_rules((rules,))
        with self._lock:
            self._rules = rules

    @property
    def timestep(self):
        return self.settings.timestep

    def snapshot(self):
        """Frozen copy for use during a step."""
        return StaticRuleset(self.rules, self.settings)

    def __len__(self):
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)


@dataclass(frozen=True)
class StaticRuleset:
    """Immutable rules + settings. Never shared with external editors."""
    rules: tuple
    settings: SimSettings

    @property
    def timestep(self):
        return self.settings.timestep

    def __len__(self):
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)
