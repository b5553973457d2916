"""
Delay Materialization

Delay and Lag sources are relative to the current frame, so the frame they
point at changes every step. Working that out per cell would repeat the
same arithmetic for every cell of the grid. Instead, once per step and
before any cell runs, every Delay/Lag found anywhere in the rules is
replaced by a Frame holding the absolute frame number for this step.

The rules are walked through dataclass fields, tuples and lists. Numbers,
strings, callables, numpy arrays and dicts are treated as leaves and never
searched. The original rules are never modified; each step starts again
from the user's Delay/Lag values.
"""

import dataclasses
import numbers

import numpy as np
from loguru import logger

from .rulesets import Ruleset
from .sources import AbstractDelay, Frame

# Values never searched for delays
DELAY_IGNORE = (numbers.Number, str, bytes, np.ndarray, dict)


def _unwrap(rules):
    # A mutable Ruleset is walked through a frozen snapshot of its rules
    if isinstance(rules, Ruleset):
        return rules.snapshot()
    return rules


def _children(obj):
    """(name, value) pairs to search inside obj, or None for a leaf."""
    if isinstance(obj, DELAY_IGNORE):
        return None
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return [(f.name, getattr(obj, f.name)) for f in dataclasses.fields(obj) if f.init]
    if isinstance(obj, (tuple, list)):
        return list(enumerate(obj))
    return None


def find_sources(rules, kind):
    """All instances of `kind` found in `rules`, in depth-first field order."""
    found = []
    stack = [_unwrap(rules)]
    while stack:
        obj = stack.pop()
        if isinstance(obj, kind):
            found.append(obj)
            continue
        children = _children(obj)
        if children:
            stack.extend(value for _, value in reversed(children))
    return found


def get_delays(rules):
    """All Delay, Lag and Frame sources found in `rules`."""
    return find_sources(rules, AbstractDelay)


def needs_delay(rule):
    """True when a rule reads past frames from its own code."""
    return bool(getattr(rule, "needs_delay", False))


def has_delay(rules):
    """True when rules use delay sources or declare that they need history."""
    if get_delays(rules):
        return True
    rules = getattr(_unwrap(rules), "rules", rules)
    if not isinstance(rules, (tuple, list)):
        rules = (rules,)
    return any(needs_delay(rule) for rule in rules)


def to_frame(delay, data):
    """Replace a Delay or Lag with the Frame it points at for this step."""
    if isinstance(delay, Frame):
        return delay
    return Frame(delay.key, delay.frame(data))


def _rebuild(obj, data):
    if isinstance(obj, AbstractDelay):
        return to_frame(obj, data)
    children = _children(obj)
    if not children:
        return obj
    changes = {}
    for name, value in children:
        new = _rebuild(value, data)
        if new is not value:
            changes[name] = new
    if not changes:
        return obj
    if isinstance(obj, list):
        return [changes.get(i, value) for i, value in enumerate(obj)]
    if isinstance(obj, tuple):
        values = [changes.get(i, value) for i, value in enumerate(obj)]
        if hasattr(obj, "_make"):
            return obj._make(values)
        return tuple(values)
    return dataclasses.replace(obj, **changes)


def set_delays(rules, data):
    """Return `rules` with every delay replaced by a Frame for this step.

    Args:
        rules: A rule, a tuple/list of rules, a StaticRuleset or a Ruleset
        data: SimData with the current frame and timestep set

    Returns:
        The same object when there are no delays, otherwise a new one
        sharing every unchanged part with the input.
        A Ruleset is always returned as a StaticRuleset snapshot.

    Raises:
        MisalignedDelay: a Delay is not a whole number of timesteps
    """
    rules = _unwrap(rules)
    if not get_delays(rules):
        return rules
    new = _rebuild(rules, data)
    logger.opt(lazy=True).debug(
        "Frame {}: materialized delays {}",
        lambda: data.current_frame,
        lambda: [(d.key, d.frame_index) for d in get_delays(new)],
    )
    return new


materialize = set_delays
