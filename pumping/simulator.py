"""
Automaton Simulator
===================
Membership test for finite automata that may be nondeterministic and may
carry epsilon moves. The simulation tracks the set of simultaneously active
states instead of a single current state.

Time Complexity per string: O(|s| * |States| * max out-degree)
"""

from collections import deque
from typing import Dict, FrozenSet, Iterable, List

from .models import EPSILON, AutomatonSpec

Transitions = Dict[str, Dict[str, FrozenSet[str]]]


def epsilon_closure(states: Iterable[str], transitions: Transitions) -> FrozenSet[str]:
    """
    All states reachable from `states` using only epsilon moves, including
    the seed states. The visited set makes epsilon cycles harmless.
    """
    closure = set(states)
    queue = deque(closure)

    while queue:
        current = queue.popleft()
        for nxt in transitions.get(current, {}).get(EPSILON, ()):
            if nxt not in closure:
                closure.add(nxt)
                queue.append(nxt)

    return frozenset(closure)


def step(states: Iterable[str], symbol: str, transitions: Transitions) -> FrozenSet[str]:
    """States reachable by consuming exactly `symbol` from any state in `states`."""
    reached = set()
    for state in states:
        reached.update(transitions.get(state, {}).get(symbol, ()))
    return frozenset(reached)


def trace(spec: AutomatonSpec, s: str) -> List[FrozenSet[str]]:
    """
    Active state sets while reading s: the initial closure, then one entry per
    code point. Once the set is empty it stays empty.
    """
    current = epsilon_closure({spec.start}, spec.transitions)
    path = [current]
    for ch in s:
        current = epsilon_closure(step(current, ch, spec.transitions), spec.transitions)
        path.append(current)
    return path


def simulate(spec: AutomatonSpec, s: str) -> bool:
    """True iff some run of the automaton on s ends in an accepting state."""
    current = epsilon_closure({spec.start}, spec.transitions)
    for ch in s:
        current = epsilon_closure(step(current, ch, spec.transitions), spec.transitions)
    return not current.isdisjoint(spec.accepts)


def is_deterministic(spec: AutomatonSpec) -> bool:
    """Every (state, symbol) pair, symbols as written, has at most one target."""
    return spec.deterministic
