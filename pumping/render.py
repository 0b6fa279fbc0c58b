from typing import Dict, List, Tuple

from graphviz import Digraph

from .models import EPSILON, AutomatonSpec

EPSILON_LABEL = "ε"


def automaton_to_dot(spec: AutomatonSpec, title: str = "Automaton") -> str:
    """Graphviz DOT source for an automaton. Needs no Graphviz binary."""
    dot = Digraph(comment=title)
    dot.attr(rankdir="LR")

    # Start pointer
    dot.node("__start__", "", shape="point")
    dot.edge("__start__", spec.start)

    for state in spec.states:
        shape = "doublecircle" if state in spec.accepts else "circle"
        dot.node(state, state, shape=shape)

    # One edge per (src, dest), symbols joined
    grouped: Dict[Tuple[str, str], List[str]] = {}
    for src in spec.states:
        for symbol, targets in sorted(spec.transitions.get(src, {}).items()):
            label = EPSILON_LABEL if symbol == EPSILON else symbol
            for dest in sorted(targets):
                grouped.setdefault((src, dest), []).append(label)

    for (src, dest), labels in grouped.items():
        dot.edge(src, dest, label=",".join(labels))

    return dot.source
