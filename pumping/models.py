from types import MappingProxyType
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Tuple, Union

# Reserved epsilon symbol. No single code point equals the empty string.
EPSILON = ""
EPSILON_ALIASES = ("", "eps")


class AutomatonDescription(BaseModel):
    """Raw automaton as supplied by the user (JSON-like)."""
    states: List[str]
    start: str
    accepts: List[str]
    transitions: Dict[str, Dict[str, List[str]]] = Field(default_factory=dict)


class AutomatonSpec(BaseModel):
    """
    Validated finite automaton (DFA or NFA, optionally with epsilon moves).
    Built once by pumping.validator.parse_automaton and only read afterwards:
    transitions are read-only mappings at both levels.

    deterministic is decided on the keys as written, so "" and "eps" moves
    from the same state count as two symbols there.
    """
    model_config = ConfigDict(frozen=True)

    states: Tuple[str, ...]
    start: str
    accepts: FrozenSet[str]
    transitions: Dict[str, Dict[str, FrozenSet[str]]]
    deterministic: bool

    @field_validator("transitions", mode="after")
    @classmethod
    def read_only(cls, v):
        return MappingProxyType({src: MappingProxyType(dict(moves)) for src, moves in v.items()})

    @classmethod
    def from_description(cls, desc: AutomatonDescription) -> "AutomatonSpec":
        """Normalise epsilon keys and freeze target sets. Assumes desc is valid."""
        transitions: Dict[str, Dict[str, FrozenSet[str]]] = {}
        for src, moves in desc.transitions.items():
            merged: Dict[str, set] = {}
            for symbol, targets in moves.items():
                key = EPSILON if symbol in EPSILON_ALIASES else symbol
                merged.setdefault(key, set()).update(targets)
            transitions[src] = {sym: frozenset(t) for sym, t in merged.items()}

        deterministic = all(
            len(set(targets)) <= 1
            for moves in desc.transitions.values()
            for targets in moves.values()
        )

        return cls(
            states=tuple(desc.states),
            start=desc.start,
            accepts=frozenset(desc.accepts),
            transitions=transitions,
            deterministic=deterministic,
        )

    def targets(self, state: str, symbol: str) -> FrozenSet[str]:
        return self.transitions.get(state, {}).get(symbol, frozenset())

    @property
    def symbols(self) -> List[str]:
        """Every non-epsilon symbol used by some transition, sorted."""
        return sorted({
            sym for moves in self.transitions.values() for sym in moves if sym != EPSILON
        })


# --- Language descriptions (one per oracle variant) ---

class RegexDescription(BaseModel):
    kind: Literal["regex"] = "regex"
    pattern: str


class AutomatonLanguage(BaseModel):
    kind: Literal["automaton"] = "automaton"
    # Left raw so that parse_automaton can report every problem at once.
    automaton: Union[Dict[str, Any], str]


class CustomDescription(BaseModel):
    kind: Literal["custom"] = "custom"
    source: str


LanguageDescription = Annotated[
    Union[RegexDescription, AutomatonLanguage, CustomDescription],
    Field(discriminator="kind"),
]
