"""
Core modules for the Pumping Lemma workbench.
Centralized exports for all core functionality.
"""

from .models import (
    EPSILON,
    AutomatonDescription,
    AutomatonSpec,
    RegexDescription,
    AutomatonLanguage,
    CustomDescription,
    LanguageDescription,
)

from .schemas import (
    MembershipResult,
    OracleKind,
    OracleMeta,
    Decomposition,
    PumpResult,
    Proof,
    SearchOutcome,
    SearchStatus,
    FaultPolicy,
)

from .errors import (
    OracleBuildError,
    AutomatonValidationError,
    PatternCompileError,
    PredicateCompileError,
)

from .simulator import epsilon_closure, step, simulate, trace, is_deterministic
from .validator import parse_automaton

from .oracle import (
    MembershipOracle,
    RegexOracle,
    AutomatonOracle,
    CustomOracle,
    OracleBuild,
    build_oracle,
)

from .decompose import enumerate_decompositions, pump
from .search import search, find_contradiction, pump_test

__all__ = [
    # Models
    "EPSILON",
    "AutomatonDescription",
    "AutomatonSpec",
    "RegexDescription",
    "AutomatonLanguage",
    "CustomDescription",
    "LanguageDescription",
    # Schemas
    "MembershipResult",
    "OracleKind",
    "OracleMeta",
    "Decomposition",
    "PumpResult",
    "Proof",
    "SearchOutcome",
    "SearchStatus",
    "FaultPolicy",
    # Errors
    "OracleBuildError",
    "AutomatonValidationError",
    "PatternCompileError",
    "PredicateCompileError",
    # Simulator
    "epsilon_closure",
    "step",
    "simulate",
    "trace",
    "is_deterministic",
    "parse_automaton",
    # Oracles
    "MembershipOracle",
    "RegexOracle",
    "AutomatonOracle",
    "CustomOracle",
    "OracleBuild",
    "build_oracle",
    # Decomposition & search
    "enumerate_decompositions",
    "pump",
    "search",
    "find_contradiction",
    "pump_test",
]
