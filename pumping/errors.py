"""
Error types raised while turning a language description into an oracle.

Runtime faults of a custom predicate are never raised; they travel back
inside MembershipResult.error.
"""

from typing import List, Optional


class OracleBuildError(Exception):
    """Base class for every failure that blocks oracle construction."""

    kind = "build"

    def __init__(self, errors: List[str], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message or "; ".join(self.errors))


class AutomatonValidationError(OracleBuildError):
    """Malformed automaton description. Carries the complete error list."""

    kind = "validation"


class PatternCompileError(OracleBuildError):
    """Regular expression that the pattern engine refuses to compile."""


class PredicateCompileError(OracleBuildError):
    """Custom predicate source that does not compile."""
