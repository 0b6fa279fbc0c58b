"""
Result Schemas for the Pumping Engine
Pydantic models for oracle answers, decompositions, proofs and search reports.
"""

from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Dict, Any
from enum import Enum


class OracleKind(str, Enum):
    """How the language was described."""
    regex = "regex"
    automaton = "automaton"
    custom = "custom"


class FaultPolicy(str, Enum):
    """What the contradiction search does with an errored membership test."""
    reject = "reject"   # count the fault as "not in language"
    skip = "skip"       # record the fault and keep searching
    abort = "abort"     # stop with an inconclusive outcome


class SearchStatus(str, Enum):
    contradiction = "contradiction"
    exhausted = "exhausted"
    inconclusive = "inconclusive"
    cancelled = "cancelled"


class MembershipResult(BaseModel):
    """
    Answer of a membership oracle.
    error is only set when a custom predicate faulted or timed out; in_language
    is then False, which means "could not decide", not "rejected".
    """
    in_language: bool
    error: Optional[str] = None

    @model_validator(mode="after")
    def errors_never_accept(self):
        if self.error is not None and self.in_language:
            raise ValueError("an errored membership result cannot accept")
        return self

    @property
    def inconclusive(self) -> bool:
        return self.error is not None


class OracleMeta(BaseModel):
    kind: OracleKind
    state_count: Optional[int] = None
    deterministic: Optional[bool] = None

    def suggested_pumping_length(self) -> Optional[int]:
        """State count for automata (at least 2); no natural bound otherwise."""
        if self.state_count is None:
            return None
        return max(2, self.state_count)


class Decomposition(BaseModel):
    """s = x·y·z with i_start = |x| and i_end = |x| + |y|, in code points."""
    x: str
    y: str
    z: str
    i_start: int = Field(..., ge=0)
    i_end: int = Field(..., ge=1)

    @model_validator(mode="after")
    def y_not_empty(self):
        if self.i_end <= self.i_start:
            raise ValueError("decomposition needs |y| > 0")
        return self

    @property
    def source(self) -> str:
        return self.x + self.y + self.z

    def label(self) -> str:
        """Short form used in listings: x[len] y[len] z[len]."""
        return f"x[{len(self.x)}] y[{len(self.y)}] z[{len(self.z)}]"


class PumpResult(BaseModel):
    i: int
    pumped: str
    result: MembershipResult


class Proof(BaseModel):
    """Falsifying witness: x·y^i·z is rejected although s was the candidate."""
    p: int
    s: str
    decomposition: Decomposition
    i: int
    pumped: str
    result: MembershipResult

    def describe(self) -> str:
        d = self.decomposition
        return (
            f"p = {self.p}, s = {self.s!r}: x = {d.x!r}, y = {d.y!r}, z = {d.z!r}; "
            f"i = {self.i} gives {self.pumped!r}, which is not in L"
        )


class SearchOutcome(BaseModel):
    """Full report of one contradiction search."""
    status: SearchStatus
    proof: Optional[Proof] = None
    tested: int = 0
    decompositions: int = 0
    faults: List[PumpResult] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Flat summary for CSV export."""
        return {
            "status": self.status.value,
            "tested": self.tested,
            "decompositions": self.decompositions,
            "faults": len(self.faults),
            "i": self.proof.i if self.proof else "",
            "x": self.proof.decomposition.x if self.proof else "",
            "y": self.proof.decomposition.y if self.proof else "",
            "z": self.proof.decomposition.z if self.proof else "",
            "pumped": self.proof.pumped if self.proof else "",
        }
