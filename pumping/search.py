"""
Contradiction Search
Drives the decomposition enumerator and a membership oracle together to find
(x, y, z, i) such that x·y^i·z falls outside the language.

Finding nothing is a normal outcome. It never shows that the language is
regular, only that no witness exists among the tried decompositions and
pump counts.
"""

from typing import Iterable, Optional, Tuple, Union

import structlog

from .config import DEFAULT_FAULT_POLICY, DEFAULT_PUMP_COUNTS
from .decompose import enumerate_decompositions, pump
from .oracle import MembershipOracle
from .schemas import (
    Decomposition,
    FaultPolicy,
    Proof,
    PumpResult,
    SearchOutcome,
    SearchStatus,
)

log = structlog.get_logger()


def _normalise_counts(candidate_is: Iterable[int]) -> Tuple[int, ...]:
    counts = []
    for i in candidate_is:
        if i < 0:
            raise ValueError(f"pump count must be >= 0, got {i}")
        if i not in counts:
            counts.append(i)
    return tuple(counts)


def pump_test(oracle: MembershipOracle, decomposition: Decomposition, i: int) -> PumpResult:
    """Pump one decomposition i times and ask the oracle about the result."""
    pumped = pump(decomposition, i)
    return PumpResult(i=i, pumped=pumped, result=oracle.test(pumped))


def search(
    oracle: MembershipOracle,
    s: str,
    p: int,
    candidate_is: Optional[Iterable[int]] = None,
    *,
    fault_policy: Union[FaultPolicy, str, None] = None,
    cancel=None,
) -> SearchOutcome:
    """
    Try every decomposition (enumerator order) with every pump count (given
    order), one oracle call at a time. The first rejected string wins.

    Args:
        oracle: any membership oracle
        s: candidate string
        p: pumping length bound on |xy|
        candidate_is: pump counts to try, defaults to (0, 2, 3)
        fault_policy: how errored oracle answers are treated
        cancel: object with is_set(), checked before each oracle call
    """
    counts = _normalise_counts(DEFAULT_PUMP_COUNTS if candidate_is is None else candidate_is)
    policy = FaultPolicy(fault_policy or DEFAULT_FAULT_POLICY)
    decompositions = enumerate_decompositions(s, p)
    _log = log.bind(kind=oracle.meta.kind.value, p=p, length=len(s), policy=policy.value)

    tested = 0
    faults = []

    def outcome(status: SearchStatus, proof: Optional[Proof] = None) -> SearchOutcome:
        return SearchOutcome(
            status=status,
            proof=proof,
            tested=tested,
            decompositions=len(decompositions),
            faults=faults,
        )

    for d in decompositions:
        for i in counts:
            if cancel is not None and cancel.is_set():
                _log.info("search_cancelled", tested=tested)
                return outcome(SearchStatus.cancelled)

            attempt = pump_test(oracle, d, i)
            tested += 1

            if attempt.result.inconclusive and policy is not FaultPolicy.reject:
                faults.append(attempt)
                if policy is FaultPolicy.abort:
                    _log.warning("search_aborted", tested=tested, error=attempt.result.error)
                    return outcome(SearchStatus.inconclusive)
                continue

            if not attempt.result.in_language:
                proof = Proof(
                    p=p,
                    s=s,
                    decomposition=d,
                    i=i,
                    pumped=attempt.pumped,
                    result=attempt.result,
                )
                _log.info(
                    "contradiction_found",
                    tested=tested,
                    i_start=d.i_start,
                    i_end=d.i_end,
                    i=i,
                )
                return outcome(SearchStatus.contradiction, proof)

    if faults:
        _log.info("search_inconclusive", tested=tested, faults=len(faults))
        return outcome(SearchStatus.inconclusive)

    _log.info("search_exhausted", tested=tested)
    return outcome(SearchStatus.exhausted)


def find_contradiction(
    oracle: MembershipOracle,
    s: str,
    p: int,
    candidate_is: Optional[Iterable[int]] = None,
    *,
    fault_policy: Union[FaultPolicy, str, None] = None,
    cancel=None,
) -> Optional[Proof]:
    """The witness found by search(), or None."""
    return search(
        oracle, s, p, candidate_is, fault_policy=fault_policy, cancel=cancel
    ).proof
