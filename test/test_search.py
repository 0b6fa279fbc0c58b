import threading

import pytest
from pumping import (
    CustomOracle,
    Decomposition,
    FaultPolicy,
    MembershipOracle,
    MembershipResult,
    OracleKind,
    OracleMeta,
    RegexOracle,
    SearchStatus,
    find_contradiction,
    pump_test,
    search,
)


def anbn(s):
    half = len(s) // 2
    return len(s) % 2 == 0 and s == "a" * half + "b" * half and half > 0


class StubOracle(MembershipOracle):
    """In-process oracle driven by a plain function; records every query."""

    def __init__(self, fn, faulty=()):
        self.fn = fn
        self.faulty = set(faulty)
        self.queries = []

    @property
    def meta(self):
        return OracleMeta(kind=OracleKind.custom)

    def test(self, s):
        self.queries.append(s)
        if s in self.faulty:
            return MembershipResult(in_language=False, error="Runtime error: boom")
        return MembershipResult(in_language=self.fn(s))


class StopAfter:
    """Cancellation token that trips once n checks have passed."""

    def __init__(self, n):
        self.n = n

    def is_set(self):
        self.n -= 1
        return self.n < 0


# --- 1. Classic witnesses ---
def test_anbn_contradiction():
    proof = find_contradiction(StubOracle(anbn), "aabb", 2)
    assert proof is not None
    assert (proof.decomposition.x, proof.decomposition.y, proof.decomposition.z) == ("", "a", "abb")
    assert proof.i == 0
    assert proof.pumped == "abb"
    assert proof.result.in_language is False
    assert proof.p == 2 and proof.s == "aabb"


def test_anbn_through_custom_predicate(anbn_source):
    oracle = CustomOracle(anbn_source)
    try:
        outcome = search(oracle, "aabb", 2)
    finally:
        oracle.close()
    assert outcome.status is SearchStatus.contradiction
    assert outcome.proof.pumped == "abb"
    assert outcome.tested == 1


def test_regular_language_has_no_witness():
    outcome = search(RegexOracle("a*"), "aaaa", 4)
    assert outcome.status is SearchStatus.exhausted
    assert outcome.proof is None
    assert outcome.decompositions == 10
    assert outcome.tested == 30
    assert find_contradiction(RegexOracle("a*"), "aaaa", 4) is None


def test_search_order_is_deterministic():
    oracle = StubOracle(lambda s: True)
    search(oracle, "ab", 2, [0, 2])
    assert oracle.queries == ["b", "aab", "", "abab", "a", "abb"]


def test_duplicate_counts_are_tried_once():
    oracle = StubOracle(lambda s: True)
    outcome = search(oracle, "ab", 1, [2, 2, 0])
    assert oracle.queries == ["aab", "b"]
    assert outcome.tested == 2


def test_negative_count_is_an_argument_error():
    with pytest.raises(ValueError):
        search(StubOracle(anbn), "aabb", 2, [0, -1])


def test_nothing_to_search():
    outcome = search(StubOracle(anbn), "", 3)
    assert outcome.status is SearchStatus.exhausted
    assert outcome.tested == 0
    assert outcome.decompositions == 0


def test_describe_mentions_all_parts():
    proof = find_contradiction(StubOracle(anbn), "aabb", 2)
    text = proof.describe()
    assert "x = ''" in text
    assert "y = 'a'" in text
    assert "i = 0" in text


# --- 2. Fault policies ---
def test_skip_records_fault_and_continues():
    oracle = StubOracle(anbn, faulty={"abb"})
    outcome = search(oracle, "aabb", 2, fault_policy=FaultPolicy.skip)
    assert outcome.status is SearchStatus.contradiction
    assert outcome.proof.i == 2
    assert outcome.proof.pumped == "aaabb"
    assert [f.pumped for f in outcome.faults] == ["abb"]
    assert outcome.faults[0].result.error == "Runtime error: boom"


def test_default_policy_is_skip():
    outcome = search(StubOracle(anbn, faulty={"abb"}), "aabb", 2)
    assert outcome.proof.pumped == "aaabb"


def test_reject_counts_fault_as_witness():
    outcome = search(StubOracle(anbn, faulty={"abb"}), "aabb", 2, fault_policy="reject")
    assert outcome.status is SearchStatus.contradiction
    assert outcome.proof.pumped == "abb"
    assert outcome.proof.result.error == "Runtime error: boom"
    assert outcome.faults == []


def test_abort_stops_at_first_fault():
    outcome = search(StubOracle(anbn, faulty={"abb"}), "aabb", 2, fault_policy="abort")
    assert outcome.status is SearchStatus.inconclusive
    assert outcome.proof is None
    assert outcome.tested == 1
    assert len(outcome.faults) == 1


def test_only_faults_is_inconclusive():
    everything = {"b", "aab", "aaab", "", "abab", "ababab", "a", "abb", "abbb"}
    oracle = StubOracle(lambda s: True, faulty=everything)
    outcome = search(oracle, "ab", 2, [0, 2, 3])
    assert outcome.status is SearchStatus.inconclusive
    assert outcome.proof is None
    assert len(outcome.faults) == outcome.tested == 9


# --- 3. Cancellation ---
def test_cancel_before_start():
    cancel = threading.Event()
    cancel.set()
    oracle = StubOracle(anbn)
    outcome = search(oracle, "aabb", 2, cancel=cancel)
    assert outcome.status is SearchStatus.cancelled
    assert outcome.tested == 0
    assert oracle.queries == []


def test_cancel_midway():
    oracle = StubOracle(lambda s: True)
    outcome = search(oracle, "aaaa", 4, cancel=StopAfter(5))
    assert outcome.status is SearchStatus.cancelled
    assert outcome.tested == 5
    assert len(oracle.queries) == 5


# --- 4. Single pump ---
def test_pump_test():
    d = Decomposition(x="a", y="b", z="", i_start=1, i_end=2)
    attempt = pump_test(StubOracle(lambda s: s == "abb"), d, 2)
    assert attempt.pumped == "abb"
    assert attempt.result.in_language is True


def test_outcome_to_dict():
    outcome = search(StubOracle(anbn), "aabb", 2)
    row = outcome.to_dict()
    assert row["status"] == "contradiction"
    assert row["y"] == "a"
    assert row["pumped"] == "abb"
    assert row["faults"] == 0
