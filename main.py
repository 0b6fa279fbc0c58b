import argparse
import os
import sys
import time
from typing import Any, Dict, List, Optional, Sequence

from pumping import (
    AutomatonOracle,
    FaultPolicy,
    MembershipOracle,
    SearchStatus,
    build_oracle,
    enumerate_decompositions,
    search,
    trace,
)
from pumping.config import DEFAULT_FAULT_POLICY, DEFAULT_PUMP_COUNTS, PREDICATE_TIMEOUT_MS
from pumping.logging_config import get_logger, setup_logging

log = get_logger(__name__)


def _read_source(source: str) -> str:
    """Inline text, or the contents of the file it names."""
    if os.path.isfile(source):
        with open(source, "r", encoding="utf-8") as f:
            return f.read()
    return source


def load_description(kind: str, source: str) -> Dict[str, Any]:
    if kind == "regex":
        return {"kind": "regex", "pattern": source}
    if kind == "automaton":
        return {"kind": "automaton", "automaton": _read_source(source)}
    if kind == "custom":
        return {"kind": "custom", "source": _read_source(source)}
    raise ValueError(f"Unknown language kind: {kind}")


def parse_counts(raw: str) -> List[int]:
    return [int(part) for part in raw.split(",") if part.strip()]


class PumpingWorkbench:
    def __init__(
        self,
        pump_counts: Sequence[int] = DEFAULT_PUMP_COUNTS,
        fault_policy: str = DEFAULT_FAULT_POLICY,
        timeout_ms: int = PREDICATE_TIMEOUT_MS,
    ):
        self.pump_counts = list(pump_counts)
        self.fault_policy = FaultPolicy(fault_policy)
        self.timeout_ms = timeout_ms

    def show_trace(self, oracle: MembershipOracle, s: str) -> None:
        if not isinstance(oracle, AutomatonOracle):
            print("[Trace] Only available for automata.")
            return
        steps = trace(oracle.spec, s)
        print(f"[Trace] start: {sorted(steps[0])}")
        for ch, states in zip(s, steps[1:]):
            print(f"[Trace] {ch!r} -> {sorted(states)}")

    # --- MAIN LOOP ---
    def run(self, description: Dict[str, Any], s: str, p: Optional[int] = None,
            with_trace: bool = False) -> int:
        start_time = time.time()

        built = build_oracle(description, timeout_ms=self.timeout_ms)
        if not built.ok:
            print(f"\n--- INVALID LANGUAGE ({built.error_kind}) ---")
            for err in built.errors:
                print(f"  - {err}")
            return 2

        with built.oracle as oracle:
            meta = oracle.meta
            if p is None:
                p = meta.suggested_pumping_length()
            if p is None:
                print("A pumping length (-p) is required for regex and custom languages.")
                return 2

            print(f"[Language] kind={meta.kind.value}"
                  + (f" states={meta.state_count} deterministic={meta.deterministic}"
                     if meta.state_count is not None else ""))
            if with_trace:
                self.show_trace(oracle, s)

            membership = oracle.test(s)
            print(f"[Candidate] s={s!r} |s|={len(s)} in L: {membership.in_language}"
                  + (f" ({membership.error})" if membership.error else ""))
            if not membership.in_language:
                print("[Candidate] Warning: s is not in L, so pumping it proves nothing.")

            decomps = enumerate_decompositions(s, p)
            print(f"[Search] p={p}, {len(decomps)} decompositions, i in {self.pump_counts}")
            outcome = search(oracle, s, p, self.pump_counts, fault_policy=self.fault_policy)

        elapsed = time.time() - start_time
        if outcome.status is SearchStatus.contradiction:
            print(f"\n--- CONTRADICTION in {elapsed:.4f}s ---")
            print(outcome.proof.describe())
            print("Therefore the language is not regular (assuming p is a valid pumping length).")
        else:
            print(f"\n--- NO CONTRADICTION ({outcome.status.value}) in {elapsed:.4f}s ---")
            print(f"Tested {outcome.tested} pumped strings.")
            for fault in outcome.faults:
                print(f"  ! i={fault.i} {fault.pumped!r}: {fault.result.error}")
            print("This does not prove that the language is regular.")
        return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Pumping Lemma workbench for regular languages")
    parser.add_argument("kind", choices=["regex", "automaton", "custom"], help="How the language is described")
    parser.add_argument("source", help="Pattern, automaton JSON (inline or file) or predicate code (inline or file)")
    parser.add_argument("--string", "-s", required=True, help="Candidate string to pump")
    parser.add_argument("-p", type=int, default=None, help="Pumping length (defaults to the state count for automata)")
    parser.add_argument("--pump-counts", type=parse_counts, default=list(DEFAULT_PUMP_COUNTS),
                        help="Comma-separated pump counts to try (default 0,2,3)")
    parser.add_argument("--fault-policy", choices=[fp.value for fp in FaultPolicy],
                        default=DEFAULT_FAULT_POLICY, help="How predicate faults are treated")
    parser.add_argument("--timeout-ms", type=int, default=PREDICATE_TIMEOUT_MS,
                        help="Per-call budget for custom predicates")
    parser.add_argument("--trace", action="store_true", help="Print active state sets (automata only)")
    parser.add_argument("--log-level", default="WARNING", help="Console log level")
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level)
    log.info("cli_started", kind=args.kind, length=len(args.string), p=args.p)

    workbench = PumpingWorkbench(
        pump_counts=args.pump_counts,
        fault_policy=args.fault_policy,
        timeout_ms=args.timeout_ms,
    )
    try:
        description = load_description(args.kind, args.source)
        return workbench.run(description, args.string, args.p, with_trace=args.trace)
    except ValueError as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
