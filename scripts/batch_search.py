#!/usr/bin/env python3
"""
Batch Contradiction Search

Runs the contradiction search over a suite of cases and writes a CSV report.
All telemetry emitted as structured JSON via structlog.

Case file: JSON list of objects
    {"name": "...", "description": {...}, "s": "...", "p": 4,
     "pump_counts": [0, 2, 3], "expect": "contradiction" | "none"}

Usage:
    python batch_search.py --input cases.json [--output results.csv] [--fault-policy skip]
"""

import sys
import csv
import json
import time
import argparse
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------
SCRIPT_DIR = Path(__file__).parent.resolve()
sys.path.insert(0, str(SCRIPT_DIR.parent))

from pumping import FaultPolicy, SearchStatus, build_oracle, search
from pumping.config import DEFAULT_PUMP_COUNTS

# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Status codes
# ---------------------------------------------------------------------------
class Status:
    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"


class SearchCase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Dict[str, Any]
    s: str
    p: Optional[int] = Field(None, ge=0)
    pump_counts: List[int] = Field(default_factory=lambda: list(DEFAULT_PUMP_COUNTS))
    expect: Optional[str] = None

    @field_validator("pump_counts")
    @classmethod
    def non_negative_counts(cls, v: List[int]) -> List[int]:
        if any(i < 0 for i in v):
            raise ValueError("pump counts must be >= 0")
        return v

    @field_validator("expect")
    @classmethod
    def known_expectation(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("contradiction", "none"):
            raise ValueError("expect must be 'contradiction' or 'none'")
        return v


def load_cases(filepath: str) -> List[SearchCase]:
    """Load and validate the case file. Raises ValueError on schema problems."""
    with open(filepath, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError("case file must contain a JSON list")

    cases = []
    for idx, item in enumerate(raw):
        try:
            cases.append(SearchCase.model_validate(item))
        except ValidationError as e:
            log.error("fatal_schema_mismatch", index=idx, error=str(e))
            raise ValueError(f"case {idx}: {e}")
    log.info("cases_loaded", path=filepath, count=len(cases))
    return cases


def run_case(case: SearchCase, fault_policy: FaultPolicy) -> Dict[str, Any]:
    start = time.time()
    row: Dict[str, Any] = {"name": case.name, "s": case.s, "expect": case.expect or ""}

    built = build_oracle(case.description)
    if not built.ok:
        log.warning("case_invalid_language", name=case.name, errors=built.errors)
        row.update(status=Status.ERROR, outcome="", error="; ".join(built.errors),
                   time_ms=round((time.time() - start) * 1000, 2))
        return row

    with built.oracle as oracle:
        p = case.p if case.p is not None else oracle.meta.suggested_pumping_length()
        if p is None:
            row.update(status=Status.ERROR, outcome="", error="p is required",
                       time_ms=round((time.time() - start) * 1000, 2))
            return row
        outcome = search(oracle, case.s, p, case.pump_counts, fault_policy=fault_policy)

    found = outcome.status is SearchStatus.contradiction
    if case.expect is None:
        status = Status.PASS
    elif (case.expect == "contradiction") == found:
        status = Status.PASS
    else:
        status = Status.FAIL

    row.update(outcome.to_dict())
    row.update(status=status, outcome=outcome.status.value, p=p, error="",
               time_ms=round((time.time() - start) * 1000, 2))
    log.info("case_complete", name=case.name, status=status, outcome=outcome.status.value,
             tested=outcome.tested, time_ms=row["time_ms"])
    return row


def run_all(cases: List[SearchCase], fault_policy: FaultPolicy) -> List[Dict[str, Any]]:
    log.info("batch_started", total=len(cases), policy=fault_policy.value)
    results = [run_case(case, fault_policy) for case in cases]
    passed = sum(1 for r in results if r["status"] == Status.PASS)
    log.info(
        "batch_summary",
        total=len(results),
        passed=passed,
        failed=sum(1 for r in results if r["status"] == Status.FAIL),
        errors=sum(1 for r in results if r["status"] == Status.ERROR),
        pass_rate=round(passed / len(results) * 100, 2) if results else 0.0,
    )
    return results


def export_csv(results: List[Dict[str, Any]], filepath: str) -> None:
    if not results:
        log.warning("export_skipped", reason="no results")
        return
    fieldnames = []
    for r in results:
        for key in r:
            if key not in fieldnames:
                fieldnames.append(key)
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(results)
    log.info("results_exported", path=filepath, count=len(results))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Batch contradiction search (structured telemetry)")
    parser.add_argument("--input", "-i", type=str, required=True, help="JSON case file (required)")
    parser.add_argument("--output", "-o", type=str, help="Output CSV file for results")
    parser.add_argument("--fault-policy", choices=[fp.value for fp in FaultPolicy], default="skip",
                        help="How predicate faults are treated")
    args = parser.parse_args(argv)

    log.info("batch_search_started", timestamp=datetime.now().isoformat(), input_file=args.input)
    try:
        cases = load_cases(args.input)
    except FileNotFoundError as exc:
        log.error("input_file_not_found", error=str(exc))
        return 2
    except ValueError as exc:
        log.error("fatal_error", error_type="schema_validation", error=str(exc))
        return 2

    results = run_all(cases, FaultPolicy(args.fault_policy))
    if args.output:
        export_csv(results, args.output)
    return 0 if all(r["status"] == Status.PASS for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
