"""
Custom predicate tests.

These spawn real worker processes, so each test builds one oracle and closes
it when done.
"""

import time

import pytest
from pumping import CustomOracle, OracleKind, PredicateCompileError
from pumping.sandbox import TIMEOUT, PredicateHelpers, PredicateSandbox, compile_predicate


@pytest.fixture
def anbn(anbn_source):
    oracle = CustomOracle(anbn_source)
    yield oracle
    oracle.close()


# --- 1. Compilation ---
def test_body_is_wrapped():
    program = compile_predicate("return len(s) % 2 == 0")
    assert program.startswith("def in_language(s, helpers):")


def test_full_definition_is_kept():
    source = "def in_language(s, helpers):\n    return s == ''\n"
    assert compile_predicate(source) == source


def test_syntax_error_reports_line():
    with pytest.raises(PredicateCompileError) as exc:
        compile_predicate("x = 1\nreturn (")
    message = exc.value.errors[0]
    assert message.startswith("Code compile error:")
    assert "(line 2)" in message


def test_empty_source():
    with pytest.raises(PredicateCompileError):
        compile_predicate("")


# --- 2. Helpers ---
def test_helpers_count_code_points():
    assert PredicateHelpers.len("a😀b") == 3
    assert PredicateHelpers.count("😀a😀", "😀") == 2
    assert PredicateHelpers.count("", "a") == 0


# --- 3. Running predicates ---
def test_anbn_membership(anbn):
    assert anbn.meta.kind is OracleKind.custom
    assert anbn.test("aabb").in_language is True
    assert anbn.test("aab").in_language is False
    assert anbn.test("").in_language is False
    assert anbn.test("abab").error is None


def test_helpers_reach_the_predicate():
    oracle = CustomOracle("return helpers.count(s, '😀') == helpers.len(s)")
    try:
        assert oracle.test("😀😀").in_language is True
        assert oracle.test("😀a").in_language is False
    finally:
        oracle.close()


def test_full_definition_runs():
    oracle = CustomOracle("def in_language(s, helpers):\n    return math.floor(len(s) / 2) == 1\n")
    try:
        assert oracle.test("ab").in_language is True
        assert oracle.test("abcd").in_language is False
    finally:
        oracle.close()


def test_runtime_fault_is_reported():
    oracle = CustomOracle("return 1 // (len(s) - 2) > 0")
    try:
        result = oracle.test("ab")
        assert result.in_language is False
        assert result.inconclusive is True
        assert result.error.startswith("Runtime error:")
        # The worker survives a fault
        assert oracle.test("abc").in_language is True
    finally:
        oracle.close()


def test_restricted_builtins():
    oracle = CustomOracle("return open('/etc/passwd') is not None")
    try:
        result = oracle.test("a")
        assert result.error is not None
        assert result.error.startswith("Runtime error:")
    finally:
        oracle.close()


def test_non_terminating_predicate_times_out():
    oracle = CustomOracle("if s == 'loop':\n    while True:\n        pass\nreturn True", timeout_ms=300)
    try:
        # Warm up so worker start-up is out of the measurement
        assert oracle.test("ok").in_language is True

        started = time.monotonic()
        result = oracle.test("loop")
        elapsed = time.monotonic() - started

        assert result.in_language is False
        assert result.error == TIMEOUT
        assert elapsed < 5.0

        # A fresh worker answers the next call
        assert oracle.test("fine").in_language is True
    finally:
        oracle.close()


def test_truthy_results_are_coerced():
    oracle = CustomOracle("return s.count('a')")
    try:
        assert oracle.test("aa").in_language is True
        assert oracle.test("bb").in_language is False
    finally:
        oracle.close()


# --- 4. Worker start-up ---
def test_module_level_loop_is_held_to_the_budget():
    source = "def in_language(s, helpers):\n    return True\nwhile True:\n    pass\n"
    oracle = CustomOracle(source, timeout_ms=300)
    try:
        started = time.monotonic()
        result = oracle.test("a")
        elapsed = time.monotonic() - started

        assert result.error == TIMEOUT
        # Spawn time plus the 300 ms budget, far below the 10 s start-up bound
        assert elapsed < 5.0
    finally:
        oracle.close()


def test_slow_spawn_is_retried():
    sandbox = PredicateSandbox(compile_predicate("return True"), startup_s=0.001)
    try:
        assert sandbox.call("a").error == TIMEOUT
        sandbox.startup_s = 30
        result = sandbox.call("a")
        assert result.error is None
        assert result.in_language is True
    finally:
        sandbox.close()


def test_module_fault_is_cached():
    source = "def in_language(s, helpers):\n    return True\nraise ValueError('bad setup')\n"
    sandbox = PredicateSandbox(compile_predicate(source))
    try:
        first = sandbox.call("a")
        assert first.error == "Runtime error: bad setup"
        assert sandbox.call("b").error == first.error
        assert sandbox._process is None
    finally:
        sandbox.close()
