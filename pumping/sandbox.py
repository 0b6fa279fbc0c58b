"""
Predicate Sandbox
Runs a user-supplied membership predicate in a separate worker process.

Each call races the worker's reply against a wall-clock budget. A worker
that misses the budget is terminated and replaced on the next call, so a
predicate that never returns cannot hang the caller.
"""

import ast
import builtins
import math
import multiprocessing
import re
import textwrap
import threading
from typing import Optional, Tuple

import structlog

from .config import PREDICATE_TIMEOUT_MS, WORKER_STARTUP_S
from .errors import PredicateCompileError
from .schemas import MembershipResult

log = structlog.get_logger()

ENTRY_POINT = "in_language"
TIMEOUT = "Timeout"
WORKER_EXITED = "Runtime error: predicate worker exited"

_SAFE_BUILTINS = (
    "abs", "all", "any", "bool", "chr", "dict", "divmod", "enumerate",
    "filter", "frozenset", "int", "isinstance", "len", "list", "map", "max",
    "min", "ord", "range", "reversed", "set", "sorted", "str", "sum",
    "tuple", "zip", "Exception", "ValueError", "TypeError", "KeyError",
    "IndexError",
)

_CTX = multiprocessing.get_context("spawn")


class PredicateHelpers:
    """Helpers passed to every predicate call. Both work on code points."""

    @staticmethod
    def len(x) -> int:
        return len(str(x))

    @staticmethod
    def count(s, ch) -> int:
        return sum(1 for c in str(s) if c == ch)


def _defines_entry_point(source: str) -> bool:
    try:
        tree = ast.parse(source)
    except SyntaxError:
        return False
    return any(
        isinstance(node, ast.FunctionDef) and node.name == ENTRY_POINT
        for node in tree.body
    )


def compile_predicate(source: str) -> str:
    """
    Turn predicate source into a program defining in_language(s, helpers).

    The source is either a complete module defining in_language or just its
    body, which gets wrapped into the function.

    Raises:
        PredicateCompileError: empty source or a syntax error.
    """
    if not source or not source.strip():
        raise PredicateCompileError(["Code compile error: predicate source is empty"])

    if _defines_entry_point(source):
        program, line_offset = source, 0
    else:
        body = textwrap.indent(textwrap.dedent(source), "    ")
        program, line_offset = f"def {ENTRY_POINT}(s, helpers):\n{body}\n", 1

    try:
        compile(program, "<predicate>", "exec")
    except SyntaxError as e:
        line = (e.lineno or 1) - line_offset
        raise PredicateCompileError([f"Code compile error: {e.msg} (line {max(line, 1)})"])
    except ValueError as e:
        raise PredicateCompileError([f"Code compile error: {e}"])
    return program


def _serve(conn, program: str) -> None:
    """Worker loop: compile once, then answer one string per request."""
    namespace = {
        "__builtins__": {name: getattr(builtins, name) for name in _SAFE_BUILTINS},
        "re": re,
        "math": math,
    }
    # Module-level predicate code runs after this, under the call budget
    conn.send(("spawned", None))
    try:
        exec(compile(program, "<predicate>", "exec"), namespace)
        fn = namespace[ENTRY_POINT]
    except Exception as e:
        conn.send(("fault", f"Runtime error: {e}"))
        conn.close()
        return

    conn.send(("ready", None))
    helpers = PredicateHelpers()
    while True:
        try:
            s = conn.recv()
        except EOFError:
            break
        try:
            verdict = bool(fn(s, helpers))
        except Exception as e:
            conn.send(("fault", f"Runtime error: {e}"))
        else:
            conn.send(("ok", verdict))


class PredicateSandbox:
    """
    Owns one worker process for one compiled predicate.

    call() is serialised by a lock. Spawning the interpreter is bounded by
    startup_s and is not charged to the per-call budget; running the
    predicate module afterwards is.
    """

    def __init__(
        self,
        program: str,
        timeout_ms: int = PREDICATE_TIMEOUT_MS,
        startup_s: float = WORKER_STARTUP_S,
    ):
        self.program = program
        self.timeout_ms = timeout_ms
        self.startup_s = startup_s
        self._lock = threading.Lock()
        self._process = None
        self._conn = None
        # Faults raised by the predicate module itself; respawning cannot fix them
        self._broken: Optional[str] = None

    def call(self, s: str) -> MembershipResult:
        with self._lock:
            if self._broken is not None:
                return MembershipResult(in_language=False, error=self._broken)

            if self._process is None or not self._process.is_alive():
                self._stop()
                fault = self._start()
                if fault is not None:
                    return MembershipResult(in_language=False, error=fault)

            try:
                self._conn.send(s)
                answered = self._conn.poll(self.timeout_ms / 1000.0)
            except (BrokenPipeError, EOFError, OSError):
                self._stop()
                return MembershipResult(in_language=False, error=WORKER_EXITED)

            if not answered:
                log.warning("predicate_timeout", timeout_ms=self.timeout_ms, length=len(s))
                self._stop()
                return MembershipResult(in_language=False, error=TIMEOUT)

            try:
                status, value = self._conn.recv()
            except (EOFError, OSError):
                self._stop()
                return MembershipResult(in_language=False, error=WORKER_EXITED)

        if status == "ok":
            return MembershipResult(in_language=value)
        log.debug("predicate_fault", error=value)
        return MembershipResult(in_language=False, error=value)

    def close(self) -> None:
        with self._lock:
            self._stop()

    def _start(self) -> Optional[str]:
        parent, child = _CTX.Pipe()
        process = _CTX.Process(
            target=_serve, args=(child, self.program), name="predicate-sandbox", daemon=True
        )
        process.start()
        child.close()
        self._process, self._conn = process, parent

        # Spawning the interpreter is bounded by startup_s
        status, detail = self._await(parent, self.startup_s)
        if status is None:
            log.error("predicate_worker_spawn_failed", startup_s=self.startup_s, error=detail)
            return detail

        # Running the predicate module is bounded by the call budget
        status, detail = self._await(parent, self.timeout_ms / 1000.0)
        if status is None:
            log.warning("predicate_module_failed", timeout_ms=self.timeout_ms, error=detail)
            return detail

        if status != "ready":
            log.info("predicate_worker_failed", error=detail)
            self._broken = detail
            self._stop()
            return detail

        log.debug("predicate_worker_started", pid=process.pid)
        return None

    def _await(self, conn, timeout_s: float) -> Tuple[Optional[str], Optional[str]]:
        """Next start-up message, or (None, fault) with the worker stopped."""
        if not conn.poll(timeout_s):
            self._stop()
            return None, TIMEOUT
        try:
            return conn.recv()
        except (EOFError, OSError):
            self._stop()
            return None, WORKER_EXITED

    def _stop(self) -> None:
        if self._process is not None:
            if self._process.is_alive():
                self._process.terminate()
                self._process.join(1)
                if self._process.is_alive():
                    self._process.kill()
                    self._process.join()
            self._process = None
        if self._conn is not None:
            self._conn.close()
            self._conn = None
