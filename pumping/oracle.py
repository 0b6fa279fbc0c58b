"""
Oracle Module
Membership oracles for the three ways a language can be described (regular
expression, finite automaton, custom predicate) and the factory that builds
them. The search code only ever sees the MembershipOracle contract.
"""

import abc
import asyncio
import re
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .config import PREDICATE_TIMEOUT_MS
from .errors import OracleBuildError, PatternCompileError
from .models import (
    AutomatonLanguage,
    AutomatonSpec,
    CustomDescription,
    LanguageDescription,
    RegexDescription,
)
from .sandbox import PredicateSandbox, compile_predicate
from .schemas import MembershipResult, OracleKind, OracleMeta
from .simulator import is_deterministic, simulate
from .validator import format_pydantic_errors, parse_automaton

log = structlog.get_logger()

_DESCRIPTION = TypeAdapter(LanguageDescription)


class MembershipOracle(abc.ABC):
    """Answers "is s in L?" however L was described."""

    @property
    @abc.abstractmethod
    def meta(self) -> OracleMeta:
        ...

    @abc.abstractmethod
    def test(self, s: str) -> MembershipResult:
        ...

    async def atest(self, s: str) -> MembershipResult:
        """Same as test(), without blocking the event loop."""
        return await asyncio.to_thread(self.test, s)

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class RegexOracle(MembershipOracle):
    """Full-string match of a Python regular expression."""

    def __init__(self, pattern: str):
        try:
            self._compiled = re.compile(pattern)
        except (re.error, OverflowError) as e:
            raise PatternCompileError([f"Invalid pattern: {e}"])
        self.pattern = pattern

    @property
    def meta(self) -> OracleMeta:
        return OracleMeta(kind=OracleKind.regex)

    def test(self, s: str) -> MembershipResult:
        return MembershipResult(in_language=self._compiled.fullmatch(s) is not None)


class AutomatonOracle(MembershipOracle):
    def __init__(self, automaton: Union[AutomatonSpec, Dict[str, Any], str]):
        if isinstance(automaton, AutomatonSpec):
            self.spec = automaton
        else:
            self.spec = parse_automaton(automaton)
        self._meta = OracleMeta(
            kind=OracleKind.automaton,
            state_count=len(self.spec.states),
            deterministic=is_deterministic(self.spec),
        )

    @property
    def meta(self) -> OracleMeta:
        return self._meta

    def test(self, s: str) -> MembershipResult:
        return MembershipResult(in_language=simulate(self.spec, s))


class CustomOracle(MembershipOracle):
    """
    User predicate in_language(s, helpers), run by a PredicateSandbox.
    Faults and timeouts come back as MembershipResult.error.
    """

    def __init__(self, source: str, timeout_ms: int = PREDICATE_TIMEOUT_MS):
        self.source = source
        self._sandbox = PredicateSandbox(compile_predicate(source), timeout_ms=timeout_ms)

    @property
    def meta(self) -> OracleMeta:
        return OracleMeta(kind=OracleKind.custom)

    def test(self, s: str) -> MembershipResult:
        return self._sandbox.call(s)

    def close(self) -> None:
        self._sandbox.close()


class OracleBuild(BaseModel):
    """Either a usable oracle or the complete list of reasons there is none."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    oracle: Optional[MembershipOracle] = None
    error_kind: Optional[str] = None
    errors: List[str] = Field(default_factory=list)


def build_oracle(
    description: Union[Dict[str, Any], RegexDescription, AutomatonLanguage, CustomDescription],
    timeout_ms: int = PREDICATE_TIMEOUT_MS,
) -> OracleBuild:
    """
    Build the oracle matching a language description.

    Never raises for bad descriptions: validation and build failures come
    back as OracleBuild(ok=False, ...).
    """
    if isinstance(description, dict):
        try:
            description = _DESCRIPTION.validate_python(description)
        except ValidationError as e:
            errors = format_pydantic_errors(e)
            log.info("oracle_build_failed", error_kind="validation", error_count=len(errors))
            return OracleBuild(ok=False, error_kind="validation", errors=errors)

    try:
        if isinstance(description, RegexDescription):
            oracle = RegexOracle(description.pattern)
        elif isinstance(description, AutomatonLanguage):
            oracle = AutomatonOracle(description.automaton)
        elif isinstance(description, CustomDescription):
            oracle = CustomOracle(description.source, timeout_ms=timeout_ms)
        else:
            raise TypeError(f"Unsupported language description: {type(description).__name__}")
    except OracleBuildError as e:
        log.info(
            "oracle_build_failed",
            kind=description.kind,
            error_kind=e.kind,
            error_count=len(e.errors),
        )
        return OracleBuild(ok=False, error_kind=e.kind, errors=e.errors)

    log.info("oracle_built", **oracle.meta.model_dump(mode="json", exclude_none=True))
    return OracleBuild(ok=True, oracle=oracle)
