import json
from typing import Any, List, Union

import structlog
from pydantic import ValidationError

from .errors import AutomatonValidationError
from .models import EPSILON_ALIASES, AutomatonDescription, AutomatonSpec

log = structlog.get_logger()


def format_pydantic_errors(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "input"
        messages.append(f"{loc}: {err['msg']}")
    return messages


def _dedupe(errors: List[str]) -> List[str]:
    return list(dict.fromkeys(errors))


def collect_errors(desc: AutomatonDescription) -> List[str]:
    """Every reference problem in the description, in discovery order."""
    errors = []
    declared = set()

    if not desc.states:
        errors.append("states must be a non-empty list")
    for state in desc.states:
        if state in declared:
            errors.append(f"duplicate state {state}")
        declared.add(state)

    if desc.start not in declared:
        errors.append(f"start state {desc.start} not in states")
    for acc in desc.accepts:
        if acc not in declared:
            errors.append(f"accept state {acc} not in states")

    for src, moves in desc.transitions.items():
        if src not in declared:
            errors.append(f"transition from unknown state {src}")
        for targets in moves.values():
            for tgt in targets:
                if tgt not in declared:
                    errors.append(f"transition target {tgt} not in states")

    return _dedupe(errors)


def parse_automaton(raw: Union[str, dict, AutomatonDescription, Any]) -> AutomatonSpec:
    """
    Validate a raw automaton (JSON text, dict or AutomatonDescription) and
    freeze it into an AutomatonSpec.

    Raises:
        AutomatonValidationError: with the complete list of problems.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise AutomatonValidationError([f"Invalid JSON: {e}"])

    if isinstance(raw, AutomatonDescription):
        desc = raw
    elif isinstance(raw, dict):
        try:
            desc = AutomatonDescription.model_validate(raw)
        except ValidationError as e:
            errors = _dedupe(format_pydantic_errors(e))
            log.info("automaton_invalid", stage="shape", error_count=len(errors))
            raise AutomatonValidationError(errors)
    else:
        raise AutomatonValidationError(["Automaton JSON must be an object"])

    errors = collect_errors(desc)
    if errors:
        log.info("automaton_invalid", stage="references", error_count=len(errors))
        raise AutomatonValidationError(errors)

    for moves in desc.transitions.values():
        for symbol in moves:
            if symbol not in EPSILON_ALIASES and len(symbol) != 1:
                # Input is consumed one code point at a time
                log.warning("unreachable_symbol", symbol=symbol)

    spec = AutomatonSpec.from_description(desc)
    log.debug("automaton_parsed", states=len(spec.states), accepts=len(spec.accepts))
    return spec
