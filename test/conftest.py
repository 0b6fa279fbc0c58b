import copy
import sys
import os

import pytest

# Ensure repository root (api.py, main.py, pumping/) and scripts/ are on sys.path
HERE = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(HERE, ".."))
SCRIPTS = os.path.join(REPO_ROOT, "scripts")

for path in (SCRIPTS, REPO_ROOT):
    if path not in sys.path:
        sys.path.insert(0, path)

# Rate limits would trip over the number of requests the API tests make
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")


ANBN_BODY = """
m = re.fullmatch(r"(a+)(b+)", s)
if not m:
    return False
return len(m.group(1)) == len(m.group(2))
"""

ALTERNATING = {
    "states": ["q0", "q1"],
    "start": "q0",
    "accepts": ["q0"],
    "transitions": {
        "q0": {"a": ["q1"]},
        "q1": {"b": ["q0"]},
    },
}


@pytest.fixture
def anbn_source():
    return ANBN_BODY


@pytest.fixture
def alternating():
    """(ab)* as a two-state DFA."""
    return copy.deepcopy(ALTERNATING)
