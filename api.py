"""
Pumping Lab API

FastAPI-based REST API for the Pumping Lemma workbench.
Builds membership oracles from language descriptions, enumerates
decompositions and searches for pumping contradictions.

Security features:
  - Input limits (max candidate length, max pumping length, max pump count)
  - Rate limiting via slowapi (set RATE_LIMIT_ENABLED=0 to disable)
  - Optional API key authentication (set API_KEY env var to enable)
"""

import time
import traceback
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Optional, Dict, Any, List, Union

from fastapi import FastAPI, HTTPException, Request, Depends, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field, field_validator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from pumping import (
    AutomatonValidationError,
    FaultPolicy,
    MembershipOracle,
    build_oracle,
    enumerate_decompositions,
    parse_automaton,
    pump_test,
    search,
)
from pumping.config import (
    DEFAULT_PUMP_COUNTS,
    MAX_PUMP_COUNT,
    MAX_PUMPING_LENGTH,
    MAX_STRING_LENGTH,
    PREDICATE_TIMEOUT_MS,
)
from pumping.render import automaton_to_dot

VERSION = "1.0.0"

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# --- Rate Limiter ---
limiter = Limiter(
    key_func=get_remote_address,
    enabled=os.environ.get("RATE_LIMIT_ENABLED", "1") != "0",
)

# --- API Key Auth (optional) ---
API_KEY = os.environ.get("API_KEY")  # Set to enable auth; unset = disabled
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: Optional[str] = Security(api_key_header)):
    """Validate API key if API_KEY env var is set. No-op when unset."""
    if API_KEY is None:
        return  # Auth disabled
    if api_key != API_KEY:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "Invalid or missing API key",
                "error_type": "AuthenticationError",
                "hint": "Provide a valid X-API-Key header."
            }
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Pumping Lab API (predicate budget {PREDICATE_TIMEOUT_MS}ms)")
    app.state.started_at = time.time()
    yield
    logger.info("Shutting down Pumping Lab API...")


app = FastAPI(
    title="Pumping Lab API",
    version=VERSION,
    description="Pumping Lemma workbench: membership oracles and contradiction search",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# --- CORS Configuration ---
ALLOWED_ORIGINS = os.environ.get(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000"
).split(",")

if os.environ.get("ENVIRONMENT") == "development":
    ALLOWED_ORIGINS = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request/Response Models ---

def _check_candidate(v: Any) -> str:
    if not isinstance(v, str):
        raise ValueError("Candidate string must be a string.")
    if len(v) > MAX_STRING_LENGTH:
        raise ValueError(f"Candidate string exceeds maximum length of {MAX_STRING_LENGTH} characters.")
    return v


class LanguageRequest(BaseModel):
    # Raw description; build_oracle reports every problem with it
    language: Dict[str, Any]


class MembershipRequest(LanguageRequest):
    strings: List[str] = Field(..., min_length=1, max_length=50)

    @field_validator("strings", mode="before")
    @classmethod
    def check_strings(cls, v):
        if not isinstance(v, list):
            raise ValueError("strings must be a list.")
        return [_check_candidate(s) for s in v]


class DecompositionRequest(BaseModel):
    s: str
    p: int = Field(..., ge=0, le=MAX_PUMPING_LENGTH)

    @field_validator("s", mode="before")
    @classmethod
    def check_s(cls, v):
        return _check_candidate(v)


class PumpRequest(LanguageRequest):
    s: str
    p: int = Field(..., ge=0, le=MAX_PUMPING_LENGTH)
    index: int = Field(0, ge=0, description="Position in the decomposition listing")
    i: int = Field(..., ge=0, le=MAX_PUMP_COUNT)

    @field_validator("s", mode="before")
    @classmethod
    def check_s(cls, v):
        return _check_candidate(v)


class ContradictionRequest(LanguageRequest):
    s: str
    p: Optional[int] = Field(None, ge=0, le=MAX_PUMPING_LENGTH)
    pump_counts: List[int] = Field(default_factory=lambda: list(DEFAULT_PUMP_COUNTS), min_length=1)
    fault_policy: FaultPolicy = FaultPolicy.skip

    @field_validator("s", mode="before")
    @classmethod
    def check_s(cls, v):
        return _check_candidate(v)

    @field_validator("pump_counts")
    @classmethod
    def check_pump_counts(cls, v: List[int]) -> List[int]:
        for i in v:
            if i < 0 or i > MAX_PUMP_COUNT:
                raise ValueError(f"pump counts must be between 0 and {MAX_PUMP_COUNT}.")
        return v


class ExportRequest(BaseModel):
    automaton: Union[Dict[str, Any], str]


class HealthResponse(BaseModel):
    status: str
    message: str
    predicate_timeout_ms: int
    version: str = VERSION


# --- Helper Functions ---

def open_oracle(language: Dict[str, Any]) -> MembershipOracle:
    """Build an oracle or raise a 400 carrying every build/validation error."""
    built = build_oracle(language)
    if not built.ok:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "; ".join(built.errors),
                "error_type": "ValidationError" if built.error_kind == "validation" else "BuildError",
                "errors": built.errors,
                "hint": "Fix the language description and try again."
            }
        )
    return built.oracle


def resolve_p(p: Optional[int], oracle: MembershipOracle) -> int:
    if p is not None:
        return p
    suggested = oracle.meta.suggested_pumping_length()
    if suggested is None:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Pumping length p is required for this language",
                "error_type": "ValidationError",
                "hint": "Only automata provide a default p (their state count)."
            }
        )
    return min(suggested, MAX_PUMPING_LENGTH)


def internal_error(e: Exception) -> HTTPException:
    logger.error(f"[API] Unexpected error: {str(e)}")
    logger.error(traceback.format_exc())
    return HTTPException(
        status_code=500,
        detail={
            "error": f"Internal server error: {str(e)}",
            "error_type": "RuntimeError",
            "hint": "An unexpected error occurred. Check server logs for details."
        }
    )


# --- API Endpoints ---

@app.get("/health", response_model=HealthResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint to verify API is running."""
    return HealthResponse(
        status="healthy",
        message="Pumping Lab API is running",
        predicate_timeout_ms=PREDICATE_TIMEOUT_MS,
    )


@app.post("/oracle", dependencies=[Depends(verify_api_key)])
@limiter.limit("30/minute")
async def describe_oracle(request: Request, query: LanguageRequest):
    """Validate a language description and report what kind of oracle it makes."""
    oracle = open_oracle(query.language)
    with oracle:
        meta = oracle.meta
        return {
            "meta": meta.model_dump(mode="json"),
            "suggested_p": meta.suggested_pumping_length(),
        }


@app.post("/membership", dependencies=[Depends(verify_api_key)])
@limiter.limit("30/minute")
async def check_membership(request: Request, query: MembershipRequest):
    """Test each string against the described language."""
    oracle = open_oracle(query.language)
    try:
        with oracle:
            results = [await oracle.atest(s) for s in query.strings]
    except Exception as e:
        raise internal_error(e)
    return {
        "meta": oracle.meta.model_dump(mode="json"),
        "results": [
            {"s": s, **r.model_dump()} for s, r in zip(query.strings, results)
        ],
    }


@app.post("/decompositions")
@limiter.limit("60/minute")
async def list_decompositions(request: Request, query: DecompositionRequest):
    """All x·y·z splits with |xy| <= p and |y| > 0, in search order."""
    decomps = enumerate_decompositions(query.s, query.p)
    return {
        "s": query.s,
        "p": query.p,
        "count": len(decomps),
        "decompositions": [
            {**d.model_dump(), "label": d.label()} for d in decomps
        ],
    }


@app.post("/pump", dependencies=[Depends(verify_api_key)])
@limiter.limit("30/minute")
async def pump_one(request: Request, query: PumpRequest):
    """Pump a single decomposition (picked by index) and test the result."""
    decomps = enumerate_decompositions(query.s, query.p)
    if query.index >= len(decomps):
        raise HTTPException(
            status_code=400,
            detail={
                "error": f"Decomposition index {query.index} out of range ({len(decomps)} available)",
                "error_type": "ValidationError",
                "hint": "List decompositions first via /decompositions."
            }
        )
    oracle = open_oracle(query.language)
    try:
        with oracle:
            attempt = await run_in_threadpool(pump_test, oracle, decomps[query.index], query.i)
    except Exception as e:
        raise internal_error(e)
    return {
        "decomposition": decomps[query.index].model_dump(),
        **attempt.model_dump(),
    }


@app.post("/contradiction", dependencies=[Depends(verify_api_key)])
@limiter.limit("10/minute")
async def find_contradiction(request: Request, query: ContradictionRequest):
    """
    Search decompositions and pump counts for a string outside the language.

    Returns:
        - 200: search finished (status tells whether a witness was found)
        - 400: invalid language description or missing p
        - 401: Unauthorized (invalid API key)
        - 422: malformed request
        - 429: Too many requests
    """
    request_id = str(uuid.uuid4())[:8]
    t_start = time.time()
    oracle = open_oracle(query.language)
    try:
        with oracle:
            p = resolve_p(query.p, oracle)
            logger.info(f"[API][{request_id}] Searching: kind={oracle.meta.kind.value} |s|={len(query.s)} p={p}")
            outcome = await run_in_threadpool(
                search,
                oracle,
                query.s,
                p,
                query.pump_counts,
                fault_policy=query.fault_policy,
            )
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error(e)

    total_ms = round((time.time() - t_start) * 1000, 1)
    logger.info(f"[API][{request_id}] Done in {total_ms}ms - status={outcome.status.value}")
    return {
        "p": p,
        "outcome": outcome.model_dump(mode="json"),
        "message": outcome.proof.describe() if outcome.proof else
            "No contradiction found for the tested decompositions and pump counts. "
            "This does not prove that the language is regular.",
        "performance": {"total_ms": total_ms},
    }


@app.post("/export/dot", dependencies=[Depends(verify_api_key)])
@limiter.limit("30/minute")
async def export_dot(request: Request, query: ExportRequest):
    """Return an automaton description as Graphviz DOT source."""
    try:
        spec = parse_automaton(query.automaton)
    except AutomatonValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "; ".join(e.errors),
                "error_type": "ValidationError",
                "errors": e.errors,
                "hint": "Fix the automaton description and try again."
            }
        )
    return Response(
        content=automaton_to_dot(spec),
        media_type="text/vnd.graphviz",
        headers={"Content-Disposition": "attachment; filename=automaton.dot"}
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Pumping Lab API",
        "version": VERSION,
        "description": "Pumping Lemma workbench",
        "endpoints": {
            "/health": "Health check (GET)",
            "/oracle": "Validate a language description (POST)",
            "/membership": "Test strings for membership (POST)",
            "/decompositions": "Enumerate x·y·z splits (POST)",
            "/pump": "Pump one decomposition (POST)",
            "/contradiction": "Search for a pumping contradiction (POST)",
            "/export/dot": "Export an automaton as Graphviz DOT (POST)"
        }
    }


if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "8000"))
    uvicorn.run(app, host=host, port=port)
