"""HTTP API for the Merkle Ledger.

Exposes the tree service operations (append, read, prove, verify) plus an
in-memory event history and the JSON Schema export. One long-lived
``MerkleTreeService`` backs the app for the lifetime of the process.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Path, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from merkle_ledger import __version__
from merkle_ledger.config import settings
from merkle_ledger.events import EventLog, WebhookNotifier
from merkle_ledger.leaf_store import IndexOutOfBounds
from merkle_ledger.merkle import parse_bytes32, to_hex, verify_proof
from merkle_ledger.schemas import (
    SCHEMA_VERSION,
    AddLeafResponse,
    LeafCountResponse,
    LeafRequest,
    LeafResponse,
    MerkleProof,
    ProofVerifyRequest,
    ProofVerifyResponse,
    RootResponse,
    VerifyLeafResponse,
    export_json_schemas,
)
from merkle_ledger.tree_service import MerkleTreeService

logger = logging.getLogger(__name__)


class _BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared body exceeds the configured cap."""

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and not content_length.isdigit():
            return JSONResponse(
                status_code=400,
                content={"detail": "Invalid Content-Length header"},
            )
        if content_length and int(content_length) > settings.max_request_body_bytes:
            return JSONResponse(
                status_code=413,
                content={"detail": "Request body too large"},
            )
        return await call_next(request)


# The tree lives for the lifetime of the process.
_tree = MerkleTreeService()
_event_log = EventLog()
_notifier = WebhookNotifier()

# Both sinks only ever see committed appends.
_tree.on_commit(_event_log)
_tree.on_commit(_notifier)


def get_tree_service() -> MerkleTreeService:
    """Return the module-level tree service (useful for inspection/testing)."""
    return _tree


def get_event_log() -> EventLog:
    return _event_log


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "Merkle Ledger ready (hash=%s, webhook=%s)",
        _tree.hash_algorithm,
        "on" if _notifier.enabled else "off",
    )
    yield
    _notifier.shutdown(wait=False)


app = FastAPI(
    title="Merkle Ledger",
    description="Append-only Merkle tree with commutative-pair inclusion proofs",
    version=__version__,
    lifespan=_lifespan,
)

app.add_middleware(_BodySizeLimitMiddleware)


@app.exception_handler(IndexOutOfBounds)
async def _index_out_of_bounds(_request: Request, exc: IndexOutOfBounds) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc), "index": exc.index, "count": exc.count},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "merkle-ledger",
        "version": __version__,
        "hash_algorithm": _tree.hash_algorithm,
        "leaf_count": _tree.get_leaf_count(),
    }


@app.post("/leaves", response_model=AddLeafResponse)
def add_leaf(req: LeafRequest):
    """Append a 32-byte leaf and return its index and the new root."""
    index, root, count = _tree.append_with_root(parse_bytes32(req.value))
    return AddLeafResponse(index=index, root=to_hex(root), leaf_count=count)


# Registered before /leaves/{index} so "count" is never parsed as an index.
@app.get("/leaves/count", response_model=LeafCountResponse)
def leaf_count():
    return LeafCountResponse(leaf_count=_tree.get_leaf_count())


@app.get("/leaves/{index}", response_model=LeafResponse)
def get_leaf(index: int = Path(..., ge=0)):
    return LeafResponse(index=index, value=to_hex(_tree.get_leaf(index)))


@app.get("/leaves/{index}/proof", response_model=MerkleProof)
def get_proof(index: int = Path(..., ge=0)):
    """Return the inclusion proof for a leaf against the current root."""
    return _tree.get_proof(index)


@app.post("/leaves/{index}/verify", response_model=VerifyLeafResponse)
def verify_leaf(req: LeafRequest, index: int = Path(..., ge=0)):
    """Check whether the supplied value is the leaf stored at *index*.

    A mismatch is reported as ``verified: false``, not as an error.
    """
    value = parse_bytes32(req.value)
    verified, root = _tree.verify_leaf_with_root(value, index)
    return VerifyLeafResponse(
        index=index,
        value=to_hex(value),
        verified=verified,
        root=to_hex(root),
    )


@app.get("/root", response_model=RootResponse)
def merkle_root():
    root, count = _tree.get_root_and_count()
    return RootResponse(root=to_hex(root), leaf_count=count)


@app.post("/verify", response_model=ProofVerifyResponse)
def verify(req: ProofVerifyRequest):
    """Stateless proof check; does not consult the stored tree."""
    verified = verify_proof(
        parse_bytes32(req.leaf),
        [parse_bytes32(s) for s in req.proof],
        parse_bytes32(req.root),
        _tree.hasher,
    )
    return ProofVerifyResponse(verified=verified)


@app.get("/events")
def list_events(limit: int = 50, offset: int = 0):
    """List recent tree events, oldest first."""
    events = _event_log.recent(limit=limit, offset=offset)
    return {
        "events": [e.model_dump(mode="json") for e in events],
        "total": len(_event_log),
    }


@app.get("/schemas")
def list_schemas():
    """Return versioned JSON Schema definitions for the wire models."""
    return {
        "schema_version": SCHEMA_VERSION,
        "schemas": export_json_schemas(),
    }
