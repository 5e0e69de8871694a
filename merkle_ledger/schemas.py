"""Pydantic models for tree events, proofs and the HTTP surface.

32-byte values always travel as hex strings. Inputs accept 64 hex digits
with or without a ``0x`` prefix; outputs are ``0x``-prefixed lowercase.

All models are versioned through ``SCHEMA_VERSION`` so that external
verifiers can parse proofs regardless of which release produced them.
Use ``export_json_schemas()`` to emit JSON Schema definitions.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

SCHEMA_VERSION = "1.0"

Bytes32Hex = Annotated[
    str,
    Field(
        pattern=r"^(0[xX])?[0-9a-fA-F]{64}$",
        description="32-byte value as 64 hex digits, optionally 0x-prefixed",
    ),
]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class LeafAdded(BaseModel):
    """Emitted after a leaf is appended."""

    event: Literal["leaf.added"] = "leaf.added"
    index: int = Field(..., ge=0)
    value: str
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RootUpdated(BaseModel):
    """Emitted after the root is recomputed for a new leaf."""

    event: Literal["root.updated"] = "root.updated"
    root: str
    leaf_count: int = Field(..., ge=1)
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


TreeEvent = Union[LeafAdded, RootUpdated]


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------


class MerkleProof(BaseModel):
    """Inclusion proof for one leaf, valid for the tree at ``tree_size``."""

    schema_version: str = SCHEMA_VERSION
    hash_algorithm: str
    leaf_index: int = Field(..., ge=0)
    leaf: str
    siblings: list[str] = Field(
        ..., description="Sibling values from leaf to root; no left/right markers"
    )
    root: str
    tree_size: int = Field(..., ge=1)


# ---------------------------------------------------------------------------
# HTTP requests / responses
# ---------------------------------------------------------------------------


class LeafRequest(BaseModel):
    value: Bytes32Hex


class ProofVerifyRequest(BaseModel):
    """Stateless verification of a leaf against a caller-supplied root."""

    leaf: Bytes32Hex
    proof: list[Bytes32Hex] = Field(default_factory=list)
    root: Bytes32Hex


class AddLeafResponse(BaseModel):
    index: int
    root: str
    leaf_count: int


class LeafResponse(BaseModel):
    index: int
    value: str


class LeafCountResponse(BaseModel):
    leaf_count: int


class RootResponse(BaseModel):
    root: str
    leaf_count: int


class VerifyLeafResponse(BaseModel):
    index: int
    value: str
    verified: bool
    root: str


class ProofVerifyResponse(BaseModel):
    verified: bool


# ---------------------------------------------------------------------------
# JSON Schema export
# ---------------------------------------------------------------------------

_SCHEMA_MODELS: dict[str, type[BaseModel]] = {
    "LeafAdded": LeafAdded,
    "RootUpdated": RootUpdated,
    "MerkleProof": MerkleProof,
    "LeafRequest": LeafRequest,
    "ProofVerifyRequest": ProofVerifyRequest,
}


def export_json_schemas(output_dir: str | Path | None = None) -> dict[str, dict]:
    """Generate versioned JSON Schema definitions for the wire models.

    If *output_dir* is provided, each schema is also written to
    ``<output_dir>/<ModelName>.v<version>.schema.json``.
    """
    schemas: dict[str, dict] = {}
    for name, model_cls in _SCHEMA_MODELS.items():
        schema = model_cls.model_json_schema()
        schema["$id"] = f"urn:merkle-ledger:schemas:{name}:v{SCHEMA_VERSION}"
        schema["$schema"] = "https://json-schema.org/draft/2020-12/schema"
        schemas[name] = schema

    if output_dir is not None:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        for name, schema in schemas.items():
            path = out / f"{name}.v{SCHEMA_VERSION}.schema.json"
            path.write_text(json.dumps(schema, indent=2) + "\n")

    return schemas
