"""Merkle Ledger: an append-only Merkle tree with commutative-pair inclusion proofs."""

from merkle_ledger.config import LedgerSettings, settings
from merkle_ledger.leaf_store import IndexOutOfBounds, LeafStore
from merkle_ledger.merkle import (
    ZERO32,
    PairHasher,
    build_proof,
    leaf_from_int,
    parse_bytes32,
    reduce_root,
    to_hex,
    verify_proof,
)
from merkle_ledger.schemas import (
    LeafAdded,
    MerkleProof,
    RootUpdated,
    TreeEvent,
    export_json_schemas,
)
from merkle_ledger.tree_service import MerkleTreeService

__all__ = [
    # Core tree
    "MerkleTreeService",
    "LeafStore",
    "IndexOutOfBounds",
    "PairHasher",
    "reduce_root",
    "build_proof",
    "verify_proof",
    "ZERO32",
    "leaf_from_int",
    "parse_bytes32",
    "to_hex",
    # Configuration
    "settings",
    "LedgerSettings",
    # Wire models
    "LeafAdded",
    "RootUpdated",
    "TreeEvent",
    "MerkleProof",
    "export_json_schemas",
]

__version__ = "0.1.0"
