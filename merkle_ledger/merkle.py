"""Commutative-pair Merkle Tree over 32-byte leaves.

Specification (for third-party verifiers)
==========================================

**Hash algorithm:** Keccak-256 by default (bit-compatible with deployed
trees). SHA-256 may be configured instead; one service instance always
uses a single algorithm.

**Pair hash:** ``combine(a, b) = H(min(a, b) || max(a, b))`` where the two
32-byte values are ordered as big-endian unsigned integers. The result
does not depend on argument order, so a verifier never needs to know
whether a sibling sat to the left or to the right.

**Leaves are not hashed.** Level 0 is the raw leaf sequence. A tree with
a single leaf has that leaf as its root.

**Tree structure:** Levels are folded pairwise, ``(0, 1), (2, 3), ...``.
When a level has an odd number of nodes, the last node is carried up to
the next level unchanged. It is *not* hashed with itself or padded with a
sentinel. The rule applies at every level, not only the leaf level.

**Proofs:** the ordered list of siblings met while walking from a leaf to
the root. A level where the tracked node is the carried-up leftover
contributes nothing, so proofs can be shorter than the tree depth.

**Recomputation:** roots and proofs are recomputed from the full leaf
sequence on every call. Nothing is cached between calls.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterable, Sequence

from eth_utils import keccak

from merkle_ledger.leaf_store import LEAF_SIZE, IndexOutOfBounds

ZERO32 = b"\x00" * LEAF_SIZE


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


_HASH_FUNCTIONS: dict[str, Callable[[bytes], bytes]] = {
    "keccak256": keccak,
    "sha256": _sha256,
}

HASH_ALGORITHMS = tuple(_HASH_FUNCTIONS)


class PairHasher:
    """Commutative two-input hash used by reduction, proofs and verification."""

    def __init__(self, algorithm: str = "keccak256") -> None:
        name = algorithm.strip().lower()
        if name not in _HASH_FUNCTIONS:
            raise ValueError(
                f"unsupported hash algorithm {algorithm!r} "
                f"(expected one of: {', '.join(HASH_ALGORITHMS)})"
            )
        self.algorithm = name
        self._hash = _HASH_FUNCTIONS[name]

    def __repr__(self) -> str:
        return f"PairHasher({self.algorithm!r})"

    def combine(self, a: bytes, b: bytes) -> bytes:
        # Equal-length big-endian values order the same as bytes and as integers.
        if a > b:
            a, b = b, a
        return self._hash(a + b)


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def parse_bytes32(value: str | bytes) -> bytes:
    """Parse a 32-byte value from raw bytes or a (``0x``-prefixed) hex string."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        text = value.strip()
        if text[:2] in ("0x", "0X"):
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError(f"invalid hex value: {value!r}") from exc
    if len(raw) != LEAF_SIZE:
        raise ValueError(f"expected {LEAF_SIZE} bytes, got {len(raw)}")
    return raw


def leaf_from_int(n: int) -> bytes:
    """Encode a non-negative integer as a 32-byte big-endian leaf."""
    return n.to_bytes(LEAF_SIZE, "big")


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()


# ---------------------------------------------------------------------------
# Reduction, proofs, verification
# ---------------------------------------------------------------------------


def _next_level(level: Sequence[bytes], hasher: PairHasher) -> list[bytes]:
    next_level: list[bytes] = []
    for i in range(0, len(level), 2):
        if i + 1 < len(level):
            next_level.append(hasher.combine(level[i], level[i + 1]))
        else:
            next_level.append(level[i])
    return next_level


def reduce_root(leaves: Sequence[bytes], hasher: PairHasher | None = None) -> bytes:
    """Fold *leaves* level by level into the root.

    An empty sequence reduces to 32 zero bytes.
    """
    if not leaves:
        return ZERO32
    hasher = hasher or PairHasher()

    level = list(leaves)
    while len(level) > 1:
        level = _next_level(level, hasher)
    return level[0]


def build_proof(
    leaves: Sequence[bytes],
    leaf_index: int,
    hasher: PairHasher | None = None,
) -> list[bytes]:
    """Return the ordered siblings needed to fold ``leaves[leaf_index]`` to the root.

    Raises:
        IndexOutOfBounds: if *leaf_index* is not in ``[0, len(leaves))``.
    """
    n = len(leaves)
    if leaf_index < 0 or leaf_index >= n:
        raise IndexOutOfBounds(leaf_index, n)
    hasher = hasher or PairHasher()

    siblings: list[bytes] = []
    level = list(leaves)
    idx = leaf_index

    while len(level) > 1:
        if idx % 2 == 0:
            if idx + 1 < len(level):
                siblings.append(level[idx + 1])
            # else: carried up unchanged, no sibling at this level
        else:
            siblings.append(level[idx - 1])

        idx //= 2
        level = _next_level(level, hasher)

    return siblings


def verify_proof(
    leaf: bytes,
    siblings: Iterable[bytes],
    expected_root: bytes,
    hasher: PairHasher | None = None,
) -> bool:
    """Verify a Merkle inclusion proof against an expected root.

    The proof carries no positions. Any sibling list that folds *leaf* to
    *expected_root* is accepted, whichever index it was built for.
    """
    hasher = hasher or PairHasher()
    current = leaf
    for sibling in siblings:
        current = hasher.combine(current, sibling)
    return current == expected_root
