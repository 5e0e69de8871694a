"""Append-only ordered store of 32-byte leaves."""

from __future__ import annotations

LEAF_SIZE = 32


class IndexOutOfBounds(IndexError):
    """Raised when a read, proof or verification references a missing leaf."""

    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"leaf index {index} out of range [0, {count})")
        self.index = index
        self.count = count


class LeafStore:
    """Ordered sequence of 32-byte leaves.

    Insertion order is index order. Leaves are never mutated or removed
    once committed; ``count`` only grows.
    """

    def __init__(self) -> None:
        self._leaves: list[bytes] = []

    def __len__(self) -> int:
        return len(self._leaves)

    def count(self) -> int:
        return len(self._leaves)

    def append(self, value: bytes) -> int:
        """Append *value* and return its index (the count before the append)."""
        if not isinstance(value, (bytes, bytearray)) or len(value) != LEAF_SIZE:
            raise ValueError(f"leaf must be exactly {LEAF_SIZE} bytes")
        idx = len(self._leaves)
        self._leaves.append(bytes(value))
        return idx

    def get(self, index: int) -> bytes:
        n = len(self._leaves)
        if index < 0 or index >= n:
            raise IndexOutOfBounds(index, n)
        return self._leaves[index]

    def snapshot(self) -> tuple[bytes, ...]:
        return tuple(self._leaves)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _truncate(self, count: int) -> None:
        # Only used to undo an append whose transaction did not commit.
        del self._leaves[count:]
