"""The Merkle tree service: one owned leaf store plus its derived root.

Every append recomputes the root from the full leaf sequence, and every
proof request replays the reduction for the requested index. Appends are
all-or-nothing: the store append, root recomputation and dispatch to
subscribed listeners run inside a transaction that rolls back on any
exception. Commit hooks see the events only once the append has
committed, so a rolled-back append never reaches them.

The service serializes its own operations with a re-entrant lock so it
can sit behind a multi-threaded HTTP server. Proof and reduction passes
work on a snapshot taken under that lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from merkle_ledger.config import settings
from merkle_ledger.leaf_store import LeafStore
from merkle_ledger.merkle import (
    ZERO32,
    PairHasher,
    build_proof,
    reduce_root,
    to_hex,
    verify_proof,
)
from merkle_ledger.schemas import LeafAdded, MerkleProof, RootUpdated, TreeEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[TreeEvent], object]


class MerkleTreeService:
    """Append-only Merkle tree with inclusion proofs.

    Thread-safe for concurrent appends and proof generation. Leaves are
    never removed, and the root is never set directly.
    """

    def __init__(
        self,
        hasher: PairHasher | None = None,
        audit_log: bool | None = None,
    ) -> None:
        self._hasher = hasher or PairHasher(settings.hash_algorithm)
        self._audit_log = settings.audit_log_enabled if audit_log is None else audit_log
        self._store = LeafStore()
        self._root = ZERO32
        self._lock = threading.RLock()
        self._listeners: list[EventListener] = []
        self._commit_hooks: list[EventListener] = []

    @property
    def hasher(self) -> PairHasher:
        return self._hasher

    @property
    def hash_algorithm(self) -> str:
        return self._hasher.algorithm

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: EventListener) -> None:
        """Register *listener* for ``LeafAdded`` and ``RootUpdated`` events.

        Listeners run synchronously inside the append transaction. A
        listener that raises aborts the append.
        """
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def on_commit(self, hook: EventListener) -> None:
        """Register *hook* to receive events after an append has committed.

        Hooks cannot abort the append. A hook that raises is logged and the
        remaining hooks still run.
        """
        with self._lock:
            self._commit_hooks.append(hook)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def add_leaf(self, value: bytes) -> int:
        """Append *value*, recompute the root and notify listeners.

        Returns:
            The index of the new leaf.
        """
        idx, _root, _count = self.append_with_root(value)
        return idx

    def append_with_root(self, value: bytes) -> tuple[int, bytes, int]:
        """Append *value* and return the state of the tree right after it.

        Returns:
            (leaf_index, root, leaf_count), all read under the same lock
            hold as the append.
        """
        with self._lock:
            with self._transaction():
                idx = self._store.append(value)
                self._root = reduce_root(self._store.snapshot(), self._hasher)
                count = self._store.count()
                events: list[TreeEvent] = [
                    LeafAdded(index=idx, value=to_hex(value)),
                    RootUpdated(root=to_hex(self._root), leaf_count=count),
                ]
                for event in events:
                    self._emit(event)

            root = self._root
            if self._audit_log:
                logger.info(
                    "Leaf appended: index=%d root=%s tree_size=%d",
                    idx,
                    root.hex()[:16] + "...",
                    count,
                )
            for event in events:
                self._run_commit_hooks(event)
            return idx, root, count

    def verify_leaf(self, value: bytes, index: int) -> bool:
        """Check that *value* is the leaf at *index* under the current root.

        Raises:
            IndexOutOfBounds: if *index* is not a current leaf index.
        """
        verified, _root = self.verify_leaf_with_root(value, index)
        return verified

    def verify_leaf_with_root(self, value: bytes, index: int) -> tuple[bool, bytes]:
        """Like ``verify_leaf`` but also returns the root it verified against."""
        with self._lock:
            siblings = build_proof(self._store.snapshot(), index, self._hasher)
            root = self._root
            return verify_proof(value, siblings, root, self._hasher), root

    def get_proof(self, index: int) -> MerkleProof:
        """Build the inclusion proof for *index* against the current root."""
        with self._lock:
            leaves = self._store.snapshot()
            siblings = build_proof(leaves, index, self._hasher)
            return MerkleProof(
                hash_algorithm=self._hasher.algorithm,
                leaf_index=index,
                leaf=to_hex(leaves[index]),
                siblings=[to_hex(s) for s in siblings],
                root=to_hex(self._root),
                tree_size=len(leaves),
            )

    def get_merkle_root(self) -> bytes:
        with self._lock:
            return self._root

    def get_root_and_count(self) -> tuple[bytes, int]:
        with self._lock:
            return self._root, self._store.count()

    def get_leaf_count(self) -> int:
        with self._lock:
            return self._store.count()

    def get_leaf(self, index: int) -> bytes:
        with self._lock:
            return self._store.get(index)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        count = self._store.count()
        root = self._root
        try:
            yield
        except Exception:
            self._store._truncate(count)
            self._root = root
            logger.error("Append rolled back; tree restored to size %d", count)
            raise

    def _emit(self, event: TreeEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _run_commit_hooks(self, event: TreeEvent) -> None:
        for hook in list(self._commit_hooks):
            try:
                hook(event)
            except Exception:
                logger.exception("Commit hook failed for %s", event.event)
