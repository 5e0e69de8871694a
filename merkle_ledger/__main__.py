"""CLI entrypoint for the Merkle Ledger.

Usage:
    merkle-ledger                          # Start the HTTP API
    merkle-ledger --root-of LEAVES.txt     # Print the root of a leaf file and exit
    merkle-ledger --root-of LEAVES.txt --prove 3
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import uvicorn

from merkle_ledger import __version__
from merkle_ledger.config import settings
from merkle_ledger.leaf_store import IndexOutOfBounds
from merkle_ledger.merkle import HASH_ALGORITHMS, PairHasher, parse_bytes32, to_hex
from merkle_ledger.tree_service import MerkleTreeService


def read_leaves(path: str) -> list[bytes]:
    """Read hex leaves one per line; blank lines and ``#`` comments are skipped."""
    leaves: list[bytes] = []
    with open(path, encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            text = line.split("#", 1)[0].strip()
            if not text:
                continue
            try:
                leaves.append(parse_bytes32(text))
            except ValueError as exc:
                raise ValueError(f"{path}:{lineno}: {exc}") from exc
    return leaves


def root_of(path: str, algorithm: str, prove: int | None = None) -> dict:
    tree = MerkleTreeService(PairHasher(algorithm), audit_log=False)
    for leaf in read_leaves(path):
        tree.add_leaf(leaf)

    result: dict = {
        "hash_algorithm": tree.hash_algorithm,
        "leaf_count": tree.get_leaf_count(),
        "root": to_hex(tree.get_merkle_root()),
    }
    if prove is not None:
        result["proof"] = tree.get_proof(prove).model_dump(mode="json")
    return result


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    parser = argparse.ArgumentParser(description="Merkle Ledger")
    parser.add_argument(
        "--root-of",
        metavar="FILE",
        help="Compute the root of the hex leaves in FILE and exit (no HTTP server)",
    )
    parser.add_argument(
        "--prove",
        type=int,
        metavar="INDEX",
        help="With --root-of, also print the inclusion proof for INDEX",
    )
    parser.add_argument(
        "--hash",
        choices=HASH_ALGORITHMS,
        default=settings.hash_algorithm,
        help=f"Pair hash algorithm (default: {settings.hash_algorithm})",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"HTTP listener host (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"HTTP listener port (default: {settings.port})",
    )
    args = parser.parse_args()

    if args.prove is not None and not args.root_of:
        parser.error("--prove requires --root-of")

    if args.root_of:
        try:
            result = root_of(args.root_of, args.hash, args.prove)
        except (OSError, ValueError, IndexOutOfBounds) as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps(result, indent=2))
        sys.exit(0)

    # The app builds its tree at import time from these settings.
    settings.hash_algorithm = args.hash

    print(f"Merkle Ledger v{__version__}")
    print(f"   Hash:      {args.hash}")
    print(f"   Webhook:   {settings.event_webhook_url or '<none>'}")
    print(f"   Listening: http://{args.host}:{args.port}")
    print()

    uvicorn.run(
        "merkle_ledger.api:app",
        host=args.host,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
