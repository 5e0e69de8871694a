"""Configuration for the Merkle Ledger service.

All settings are driven by environment variables with sensible defaults.
The hash algorithm is fixed for the lifetime of a tree: every root and
proof produced by one service instance uses the same pair hash.
"""

from __future__ import annotations

import os


def _get_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return int(val)


def _get_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return float(val)


def _get_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


class LedgerSettings:
    # --- Tree ---
    # "keccak256" is bit-compatible with deployed trees; "sha256" is also accepted.
    hash_algorithm: str = os.getenv("MERKLE_LEDGER_HASH", "keccak256")
    # If True, log every append with its index and the new root.
    audit_log_enabled: bool = _get_bool("MERKLE_LEDGER_AUDIT_LOG", True)

    # --- HTTP service ---
    host: str = os.getenv("MERKLE_LEDGER_HOST", "127.0.0.1")
    port: int = _get_int("MERKLE_LEDGER_PORT", 3200)
    # Hard cap on request bodies. A leaf is 66 hex chars, so this is generous.
    max_request_body_bytes: int = _get_int("MERKLE_LEDGER_MAX_BODY_BYTES", 64 * 1024)
    # Number of events kept in memory for GET /events.
    event_log_limit: int = _get_int("MERKLE_LEDGER_EVENT_LOG_LIMIT", 1000)

    # --- Outbound event webhook ---
    event_webhook_url: str = os.getenv("MERKLE_LEDGER_EVENT_WEBHOOK_URL", "")
    # HMAC-SHA256 secret used to sign webhook bodies. Unsigned when empty.
    event_webhook_secret: str = os.getenv("MERKLE_LEDGER_EVENT_WEBHOOK_SECRET", "")
    webhook_timeout_seconds: float = _get_float("MERKLE_LEDGER_WEBHOOK_TIMEOUT", 5.0)


settings = LedgerSettings()
