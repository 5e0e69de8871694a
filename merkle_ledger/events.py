"""Event sinks for tree notifications.

``EventLog`` keeps a bounded in-memory history for the HTTP API.
``WebhookNotifier`` forwards each event to an external URL, signed with
HMAC-SHA256 using the same ``sha256=<hex>`` scheme receivers can verify.

Both are meant to be registered with ``MerkleTreeService.on_commit`` so
they only ever see appends that committed. The notifier queues delivery
on a background thread pool, so a slow or failing receiver never blocks
the tree.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor

import httpx

from merkle_ledger.config import settings
from merkle_ledger.schemas import TreeEvent

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Merkle-Ledger-Signature"
EVENT_HEADER = "X-Merkle-Ledger-Event"


def sign_body(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class EventLog:
    """Bounded, thread-safe history of emitted events (oldest dropped first)."""

    def __init__(self, limit: int | None = None) -> None:
        self._events: deque[TreeEvent] = deque(
            maxlen=limit if limit is not None else settings.event_log_limit
        )
        self._lock = threading.Lock()

    def __call__(self, event: TreeEvent) -> None:
        with self._lock:
            self._events.append(event)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def recent(self, limit: int = 50, offset: int = 0) -> list[TreeEvent]:
        with self._lock:
            return list(self._events)[offset : offset + limit]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class WebhookNotifier:
    """POSTs every event to a configured webhook URL.

    A notifier without a URL is a no-op, which keeps local development
    free of outbound traffic.
    """

    def __init__(
        self,
        url: str | None = None,
        secret: str | None = None,
        timeout: float | None = None,
        max_workers: int = 2,
    ) -> None:
        self._url = url if url is not None else settings.event_webhook_url
        self._secret = secret if secret is not None else settings.event_webhook_secret
        self._timeout = timeout if timeout is not None else settings.webhook_timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="merkle-webhook"
        )

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    def __call__(self, event: TreeEvent) -> Future | None:
        if not self._url:
            return None
        body = json.dumps(event.model_dump(mode="json"), sort_keys=True).encode("utf-8")
        return self._executor.submit(self._deliver, event.event, body)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _deliver(self, event_name: str, body: bytes) -> bool:
        headers = {"Content-Type": "application/json", EVENT_HEADER: event_name}
        if self._secret:
            headers[SIGNATURE_HEADER] = sign_body(self._secret, body)

        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(self._url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Event webhook delivery failed for %s: %s", event_name, exc)
            return False

        if not resp.is_success:
            logger.warning(
                "Event webhook returned %d for %s", resp.status_code, event_name
            )
            return False
        return True
