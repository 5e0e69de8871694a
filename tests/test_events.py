"""Tests for the event log, the webhook notifier and schema export."""

from __future__ import annotations

import hashlib
import hmac
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from merkle_ledger.events import (
    EVENT_HEADER,
    SIGNATURE_HEADER,
    EventLog,
    WebhookNotifier,
    sign_body,
)
from merkle_ledger.merkle import PairHasher, leaf_from_int
from merkle_ledger.schemas import LeafAdded, RootUpdated, export_json_schemas
from merkle_ledger.tree_service import MerkleTreeService


@pytest.fixture
def leaf_event():
    return LeafAdded(index=0, value="0x" + "11" * 32)


class TestEventLog:
    def test_records_in_order(self):
        log = EventLog(limit=10)
        tree = MerkleTreeService(PairHasher(), audit_log=False)
        tree.on_commit(log)
        tree.add_leaf(leaf_from_int(1))

        events = log.recent()
        assert [e.event for e in events] == ["leaf.added", "root.updated"]
        assert len(log) == 2

    def test_bounded(self):
        log = EventLog(limit=3)
        for i in range(5):
            log(LeafAdded(index=i, value="0x" + "00" * 32))
        assert [e.index for e in log.recent()] == [2, 3, 4]

    def test_clear(self, leaf_event):
        log = EventLog(limit=3)
        log(leaf_event)
        log.clear()
        assert len(log) == 0


class TestWebhookNotifier:
    def test_disabled_without_url(self, leaf_event):
        notifier = WebhookNotifier(url="", secret="")
        assert notifier.enabled is False
        assert notifier(leaf_event) is None
        notifier.shutdown()

    @patch("merkle_ledger.events.httpx.Client")
    def test_posts_signed_event(self, mock_client_cls, leaf_event):
        mock_resp = MagicMock()
        mock_resp.is_success = True
        mock_client = MagicMock()
        mock_client.post.return_value = mock_resp
        mock_client_cls.return_value.__enter__.return_value = mock_client

        notifier = WebhookNotifier(url="http://hooks.test/merkle", secret="s3cret")
        assert notifier(leaf_event).result(timeout=5) is True
        notifier.shutdown()

        args, kwargs = mock_client.post.call_args
        assert args[0] == "http://hooks.test/merkle"
        body = kwargs["content"]
        assert json.loads(body)["event"] == "leaf.added"
        headers = kwargs["headers"]
        assert headers[EVENT_HEADER] == "leaf.added"
        expected = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        assert headers[SIGNATURE_HEADER] == f"sha256={expected}"

    @patch("merkle_ledger.events.httpx.Client")
    def test_unsigned_without_secret(self, mock_client_cls, leaf_event):
        mock_client = MagicMock()
        mock_client.post.return_value = MagicMock(is_success=True)
        mock_client_cls.return_value.__enter__.return_value = mock_client

        notifier = WebhookNotifier(url="http://hooks.test/merkle", secret="")
        notifier(leaf_event).result(timeout=5)
        notifier.shutdown()

        assert SIGNATURE_HEADER not in mock_client.post.call_args.kwargs["headers"]

    @patch("merkle_ledger.events.httpx.Client")
    def test_http_error_is_reported_not_raised(self, mock_client_cls, leaf_event):
        mock_client = MagicMock()
        mock_client.post.side_effect = httpx.ConnectError("refused")
        mock_client_cls.return_value.__enter__.return_value = mock_client

        notifier = WebhookNotifier(url="http://hooks.test/merkle", secret="x")
        assert notifier(leaf_event).result(timeout=5) is False
        notifier.shutdown()

    @patch("merkle_ledger.events.httpx.Client")
    def test_non_2xx_is_reported(self, mock_client_cls, leaf_event):
        mock_client = MagicMock()
        mock_client.post.return_value = MagicMock(is_success=False, status_code=503)
        mock_client_cls.return_value.__enter__.return_value = mock_client

        notifier = WebhookNotifier(url="http://hooks.test/merkle", secret="x")
        assert notifier(leaf_event).result(timeout=5) is False
        notifier.shutdown()

    def test_sign_body(self):
        digest = hmac.new(b"k", b"body", hashlib.sha256).hexdigest()
        assert sign_body("k", b"body") == f"sha256={digest}"


class TestSchemas:
    def test_root_updated_requires_leaves(self):
        with pytest.raises(ValueError):
            RootUpdated(root="0x" + "00" * 32, leaf_count=0)

    def test_export_writes_files(self, tmp_path):
        schemas = export_json_schemas(tmp_path)
        assert set(schemas) >= {"LeafAdded", "RootUpdated", "MerkleProof"}
        written = tmp_path / "MerkleProof.v1.0.schema.json"
        assert written.exists()
        assert json.loads(written.read_text())["title"] == "MerkleProof"
