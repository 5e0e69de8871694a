"""Tests for the offline CLI mode."""

from __future__ import annotations

import json
import sys

import pytest

from merkle_ledger.__main__ import main, read_leaves, root_of
from merkle_ledger.merkle import PairHasher, leaf_from_int, reduce_root, to_hex


@pytest.fixture
def leaf_file(tmp_path):
    path = tmp_path / "leaves.txt"
    lines = ["# three leaves", to_hex(leaf_from_int(1)), "", leaf_from_int(2).hex()]
    lines.append(to_hex(leaf_from_int(3)) + "  # last")
    path.write_text("\n".join(lines) + "\n")
    return path


class TestReadLeaves:
    def test_skips_comments_and_blanks(self, leaf_file):
        assert read_leaves(str(leaf_file)) == [leaf_from_int(i) for i in (1, 2, 3)]

    def test_reports_line_number(self, tmp_path):
        path = tmp_path / "bad.txt"
        path.write_text(to_hex(leaf_from_int(1)) + "\n0x1234\n")
        with pytest.raises(ValueError, match="bad.txt:2"):
            read_leaves(str(path))


class TestRootOf:
    def test_root(self, leaf_file):
        result = root_of(str(leaf_file), "keccak256")
        expected = reduce_root([leaf_from_int(i) for i in (1, 2, 3)], PairHasher())
        assert result["leaf_count"] == 3
        assert result["root"] == to_hex(expected)
        assert "proof" not in result

    def test_root_with_proof(self, leaf_file):
        result = root_of(str(leaf_file), "sha256", prove=2)
        assert result["hash_algorithm"] == "sha256"
        assert result["proof"]["leaf_index"] == 2
        assert len(result["proof"]["siblings"]) == 1

    def test_main_prints_json(self, leaf_file, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["merkle-ledger", "--root-of", str(leaf_file)])
        with pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 0
        assert json.loads(capsys.readouterr().out)["leaf_count"] == 3

    def test_main_out_of_range_exits_1(self, leaf_file, monkeypatch, capsys):
        monkeypatch.setattr(
            sys, "argv", ["merkle-ledger", "--root-of", str(leaf_file), "--prove", "3"]
        )
        with pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 1
        assert "out of range" in capsys.readouterr().err
