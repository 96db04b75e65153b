"""Tests for the persistent session store."""

from __future__ import annotations

import json
import stat
from pathlib import Path

from termtune.auth.session_store import SessionStore
from termtune.models import TokenSet


class TestSave:
    def test_writes_all_fields(self, tmp_path: Path, tokens: TokenSet) -> None:
        path = tmp_path / "session.json"
        SessionStore(path).save(tokens)

        data = json.loads(path.read_text())
        assert data == {
            "access_token": "access-token-A",
            "refresh_token": "refresh-token-R1",
            "expires_in": 3600,
            "scope": "user-read-playback-state user-modify-playback-state",
        }

    def test_file_is_owner_only(self, tmp_path: Path, tokens: TokenSet) -> None:
        path = tmp_path / "session.json"
        SessionStore(path).save(tokens)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_creates_parent_directories(self, tmp_path: Path, tokens: TokenSet) -> None:
        path = tmp_path / "a" / "b" / "session.json"
        SessionStore(path).save(tokens)
        assert path.is_file()

    def test_overwrite_leaves_no_temp_files(self, tmp_path: Path, tokens: TokenSet) -> None:
        store = SessionStore(tmp_path / "session.json")
        store.save(tokens)
        store.save(tokens.model_copy(update={"access_token": "B"}))

        assert [p.name for p in tmp_path.iterdir()] == ["session.json"]
        assert store.load().access_token == "B"


class TestLoad:
    def test_roundtrip(self, tmp_path: Path, tokens: TokenSet) -> None:
        store = SessionStore(tmp_path / "session.json")
        store.save(tokens)
        assert store.load() == tokens

    def test_missing_file(self, tmp_path: Path) -> None:
        assert SessionStore(tmp_path / "nope.json").load() is None

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        path.write_text("{not json")
        assert SessionStore(path).load() is None

    def test_wrong_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        path.write_text(json.dumps(["access_token"]))
        assert SessionStore(path).load() is None

    def test_empty_access_token(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        path.write_text(json.dumps({"access_token": "", "refresh_token": "R"}))
        assert SessionStore(path).load() is None

    def test_binary_garbage(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        assert SessionStore(path).load() is None


class TestClear:
    def test_removes_file(self, tmp_path: Path, tokens: TokenSet) -> None:
        store = SessionStore(tmp_path / "session.json")
        store.save(tokens)
        store.clear()
        assert not store.path.exists()

    def test_missing_file_is_noop(self, tmp_path: Path) -> None:
        SessionStore(tmp_path / "session.json").clear()
