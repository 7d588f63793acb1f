# tests/conftest.py
from __future__ import annotations
import stat
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from midixml.core.config import Settings
from midixml.main import create_app

# --------------------------------------------------------------------
# Stub conversion tools: `<tool> -o <out> <in>` like MuseScore, and
# answer --version / --help with a line of text.
# --------------------------------------------------------------------
_INFO_FLAGS = 'if [ "$1" != "-o" ]; then echo "MuseScore3 stub 3.6.2"; exit 0; fi\n'

STUBS = {
    "ok": (
        "{ printf '<?xml version=\"1.0\"?><score-partwise><source>'; "
        "cat \"$3\"; printf '</source></score-partwise>'; } > \"$2\"\n"
    ),
    "malformed": 'echo "Cannot read file $3" >&2\nexit 1\n',
    "silent": "exit 0\n",
    "failing": 'echo "segmentation fault" >&2\nexit 3\n',
    "sleepy": "sleep 10\necho done > \"$2\"\n",
    "unreadable": "ln -s / \"$2\"\n",
    "latin1": "printf '<score-partwise>caf\\351</score-partwise>' > \"$2\"\n",
    "missing": 'echo "mscore: not found" >&2\nexit 127\n',
}

MIDI_BYTES = b"MThd\x00\x00\x00\x06\x00\x01\x00\x01\x00\x60MTrk\x00\x00\x00\x04\x00\x7f\x2f\x00"


@pytest.fixture
def upload_dir(tmp_path) -> str:
    d = tmp_path / "uploads"
    d.mkdir()
    return str(d)


@pytest.fixture
def make_stub(tmp_path) -> Callable[[str], str]:
    def _make(kind: str) -> str:
        path = tmp_path / f"mscore-{kind}"
        path.write_text("#!/bin/sh\n" + _INFO_FLAGS + STUBS[kind])
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)
    return _make


@pytest.fixture
def make_settings(upload_dir) -> Callable[..., Settings]:
    def _make(**overrides) -> Settings:
        values = dict(upload_dir=upload_dir, display=None, convert_timeout=5.0)
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def make_client(make_settings, make_stub) -> Iterator[Callable[..., TestClient]]:
    """Build a running client around a stub tool (or none, for kind=None)."""
    clients: list[TestClient] = []

    def _make(kind: str | None = "ok", **overrides) -> TestClient:
        candidates = [make_stub(kind)] if kind else ["no-such-musescore-binary"]
        settings = make_settings(candidates=candidates, **overrides)
        c = TestClient(create_app(settings))
        c.__enter__()
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client("ok")


@pytest.fixture
def midi_bytes() -> bytes:
    return MIDI_BYTES
