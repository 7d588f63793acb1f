import asyncio

import pytest

from midixml.core.config import MUSESCORE_CANDIDATES, load_settings
from midixml.core.errors import (
    ConversionError,
    GenerationFailureError,
    MalformedInputError,
    ToolNotFoundAtRuntime,
)
from midixml.models.convert import ConversionJob
from midixml.services.convert import check_result, output_path_for
from midixml.services.locator import discover_tool, find_tool


@pytest.mark.parametrize("src,dst", [
    ("uploads/1-2.mid", "uploads/1-2.musicxml"),
    ("/tmp/a.MIDI", "/tmp/a.musicxml"),
    ("/tmp/mid.midi", "/tmp/mid.musicxml"),
])
def test_output_path_for(src, dst):
    assert output_path_for(src) == dst


def _job(tmp_path, **kw) -> ConversionJob:
    values = dict(
        input_path=str(tmp_path / "x.mid"),
        output_path=str(tmp_path / "x.musicxml"),
        timeout=1.0,
        command="mscore",
        returncode=0,
    )
    values.update(kw)
    return ConversionJob(**values)


@pytest.mark.parametrize("code,stderr,exc", [
    (127, "", ToolNotFoundAtRuntime),
    (1, "Cannot read file x.mid", MalformedInputError),
    (2, "boom", ConversionError),
])
def test_check_result_classification(tmp_path, code, stderr, exc):
    with pytest.raises(exc):
        check_result(_job(tmp_path, returncode=code, stderr=stderr))


def test_check_result_missing_output(tmp_path):
    with pytest.raises(GenerationFailureError):
        check_result(_job(tmp_path))


def test_check_result_ok(tmp_path):
    (tmp_path / "x.musicxml").write_text("<score-partwise/>")
    check_result(_job(tmp_path))


def test_find_tool_order(make_stub):
    first, second = make_stub("ok"), make_stub("failing")
    assert find_tool(["no-such-musescore-binary", first, second]) == first
    assert find_tool(["no-such-musescore-binary"]) is None


def test_discover_tool(make_stub):
    stub = make_stub("ok")
    assert asyncio.run(discover_tool([stub])) == stub
    assert asyncio.run(discover_tool([])) is None


def test_load_settings_defaults(monkeypatch):
    for var in ("PORT", "MAX_UPLOAD_BYTES", "CONVERT_TIMEOUT", "MUSESCORE_CANDIDATES", "MUSESCORE_DISPLAY"):
        monkeypatch.delenv(var, raising=False)
    s = load_settings()
    assert s.port == 3000
    assert s.max_upload_bytes == 10 * 1024 * 1024
    assert s.convert_timeout == 30
    assert s.candidates == MUSESCORE_CANDIDATES
    assert s.tool_env()["DISPLAY"] == ":99"


def test_load_settings_env(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("MUSESCORE_CANDIDATES", "mscore4, /opt/ms/bin/mscore")
    monkeypatch.setenv("MUSESCORE_DISPLAY", "")
    monkeypatch.setenv("QT_OFFSCREEN", "true")
    s = load_settings()
    assert s.port == 8080
    assert s.candidates == ["mscore4", "/opt/ms/bin/mscore"]
    assert s.display is None
    assert s.tool_env()["QT_QPA_PLATFORM"] == "offscreen"
