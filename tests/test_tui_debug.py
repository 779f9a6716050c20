from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

from billbrowse.core.router import KeyEvent, KeyKind, ModalContext
from billbrowse.tui.debug import DebugLogger
from billbrowse.tui.keys import classify_key
from billbrowse.tui.widgets import SearchBox


def _app(context=ModalContext.NONE):
    return SimpleNamespace(browser=SimpleNamespace(context=context))


def test_debug_logger_disabled_by_default(monkeypatch) -> None:
    monkeypatch.delenv("BILLBROWSE_TUI_DEBUG", raising=False)
    monkeypatch.delenv("BILLBROWSE_TUI_DEBUG_FILE", raising=False)
    logger = DebugLogger(_app())
    logger.log(event="key", data={"key": "q"})
    assert logger.events == []


def test_debug_logger_writes_ndjson(tmp_path: Path, monkeypatch) -> None:
    out = tmp_path / "debug.ndjson"
    monkeypatch.setenv("BILLBROWSE_TUI_DEBUG_FILE", str(out))
    logger = DebugLogger(_app(ModalContext.HELP))
    logger.log(event="key", data={"key": "h"})
    logger.log(event="context", data={"to": "none"})
    logger.close()

    lines = out.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["event"] == "key"
    assert first["context"] == "help"
    assert first["data"] == {"key": "h"}
    assert [e["event"] for e in logger.events] == ["key", "context"]


def test_debug_logger_trims_memory(monkeypatch) -> None:
    monkeypatch.setenv("BILLBROWSE_TUI_DEBUG", "1")
    monkeypatch.delenv("BILLBROWSE_TUI_DEBUG_FILE", raising=False)
    logger = DebugLogger(_app())
    for i in range(501):
        logger.log(event="tick", data={"i": i})
    events = logger.events
    assert len(events) == 250
    assert events[-1]["data"] == {"i": 500}


def test_debug_logger_bad_path_never_raises(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("BILLBROWSE_TUI_DEBUG_FILE", str(tmp_path / "missing_dir" / "x.ndjson"))
    logger = DebugLogger(_app())
    logger.log(event="key")
    assert len(logger.events) == 1


def test_classify_key() -> None:
    assert classify_key("enter").kind is KeyKind.CONFIRM
    assert classify_key("escape").kind is KeyKind.ESCAPE
    assert classify_key("backspace").kind is KeyKind.BACKSPACE
    assert classify_key("f", "f") == KeyEvent.character("f")
    assert classify_key("question_mark", "?") == KeyEvent.character("?")
    assert classify_key("ctrl+x", None) is None
    assert classify_key("f1", None) is None


def test_search_box_feed() -> None:
    assert SearchBox.feed(KeyEvent.character("a"), "bo") == "boa"
    assert SearchBox.feed(KeyEvent(kind=KeyKind.BACKSPACE), "bob") == "bo"
    assert SearchBox.feed(KeyEvent(kind=KeyKind.BACKSPACE), "") == ""
    assert SearchBox.feed(KeyEvent(kind=KeyKind.TAB), "bob") is None
