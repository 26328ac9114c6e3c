"""Tests for opening the viewer in a browser."""

from __future__ import annotations

import webbrowser

import pytest

from aspose_preview.browser import open_browser

pytestmark = pytest.mark.unit


async def test_open_browser_success(monkeypatch: pytest.MonkeyPatch) -> None:
    opened: list[str] = []
    monkeypatch.setattr(webbrowser, "open", lambda url: opened.append(url) or True)

    assert await open_browser("http://localhost:3000") is True
    assert opened == ["http://localhost:3000"]


async def test_open_browser_failure_is_not_raised(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def _fail(url: str) -> bool:
        raise webbrowser.Error("no browser")

    monkeypatch.setattr(webbrowser, "open", _fail)

    with caplog.at_level("INFO", logger="aspose_preview"):
        assert await open_browser("http://localhost:3000") is False

    assert "Please open http://localhost:3000 manually" in caplog.text


async def test_open_browser_not_opened(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(webbrowser, "open", lambda url: False)

    assert await open_browser("http://localhost:3000") is False
