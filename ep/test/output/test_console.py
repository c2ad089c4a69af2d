"""Tests for ep.output.console module."""

from __future__ import annotations

import pytest

from ep.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestMockConsole:
    def test_records_styles(self) -> None:
        console = MockConsole()
        console.print("plain")
        console.success("done")
        console.error("broke")
        console.warning("careful")
        console.info("fyi")
        console.header("Section")
        console.newline()

        assert console.messages == [
            "plain",
            "OK done",
            "error: broke",
            "warning: careful",
            "info: fyi",
            "Section",
            "",
        ]
        assert [o.style for o in console.outputs] == [
            Style.DEFAULT,
            Style.SUCCESS,
            Style.ERROR,
            Style.WARNING,
            Style.INFO,
            Style.HEADER,
            Style.DEFAULT,
        ]
        assert console.has_error()
        assert console.has_warning()

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.info("typed")


class TestRichConsole:
    def test_brackets_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("fix (A-1): handle [bold] tags")
        console.error("[red]x[/red]")
        out = capsys.readouterr().out
        assert "fix (A-1): handle [bold] tags" in out
        assert "error: [red]x[/red]" in out

    def test_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole(stderr=True).warning("careful")
        captured = capsys.readouterr()
        assert "warning: careful" in captured.err
        assert captured.out == ""
