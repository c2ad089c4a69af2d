from __future__ import annotations

import json

import typer

from ep.cli.commands._helpers import exit_with_code
from ep.cli.context import make_console
from ep.core.errors import ErrorCode
from ep.core.result import Err
from ep.output.console import Style
from ep.release.title import parse_title


def title(
    text: str = typer.Argument(..., help="Title to check, e.g. 'fix (ABC-123): Repair login'"),
    as_json: bool = typer.Option(False, "--json", help="Print the parsed fields as JSON."),
) -> None:
    """Validate an emergency patch title and show its fields."""
    console = make_console()
    parsed = parse_title(text)
    if isinstance(parsed, Err):
        console.error(parsed.error.pretty())
        for line in parsed.error.pointer(text).splitlines():
            console.print(f"  {line}", Style.DIM)
        exit_with_code(int(ErrorCode.USER_ERROR))

    value = parsed.value
    if as_json:
        payload = {"kind": value.kind.value, "issue_id": value.issue_id, "title": value.title}
        typer.echo(json.dumps(payload))
        return

    console.success(value.canonical())
    console.print(f"kind:    {value.kind}")
    console.print(f"jira id: {value.issue_id}")
    console.print(f"title:   {value.title}")
