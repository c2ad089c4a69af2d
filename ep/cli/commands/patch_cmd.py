from __future__ import annotations

from pathlib import Path

import typer

from ep.cli.commands._helpers import exit_on_error
from ep.cli.context import build_context, make_client, make_console
from ep.core.errors import ErrorCode
from ep.core.result import Err
from ep.release.title import ParsedTitle
from ep.services.release.service import resolve_title, run_emergency_patch

_EXIT_CODES: dict[str, ErrorCode] = {
    "config_missing": ErrorCode.ENV_ERROR,
    "auth_failed": ErrorCode.ENV_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "invalid_response": ErrorCode.NETWORK_ERROR,
}


def patch(
    title: str | None = typer.Option(
        None,
        "--title",
        help="Conventional title, e.g. 'fix (ABC-123): Repair login'.",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Plan only; create nothing."),
    config_path: Path | None = typer.Option(None, "--config", help="Path to ep.toml."),
    env_file: Path | None = typer.Option(None, "--env-file", help="Path to a .env file."),
) -> None:
    """Cut an emergency patch branch from the latest release and open MRs."""
    parsed: ParsedTitle | None = None
    if title is not None:
        parsed = exit_on_error(resolve_title(title), make_console(), ErrorCode.USER_ERROR)

    ctx = build_context(config_path=config_path, env_file=env_file)
    console = ctx.console

    result = run_emergency_patch(
        client=make_client(ctx),
        release=ctx.config.release,
        console=console,
        assignee_id=ctx.credentials.assignee_id,
        title=parsed,
        dry_run=dry_run,
    )
    if isinstance(result, Err):
        code = _EXIT_CODES.get(result.error.kind, ErrorCode.USER_ERROR)
        exit_on_error(result, console, code)
        return

    outcome = result.value
    if not outcome.dry_run:
        console.success(
            f"{outcome.plan.patch_branch}: {len(outcome.merge_requests)} merge request(s) opened"
        )
