from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ep.cli.commands._helpers import exit_on_error, exit_with_code
from ep.core.config import (
    CONFIG_FILE_NAME,
    Config,
    Credentials,
    apply_env,
    load_config,
    load_config_or_default,
    load_credentials,
    load_env_file,
)
from ep.core.errors import ErrorCode
from ep.output.console import ConsoleProtocol, RichConsole, Style
from ep.services.release.gitlab import GitLabClient, RealGitLabClient


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    credentials: Credentials
    console: ConsoleProtocol

    @property
    def project_id(self) -> str:
        # build_context refuses to construct a context without one
        assert self.config.gitlab.project_id is not None
        return self.config.gitlab.project_id


def make_console() -> ConsoleProtocol:
    return RichConsole()


def build_context(
    *,
    config_path: Path | None = None,
    env_file: Path | None = None,
) -> CLIContext:
    console = make_console()

    if env_file is not None and not env_file.is_file():
        console.error(f"env file not found: {env_file}")
        exit_with_code(int(ErrorCode.ENV_ERROR))
    load_env_file(env_file)

    if config_path is not None:
        loaded = load_config(config_path)
    else:
        loaded = load_config_or_default(Path.cwd() / CONFIG_FILE_NAME)
    config = apply_env(exit_on_error(loaded, console, ErrorCode.ENV_ERROR), os.environ)

    if config.gitlab.project_id is None:
        console.error("GitLab project is not configured")
        console.print("hint: set GITLAB_PROJECT_ID or [gitlab] project_id in ep.toml", Style.DIM)
        exit_with_code(int(ErrorCode.ENV_ERROR))

    credentials = exit_on_error(load_credentials(os.environ), console, ErrorCode.ENV_ERROR)
    return CLIContext(config=config, credentials=credentials, console=console)


def make_client(ctx: CLIContext) -> GitLabClient:
    return RealGitLabClient(
        api_url=ctx.config.gitlab.api_url,
        project_id=ctx.project_id,
        credentials=ctx.credentials,
    )
