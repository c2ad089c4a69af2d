"""Typed configuration loading and access.

Settings come from three places, lowest precedence first:
- built-in defaults
- an optional ``ep.toml`` file
- environment variables (optionally seeded from a ``.env`` file)

Credentials are only ever read from the environment.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_str_list, get_table

__all__ = [
    "Config",
    "ConfigError",
    "Credentials",
    "GitLabConfig",
    "ReleaseConfig",
    "CONFIG_FILE_NAME",
    "DEFAULT_GITLAB_HOST",
    "DEFAULT_BRANCH_PREFIX",
    "DEFAULT_TARGET_BRANCHES",
    "apply_env",
    "load_config",
    "load_config_or_default",
    "load_credentials",
    "load_env_file",
]

CONFIG_FILE_NAME = "ep.toml"

DEFAULT_GITLAB_HOST = "gitlab.com"
DEFAULT_BRANCH_PREFIX = "release/"
DEFAULT_TARGET_BRANCHES = ("master", "dev")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config or credentials cannot be loaded."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class GitLabConfig:
    """Where the release branches live."""

    host: str = DEFAULT_GITLAB_HOST
    project_id: str | None = None

    @property
    def api_url(self) -> str:
        host = self.host.rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return f"{host}/api/v4"


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Release branch naming and merge request targets."""

    branch_prefix: str = DEFAULT_BRANCH_PREFIX
    targets: tuple[str, ...] = DEFAULT_TARGET_BRANCHES


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    gitlab: GitLabConfig = field(default_factory=GitLabConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        gitlab: StrDict = get_table(data, "gitlab") or {}
        release: StrDict = get_table(data, "release") or {}

        # TOML users often write project_id as a bare integer.
        project_id = gitlab.get("project_id")
        if isinstance(project_id, int) and not isinstance(project_id, bool):
            project_id = str(project_id)
        elif not isinstance(project_id, str):
            project_id = None

        targets = get_str_list(release, "targets")

        return cls(
            gitlab=GitLabConfig(
                host=get_str(gitlab, "host") or DEFAULT_GITLAB_HOST,
                project_id=project_id.strip() if project_id else None,
            ),
            release=ReleaseConfig(
                branch_prefix=get_str(release, "branch_prefix") or DEFAULT_BRANCH_PREFIX,
                targets=tuple(targets) if targets else DEFAULT_TARGET_BRANCHES,
            ),
        )


@dataclass(frozen=True, slots=True)
class Credentials:
    """GitLab credentials resolved from the environment.

    In CI the job token is used; locally a personal access token.
    """

    token: str
    job_token: bool = False
    assignee_id: int | None = None

    @property
    def header(self) -> tuple[str, str]:
        if self.job_token:
            return ("JOB-TOKEN", self.token)
        return ("PRIVATE-TOKEN", self.token)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to ep.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Like load_config, but a missing file yields the default config."""
    if not path.exists():
        return Ok(Config())
    return load_config(path)


def load_env_file(path: Path | None = None) -> bool:
    """Seed os.environ from a .env file without overriding existing values.

    Without a path, the nearest .env from the working directory upwards
    is used. Returns True if a file was found and loaded.
    """
    if path is None:
        found = find_dotenv(usecwd=True)
        if not found:
            return False
        return load_dotenv(dotenv_path=found, override=False)
    return load_dotenv(dotenv_path=path, override=False)


def apply_env(config: Config, env: Mapping[str, str]) -> Config:
    """Override file settings with GITLAB_HOST / GITLAB_PROJECT_ID."""
    host = env.get("GITLAB_HOST", "").strip()
    project_id = env.get("GITLAB_PROJECT_ID", "").strip()
    gitlab = config.gitlab
    if host:
        gitlab = replace(gitlab, host=host)
    if project_id:
        gitlab = replace(gitlab, project_id=project_id)
    return replace(config, gitlab=gitlab)


def load_credentials(env: Mapping[str, str]) -> Result[Credentials, ConfigError]:
    """Resolve the GitLab token and merge request assignee.

    Args:
        env: Environment mapping (usually os.environ)

    Returns:
        Ok(Credentials), or Err(ConfigError) naming the missing variable
    """
    in_ci = bool(env.get("CI"))
    var = "CI_JOB_TOKEN" if in_ci else "ACCESS_TOKEN"
    token = env.get(var, "").strip()
    if not token:
        return Err(
            ConfigError(
                f"{var} is not set",
                hint="Export it or add it to .env" if not in_ci else None,
            )
        )

    assignee_id: int | None = None
    raw_assignee = env.get("GITLAB_USER_ID", "").strip()
    if raw_assignee:
        try:
            assignee_id = int(raw_assignee)
        except ValueError:
            return Err(ConfigError(f"GITLAB_USER_ID must be an integer: {raw_assignee!r}"))

    return Ok(Credentials(token=token, job_token=in_ci, assignee_id=assignee_id))
