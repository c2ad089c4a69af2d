from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "config_missing",
    "auth_failed",
    "network",
    "invalid_response",
    "no_release_branch",
    "branch_exists",
    "mr_exists",
    "invalid_title",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical workflow error payload, rendered by the CLI."""

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
