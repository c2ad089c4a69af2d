from __future__ import annotations

import re
from dataclasses import dataclass

_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def bump_patch(self) -> SemVer:
        return SemVer(self.major, self.minor, self.patch + 1)


def parse_version(text: str) -> SemVer | None:
    m = _VERSION_RE.match(text)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def parse_release_branch(name: str, *, prefix: str) -> SemVer | None:
    """Version of a ``<prefix>X.Y.Z`` branch, or None for any other name."""
    if not name.startswith(prefix):
        return None
    return parse_version(name[len(prefix) :])


def release_branch_regex(prefix: str) -> str:
    """Server-side filter passed to the GitLab branches API."""
    return f"^{re.escape(prefix)}\\d+\\.\\d+\\.\\d+$"


def latest_release(names: list[str], *, prefix: str) -> SemVer | None:
    versions = [v for v in (parse_release_branch(n, prefix=prefix) for n in names) if v is not None]
    return max(versions, default=None)
