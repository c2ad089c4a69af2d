from __future__ import annotations

import re

from ep.services.release.semver import (
    SemVer,
    latest_release,
    parse_release_branch,
    parse_version,
    release_branch_regex,
)


def test_parse_version() -> None:
    assert parse_version("1.2.3") == SemVer(1, 2, 3)
    assert parse_version("0.0.0") == SemVer(0, 0, 0)


def test_parse_version_rejects_other_shapes() -> None:
    assert parse_version("v1.2.3") is None
    assert parse_version("1.2") is None
    assert parse_version("01.2.3") is None
    assert parse_version("1.2.3-rc.1") is None


def test_parse_release_branch_requires_prefix() -> None:
    assert parse_release_branch("release/2.10.0", prefix="release/") == SemVer(2, 10, 0)
    assert parse_release_branch("hotfix/2.10.0", prefix="release/") is None


def test_bump_patch_and_str() -> None:
    assert str(SemVer(1, 9, 9).bump_patch()) == "1.9.10"


def test_ordering_is_numeric() -> None:
    assert SemVer(1, 10, 0) > SemVer(1, 9, 99)


def test_latest_release_ignores_unparsable_names() -> None:
    names = ["release/1.2.3", "release/1.10.0", "release/1.11.0-wip", "release/x"]
    assert latest_release(names, prefix="release/") == SemVer(1, 10, 0)


def test_latest_release_empty() -> None:
    assert latest_release([], prefix="release/") is None


def test_release_branch_regex() -> None:
    pattern = re.compile(release_branch_regex("release/"))
    assert pattern.search("release/1.2.3")
    assert not pattern.search("release/1.2.3-wip")
    assert not pattern.search("old-release/1.2.3")
