from __future__ import annotations

from dataclasses import dataclass

from ep.services.release.semver import SemVer


@dataclass(frozen=True, slots=True)
class Branch:
    name: str
    commit_sha: str | None = None


@dataclass(frozen=True, slots=True)
class MergeRequest:
    iid: int
    web_url: str
    source_branch: str
    target_branch: str


@dataclass(frozen=True, slots=True)
class MergeRequestDraft:
    """A merge request we intend to open."""

    source_branch: str
    target_branch: str
    title: str
    description: str
    assignee_id: int | None = None


@dataclass(frozen=True, slots=True)
class PatchPlan:
    latest: SemVer
    patch: SemVer
    source_branch: str
    patch_branch: str
    merge_requests: tuple[MergeRequestDraft, ...]


@dataclass(frozen=True, slots=True)
class PatchOutcome:
    plan: PatchPlan
    branch_created: bool
    merge_requests: tuple[MergeRequest, ...]
    dry_run: bool = False
