from __future__ import annotations

from ep.core.config import ReleaseConfig
from ep.core.result import Err, Ok, Result
from ep.output.console import ConsoleProtocol, Style
from ep.release.title import ParsedTitle, parse_title
from ep.services.release.description import render_description, render_title
from ep.services.release.errors import ReleaseError
from ep.services.release.gitlab import GitLabClient, GitLabError
from ep.services.release.model import MergeRequest, MergeRequestDraft, PatchOutcome, PatchPlan
from ep.services.release.semver import latest_release, release_branch_regex

_AUTH_STATUSES = frozenset({401, 403})


def _release_error(error: GitLabError, *, message: str) -> ReleaseError:
    if error.status in _AUTH_STATUSES:
        return ReleaseError(
            kind="auth_failed",
            message=f"{message}: {error.message}",
            hint="Check ACCESS_TOKEN (or CI_JOB_TOKEN in CI)",
        )
    if error.kind == "payload":
        return ReleaseError(kind="invalid_response", message=f"{message}: {error.message}")
    return ReleaseError(kind="network", message=f"{message}: {error}")


def _already_exists(error: GitLabError) -> bool:
    if error.kind != "http":
        return False
    if error.status == 409:
        return True
    return error.status == 400 and "already exists" in error.message.lower()


def resolve_title(text: str) -> Result[ParsedTitle, ReleaseError]:
    """Parse a user-supplied title, converting failures to ReleaseError."""
    return parse_title(text).map_err(
        lambda error: ReleaseError(
            kind="invalid_title",
            message=f"invalid title: {error.pretty()}",
            hint="expected e.g. 'fix (ABC-123): Repair login'",
        )
    )


def plan_emergency_patch(
    *,
    client: GitLabClient,
    release: ReleaseConfig,
    assignee_id: int | None = None,
    title: ParsedTitle | None = None,
) -> Result[PatchPlan, ReleaseError]:
    """Find the latest release branch and describe the patch to cut from it."""
    prefix = release.branch_prefix
    listed = client.list_branches(regex=release_branch_regex(prefix))
    if isinstance(listed, Err):
        return Err(_release_error(listed.error, message="failed to list release branches"))

    latest = latest_release([b.name for b in listed.value], prefix=prefix)
    if latest is None:
        return Err(
            ReleaseError(
                kind="no_release_branch",
                message=f"No branches found based on the {prefix}x.x.x pattern",
            )
        )

    patch = latest.bump_patch()
    source_branch = f"{prefix}{latest}"
    patch_branch = f"{prefix}{patch}"
    drafts = tuple(
        MergeRequestDraft(
            source_branch=patch_branch,
            target_branch=target,
            title=render_title(source_branch, title),
            description=render_description(patch_branch, title),
            assignee_id=assignee_id,
        )
        for target in release.targets
    )
    return Ok(
        PatchPlan(
            latest=latest,
            patch=patch,
            source_branch=source_branch,
            patch_branch=patch_branch,
            merge_requests=drafts,
        )
    )


def execute_plan(
    *,
    client: GitLabClient,
    plan: PatchPlan,
    console: ConsoleProtocol,
) -> Result[PatchOutcome, ReleaseError]:
    """Create the patch branch and its merge requests.

    A branch or merge request that already exists is reported as a warning
    and skipped. Planning always bumps past the newest release branch, so
    this only happens when the plan went stale between planning and
    execution.
    """
    console.info(f"creating {plan.patch_branch} from {plan.source_branch}")
    created = client.create_branch(branch=plan.patch_branch, ref=plan.source_branch)
    branch_created = True
    if isinstance(created, Err):
        if not _already_exists(created.error):
            return Err(
                _release_error(created.error, message=f"failed to create {plan.patch_branch}")
            )
        branch_created = False
        console.warning(f"branch already exists: {plan.patch_branch}")

    opened: list[MergeRequest] = []
    for draft in plan.merge_requests:
        mr = client.create_merge_request(draft)
        if isinstance(mr, Err):
            if not _already_exists(mr.error):
                return Err(
                    _release_error(
                        mr.error,
                        message=f"failed to open merge request into {draft.target_branch}",
                    )
                )
            console.warning(
                f"merge request {draft.source_branch} -> {draft.target_branch} already open"
            )
            continue
        opened.append(mr.value)
        console.success(f"!{mr.value.iid} {draft.source_branch} -> {draft.target_branch}")
        console.print(f"  {mr.value.web_url}", Style.DIM)

    return Ok(PatchOutcome(plan=plan, branch_created=branch_created, merge_requests=tuple(opened)))


def run_emergency_patch(
    *,
    client: GitLabClient,
    release: ReleaseConfig,
    console: ConsoleProtocol,
    assignee_id: int | None = None,
    title: ParsedTitle | None = None,
    dry_run: bool = False,
) -> Result[PatchOutcome, ReleaseError]:
    planned = plan_emergency_patch(
        client=client, release=release, assignee_id=assignee_id, title=title
    )
    if isinstance(planned, Err):
        return planned

    plan = planned.value
    console.header("Emergency patch")
    console.print(f"latest release: {plan.source_branch}")
    console.print(f"emergency patch: {plan.patch_branch}")
    for draft in plan.merge_requests:
        console.print(f"merge request: {draft.source_branch} -> {draft.target_branch}", Style.DIM)

    if dry_run:
        console.info("dry run: nothing was created")
        return Ok(PatchOutcome(plan=plan, branch_created=False, merge_requests=(), dry_run=True))

    return execute_plan(client=client, plan=plan, console=console)
