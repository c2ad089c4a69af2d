"""Merge request text for emergency patches."""

from __future__ import annotations

from ep.release.title import ParsedTitle

MR_TITLE_PREFIX = "EMERGENCY PRODUCTION PATCH"

_DESCRIPTION = """\
## This is an auto-generated emergency patch aimed at PRODUCTION.
{summary}
To start working, switch to this branch:
```bash
git pull origin {branch} && git checkout {branch}
```

Please fill out the following checklist:

### Why this change is necessary?

### What does this change do?
{what}
### How to test this change?
"""


def render_title(source_branch: str, parsed: ParsedTitle | None = None) -> str:
    title = f"{MR_TITLE_PREFIX} ({source_branch})"
    if parsed is not None:
        title = f"{title}: {parsed.canonical()}"
    return title


def render_description(patch_branch: str, parsed: ParsedTitle | None = None) -> str:
    summary = ""
    what = ""
    if parsed is not None:
        summary = f"\n**Jira:** {parsed.issue_id} | **Kind:** {parsed.kind}\n"
        what = f"\n{parsed.title}\n"
    return _DESCRIPTION.format(summary=summary, branch=patch_branch, what=what)
