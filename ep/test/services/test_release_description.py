from __future__ import annotations

from ep.release.title import Kind, ParsedTitle
from ep.services.release.description import render_description, render_title


def test_title_without_parsed_title() -> None:
    assert render_title("release/1.2.3") == "EMERGENCY PRODUCTION PATCH (release/1.2.3)"


def test_title_with_parsed_title() -> None:
    parsed = ParsedTitle(kind=Kind.FIX, issue_id="ABC-1", title="Repair login")
    assert (
        render_title("release/1.2.3", parsed)
        == "EMERGENCY PRODUCTION PATCH (release/1.2.3): fix (ABC-1): Repair login"
    )


def test_description_contains_checkout_snippet_and_checklist() -> None:
    text = render_description("release/1.2.4")
    assert "git pull origin release/1.2.4 && git checkout release/1.2.4" in text
    assert "### Why this change is necessary?" in text
    assert "### What does this change do?" in text
    assert "### How to test this change?" in text
    assert "Jira" not in text


def test_description_with_parsed_title() -> None:
    parsed = ParsedTitle(kind=Kind.FEATURE, issue_id="ABC-9", title="Add export")
    text = render_description("release/1.2.4", parsed)
    assert "**Jira:** ABC-9 | **Kind:** feature" in text
    assert "### What does this change do?\n\nAdd export\n" in text
