"""Grammar for emergency patch titles.

A title names the change kind, the Jira issue and a short description::

    feat (ABC-123): Fix a bug
    ^^^^  ^^^^^^^   ^^^^^^^^^
    kind  issue id  title

Each matcher takes a ``Cursor`` and returns the matched value together with
the advanced cursor, or a ``TitleError`` positioned where the expected token
was missing. ``parse_title`` chains the matchers left to right and stops at
the first failure; there is no backtracking between matchers.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from ep.core.result import Err, Ok, Result

__all__ = [
    "Cursor",
    "Kind",
    "ParsedTitle",
    "TitleError",
    "TitleErrorKind",
    "match_issue_id",
    "match_kind",
    "match_title",
    "parse_title",
]

TitleErrorKind = Literal[
    "unrecognized_kind",
    "missing_identifier",
    "missing_title",
    "trailing_input",
]

_WHITESPACE = " \t\r\n\f\v"


class Kind(Enum):
    """What a patch does: add a feature or fix a defect."""

    FEATURE = "feature"
    FIX = "fix"

    @property
    def token(self) -> str:
        """Short spelling used when rendering a title."""
        return "feat" if self is Kind.FEATURE else "fix"

    def __str__(self) -> str:
        return self.value


# "feature" is tried before "feat" so the longer word is consumed whole.
_KIND_LITERALS: tuple[tuple[str, Kind], ...] = (
    ("fix", Kind.FIX),
    ("feature", Kind.FEATURE),
    ("feat", Kind.FEATURE),
)

# label, expectation
_RULES: dict[TitleErrorKind, tuple[str | None, str]] = {
    "unrecognized_kind": ("kind", "fix or feat"),
    "missing_identifier": ("jira id", "a valid jira id"),
    "missing_title": ("title", "any valid title"),
    "trailing_input": (None, "end of input"),
}


@dataclass(frozen=True, slots=True)
class ParsedTitle:
    """Structured fields of a valid title.

    Attributes:
        kind: Feature or fix.
        issue_id: ASCII alphanumerics and hyphens, never empty.
        title: Non-empty ASCII text without surrounding whitespace.
    """

    kind: Kind
    issue_id: str
    title: str

    def canonical(self) -> str:
        """Render as ``<kind> (<id>): <title>``; parses back to an equal value."""
        return f"{self.kind.token} ({self.issue_id}): {self.title}"


@dataclass(frozen=True, slots=True)
class TitleError:
    """Why and where a title failed to parse.

    Attributes:
        kind: Which rule failed.
        offset: Character offset into the input where matching stopped.
        expected: Human-readable description of what was expected.
        label: Grammar rule that was active ("kind", "jira id", "title"),
            None for trailing input.
        remaining: Unconsumed input from ``offset`` on.
    """

    kind: TitleErrorKind
    offset: int
    expected: str
    label: str | None = None
    remaining: str = ""

    def pretty(self) -> str:
        if self.label is None:
            return (
                f"unexpected trailing input at offset {self.offset}: "
                f"{self.remaining!r} (expected {self.expected})"
            )
        return f"invalid {self.label} at offset {self.offset}: expected {self.expected}"

    def pointer(self, text: str) -> str:
        """Return ``text`` with a caret on the next line under ``offset``.

        Tabs before ``offset`` are repeated in the caret line so the caret
        stays aligned whatever the tab width.
        """
        pad = "".join(c if c == "\t" else " " for c in text[: self.offset])
        return f"{text}\n{pad}^"

    def __str__(self) -> str:
        return self.pretty()


def _is_space(c: str) -> bool:
    return c in _WHITESPACE


def _is_issue_char(c: str) -> bool:
    return (c.isascii() and c.isalnum()) or c == "-"


@dataclass(frozen=True, slots=True)
class Cursor:
    """Immutable position in the input."""

    text: str
    pos: int = 0

    @property
    def rest(self) -> str:
        return self.text[self.pos :]

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def take_while(self, pred: Callable[[str], bool]) -> tuple[str, Cursor]:
        """Consume the longest run of characters satisfying ``pred``."""
        text = self.text
        end = self.pos
        while end < len(text) and pred(text[end]):
            end += 1
        return text[self.pos : end], Cursor(text, end)

    def skip_whitespace(self) -> Cursor:
        return self.take_while(_is_space)[1]

    def literal(self, expected: str, *, caseless: bool = False) -> Cursor | None:
        """Consume ``expected`` at the current position, or return None.

        With ``caseless`` the comparison ignores ASCII case; ``expected`` must
        be lower case.
        """
        end = self.pos + len(expected)
        chunk = self.text[self.pos : end]
        if caseless:
            matched = chunk.isascii() and chunk.lower() == expected
        else:
            matched = chunk == expected
        if not matched:
            return None
        return Cursor(self.text, end)


def _fail(kind: TitleErrorKind, at: Cursor) -> Err[TitleError]:
    label, expected = _RULES[kind]
    return Err(
        TitleError(kind=kind, offset=at.pos, expected=expected, label=label, remaining=at.rest)
    )


def match_kind(cursor: Cursor) -> Result[tuple[Kind, Cursor], TitleError]:
    """Match ``fix``, ``feat`` or ``feature`` in any letter case."""
    for literal, kind in _KIND_LITERALS:
        after = cursor.literal(literal, caseless=True)
        if after is not None:
            return Ok((kind, after))
    return _fail("unrecognized_kind", cursor)


def match_issue_id(cursor: Cursor) -> Result[tuple[str, Cursor], TitleError]:
    """Match ``( ABC-123 )`` with optional whitespace around each part."""
    start = cursor.skip_whitespace()
    opened = start.literal("(")
    if opened is None:
        return _fail("missing_identifier", start)

    issue_id, after_id = opened.skip_whitespace().take_while(_is_issue_char)
    if not issue_id:
        return _fail("missing_identifier", after_id)

    before_close = after_id.skip_whitespace()
    closed = before_close.literal(")")
    if closed is None:
        return _fail("missing_identifier", before_close)

    return Ok((issue_id, closed))


def match_title(cursor: Cursor) -> Result[tuple[str, Cursor], TitleError]:
    """Match ``: some text``.

    The text is the longest run of ASCII characters, so punctuation such as a
    stray ``)`` belongs to the title. A non-ASCII character ends the run.
    """
    start = cursor.skip_whitespace()
    colon = start.literal(":")
    if colon is None:
        return _fail("missing_title", start)

    body_start = colon.skip_whitespace()
    run, after = body_start.take_while(str.isascii)
    title = run.rstrip(_WHITESPACE)
    if not title:
        return _fail("missing_title", body_start)

    return Ok((title, after))


def parse_title(text: str) -> Result[ParsedTitle, TitleError]:
    """Parse a full title line.

    Args:
        text: A single line, e.g. a merge request title.

    Returns:
        Ok(ParsedTitle), or Err(TitleError) from the first matcher that
        failed. Anything but whitespace after the title is a
        ``trailing_input`` error.

    Example:
        >>> parse_title("fix(XY-1):no spaces")
        Ok(ParsedTitle(kind=<Kind.FIX: 'fix'>, issue_id='XY-1', title='no spaces'))
    """
    cursor = Cursor(text)

    kind_result = match_kind(cursor)
    if isinstance(kind_result, Err):
        return kind_result
    kind, cursor = kind_result.value

    issue_result = match_issue_id(cursor)
    if isinstance(issue_result, Err):
        return issue_result
    issue_id, cursor = issue_result.value

    title_result = match_title(cursor)
    if isinstance(title_result, Err):
        return title_result
    title, cursor = title_result.value

    cursor = cursor.skip_whitespace()
    if not cursor.at_end():
        return _fail("trailing_input", cursor)

    return Ok(ParsedTitle(kind=kind, issue_id=issue_id, title=title))
