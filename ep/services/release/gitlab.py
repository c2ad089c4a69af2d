"""GitLab REST client for the emergency patch workflow.

This module provides:
- GitLabClient: Protocol for the three project operations we need
- RealGitLabClient: Real implementation on top of urllib
- FakeGitLabClient: In-memory implementation for tests and dry runs
"""

from __future__ import annotations

import json
import re
import ssl
import urllib.error
from dataclasses import dataclass, field
from time import sleep
from typing import Literal, Protocol, runtime_checkable
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from ep import __version__
from ep.core.config import Credentials
from ep.core.result import Err, Ok, Result
from ep.core.structured import as_obj_list, as_str_dict, get_int, get_str, get_table
from ep.services.release.model import Branch, MergeRequest, MergeRequestDraft
from ep.services.release.timeouts import (
    GITLAB_PAGE_SIZE,
    GITLAB_READ_RETRY_ATTEMPTS,
    GITLAB_READ_RETRY_DELAY_SECONDS,
    GITLAB_TIMEOUT_SECONDS,
)

__all__ = [
    "GitLabClient",
    "GitLabError",
    "RealGitLabClient",
    "FakeGitLabClient",
]

GitLabErrorKind = Literal["http", "network", "payload"]

_TRANSIENT_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


@dataclass(frozen=True, slots=True)
class GitLabError:
    """GitLab API error details.

    Attributes:
        kind: "http" for error statuses, "network" when no response was
            received, "payload" when the response could not be understood.
        url: The URL that failed
        status: HTTP status code (0 unless kind is "http")
        message: Message from GitLab or the transport
    """

    kind: GitLabErrorKind
    url: str
    message: str
    status: int = 0

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"

    @property
    def transient(self) -> bool:
        return self.kind == "network" or self.status in _TRANSIENT_STATUSES


@runtime_checkable
class GitLabClient(Protocol):
    """Project-scoped GitLab operations used by the workflow."""

    def list_branches(self, *, regex: str) -> Result[list[Branch], GitLabError]: ...

    def create_branch(self, *, branch: str, ref: str) -> Result[Branch, GitLabError]: ...

    def create_merge_request(
        self, draft: MergeRequestDraft
    ) -> Result[MergeRequest, GitLabError]: ...


def _error_message(body: bytes, fallback: str) -> str:
    """Extract GitLab's ``message``/``error`` field from an error body."""
    try:
        obj: object = json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return fallback

    data = as_str_dict(obj)
    if data is None:
        return fallback
    message = data.get("message", data.get("error"))
    if isinstance(message, str) and message.strip():
        return message.strip()
    items = as_obj_list(message)
    if items:
        return "; ".join(str(item) for item in items)
    if isinstance(message, dict):
        return json.dumps(message, sort_keys=True)
    return fallback


def _parse_branch(obj: object) -> Branch | None:
    data = as_str_dict(obj)
    if data is None:
        return None
    name = get_str(data, "name")
    if name is None:
        return None
    commit = get_table(data, "commit")
    sha = get_str(commit, "id") if commit is not None else None
    return Branch(name=name, commit_sha=sha)


def _parse_merge_request(obj: object) -> MergeRequest | None:
    data = as_str_dict(obj)
    if data is None:
        return None
    iid = get_int(data, "iid")
    web_url = get_str(data, "web_url")
    source = get_str(data, "source_branch")
    target = get_str(data, "target_branch")
    if iid is None or web_url is None or source is None or target is None:
        return None
    return MergeRequest(iid=iid, web_url=web_url, source_branch=source, target_branch=target)


class RealGitLabClient:
    """GitLab v4 REST client bound to one project.

    GET requests are retried on timeouts, HTTP 429 and 5xx; writes are sent
    exactly once.
    """

    def __init__(
        self,
        *,
        api_url: str,
        project_id: str,
        credentials: Credentials,
        timeout: float = GITLAB_TIMEOUT_SECONDS,
        retry_attempts: int = GITLAB_READ_RETRY_ATTEMPTS,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.project_id = project_id
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self._credentials = credentials
        self._user_agent = f"ep/{__version__}"
        self._ssl_context = ssl.create_default_context()

    def _url(self, path: str, query: dict[str, str | int] | None = None) -> str:
        url = f"{self.api_url}/projects/{quote(self.project_id, safe='')}/{path}"
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    def _request(
        self,
        method: str,
        url: str,
        payload: dict[str, object] | None = None,
    ) -> Result[tuple[object, dict[str, str]], GitLabError]:
        header_name, header_value = self._credentials.header
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "application/json",
            header_name: header_value,
        }
        data: bytes | None = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = Request(url, data=data, headers=headers, method=method)
        try:
            with urlopen(req, timeout=self.timeout, context=self._ssl_context) as response:
                body: bytes = response.read()
                response_headers = {k.lower(): v for k, v in response.headers.items()}
        except urllib.error.HTTPError as e:
            message = _error_message(e.read(), fallback=str(e.reason))
            return Err(GitLabError(kind="http", url=url, status=e.code, message=message))
        except urllib.error.URLError as e:
            return Err(GitLabError(kind="network", url=url, message=str(e.reason)))
        except TimeoutError:
            return Err(GitLabError(kind="network", url=url, message="Request timed out"))
        except OSError as e:
            return Err(GitLabError(kind="network", url=url, message=str(e)))

        try:
            obj: object = json.loads(body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(GitLabError(kind="payload", url=url, message=f"JSON parse error: {e}"))
        return Ok((obj, response_headers))

    def _get(self, url: str) -> Result[tuple[object, dict[str, str]], GitLabError]:
        for attempt in range(self.retry_attempts):
            result = self._request("GET", url)
            if isinstance(result, Ok):
                return result
            if attempt < self.retry_attempts - 1 and result.error.transient:
                sleep(GITLAB_READ_RETRY_DELAY_SECONDS * (attempt + 1))
                continue
            return result
        raise AssertionError("unreachable")

    def list_branches(self, *, regex: str) -> Result[list[Branch], GitLabError]:
        """List every branch matching ``regex`` (RE2 syntax, server side)."""
        out: list[Branch] = []
        page: str | None = "1"
        while page:
            url = self._url(
                "repository/branches",
                {"regex": regex, "per_page": GITLAB_PAGE_SIZE, "page": page},
            )
            result = self._get(url)
            if isinstance(result, Err):
                return result

            obj, headers = result.value
            items = as_obj_list(obj)
            if items is None:
                return Err(
                    GitLabError(kind="payload", url=url, message="expected a list of branches")
                )
            out.extend(b for b in (_parse_branch(item) for item in items) if b is not None)
            page = headers.get("x-next-page", "").strip() or None
        return Ok(out)

    def create_branch(self, *, branch: str, ref: str) -> Result[Branch, GitLabError]:
        url = self._url("repository/branches")
        result = self._request("POST", url, {"branch": branch, "ref": ref})
        if isinstance(result, Err):
            return result

        created = _parse_branch(result.value[0])
        if created is None:
            return Err(GitLabError(kind="payload", url=url, message="unexpected branch payload"))
        return Ok(created)

    def create_merge_request(self, draft: MergeRequestDraft) -> Result[MergeRequest, GitLabError]:
        url = self._url("merge_requests")
        payload: dict[str, object] = {
            "source_branch": draft.source_branch,
            "target_branch": draft.target_branch,
            "title": draft.title,
            "description": draft.description,
        }
        if draft.assignee_id is not None:
            payload["assignee_id"] = draft.assignee_id

        result = self._request("POST", url, payload)
        if isinstance(result, Err):
            return result

        mr = _parse_merge_request(result.value[0])
        if mr is None:
            return Err(
                GitLabError(kind="payload", url=url, message="unexpected merge request payload")
            )
        return Ok(mr)


def _empty_branches() -> list[Branch]:
    return []


def _empty_mrs() -> list[MergeRequest]:
    return []


def _empty_calls() -> list[tuple[str, str]]:
    return []


@dataclass
class FakeGitLabClient:
    """In-memory GitLab project.

    Usage:
        client = FakeGitLabClient(branches=[Branch("release/1.2.3")])
        client.create_branch(branch="release/1.2.4", ref="release/1.2.3")
        assert client.calls == [("create_branch", "release/1.2.4")]
    """

    branches: list[Branch] = field(default_factory=_empty_branches)
    merge_requests: list[MergeRequest] = field(default_factory=_empty_mrs)
    calls: list[tuple[str, str]] = field(default_factory=_empty_calls)
    list_error: GitLabError | None = None
    fail_writes: GitLabError | None = None

    def list_branches(self, *, regex: str) -> Result[list[Branch], GitLabError]:
        self.calls.append(("list_branches", regex))
        if self.list_error is not None:
            return Err(self.list_error)
        pattern = re.compile(regex)
        return Ok([b for b in self.branches if pattern.search(b.name)])

    def create_branch(self, *, branch: str, ref: str) -> Result[Branch, GitLabError]:
        self.calls.append(("create_branch", branch))
        if self.fail_writes is not None:
            return Err(self.fail_writes)
        if any(b.name == branch for b in self.branches):
            return Err(
                GitLabError(
                    kind="http", url="fake://branches", status=400, message="Branch already exists"
                )
            )
        if not any(b.name == ref for b in self.branches):
            return Err(
                GitLabError(
                    kind="http", url="fake://branches", status=400, message="Invalid reference name"
                )
            )
        created = Branch(name=branch)
        self.branches.append(created)
        return Ok(created)

    def create_merge_request(self, draft: MergeRequestDraft) -> Result[MergeRequest, GitLabError]:
        self.calls.append(("create_merge_request", draft.target_branch))
        if self.fail_writes is not None:
            return Err(self.fail_writes)
        for mr in self.merge_requests:
            if mr.source_branch == draft.source_branch and mr.target_branch == draft.target_branch:
                return Err(
                    GitLabError(
                        kind="http",
                        url="fake://merge_requests",
                        status=409,
                        message=(
                            "Another open merge request already exists "
                            f"for this source branch: !{mr.iid}"
                        ),
                    )
                )
        iid = len(self.merge_requests) + 1
        mr = MergeRequest(
            iid=iid,
            web_url=f"https://gitlab.example/merge_requests/{iid}",
            source_branch=draft.source_branch,
            target_branch=draft.target_branch,
        )
        self.merge_requests.append(mr)
        return Ok(mr)
