from __future__ import annotations

import io
import json
import urllib.error
from urllib.request import Request

import pytest

from ep.core.config import Credentials
from ep.core.result import Err, Ok
from ep.services.release import gitlab as gitlab_mod
from ep.services.release.gitlab import FakeGitLabClient, GitLabClient, RealGitLabClient
from ep.services.release.model import Branch, MergeRequestDraft


class _FakeResponse:
    def __init__(self, body: object, headers: dict[str, str] | None = None) -> None:
        self._body = json.dumps(body).encode("utf-8")
        self.headers = headers or {}

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *exc: object) -> None:
        return None


def _http_error(url: str, code: int, body: object) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(
        url, code, "error", {}, io.BytesIO(json.dumps(body).encode("utf-8"))  # type: ignore[arg-type]
    )


def _no_sleep(seconds: float) -> None:
    del seconds


def _client(*, job_token: bool = False) -> RealGitLabClient:
    return RealGitLabClient(
        api_url="https://gitlab.example/api/v4/",
        project_id="group/app",
        credentials=Credentials(token="secret", job_token=job_token),
    )


def _install(
    monkeypatch: pytest.MonkeyPatch, responses: list[_FakeResponse | Exception]
) -> list[Request]:
    seen: list[Request] = []

    def fake_urlopen(req: Request, *, timeout: float, context: object) -> _FakeResponse:
        del timeout
        del context
        seen.append(req)
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(gitlab_mod, "urlopen", fake_urlopen)
    monkeypatch.setattr(gitlab_mod, "sleep", _no_sleep)
    return seen


def test_list_branches_follows_pagination(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = _install(
        monkeypatch,
        [
            _FakeResponse(
                [{"name": "release/1.0.0", "commit": {"id": "abc"}}], {"X-Next-Page": "2"}
            ),
            _FakeResponse([{"name": "release/1.1.0"}, {"bogus": True}], {"X-Next-Page": ""}),
        ],
    )

    result = _client().list_branches(regex="^release/")

    assert result == Ok([Branch("release/1.0.0", "abc"), Branch("release/1.1.0")])
    assert len(seen) == 2
    assert seen[0].full_url.startswith(
        "https://gitlab.example/api/v4/projects/group%2Fapp/repository/branches?"
    )
    assert "regex=%5Erelease%2F" in seen[0].full_url
    assert "page=2" in seen[1].full_url
    assert seen[0].get_header("Private-token") == "secret"


def test_job_token_header(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = _install(monkeypatch, [_FakeResponse([])])
    _client(job_token=True).list_branches(regex=".")
    assert seen[0].get_header("Job-token") == "secret"
    assert seen[0].get_header("Private-token") is None


def test_get_retries_transient_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    url = "https://gitlab.example/api/v4/projects/group%2Fapp/repository/branches"
    seen = _install(
        monkeypatch,
        [
            _http_error(url, 503, {"message": "503 Service Unavailable"}),
            urllib.error.URLError("connection reset"),
            _FakeResponse([{"name": "release/1.0.0"}]),
        ],
    )

    result = _client().list_branches(regex=".")

    assert isinstance(result, Ok)
    assert len(seen) == 3


def test_get_does_not_retry_client_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    url = "https://gitlab.example/api/v4/projects/group%2Fapp/repository/branches"
    seen = _install(monkeypatch, [_http_error(url, 404, {"message": "404 Project Not Found"})])

    result = _client().list_branches(regex=".")

    assert isinstance(result, Err)
    assert result.error.kind == "http"
    assert result.error.status == 404
    assert result.error.message == "404 Project Not Found"
    assert len(seen) == 1


def test_create_branch_posts_json(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = _install(monkeypatch, [_FakeResponse({"name": "release/1.0.1", "commit": {"id": "f"}})])

    result = _client().create_branch(branch="release/1.0.1", ref="release/1.0.0")

    assert result == Ok(Branch("release/1.0.1", "f"))
    assert seen[0].get_method() == "POST"
    assert seen[0].data is not None
    assert json.loads(seen[0].data) == {"branch": "release/1.0.1", "ref": "release/1.0.0"}  # type: ignore[arg-type]


def test_writes_are_not_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    url = "https://gitlab.example/api/v4/projects/group%2Fapp/repository/branches"
    seen = _install(monkeypatch, [_http_error(url, 502, {"message": "Bad Gateway"})])

    result = _client().create_branch(branch="release/1.0.1", ref="release/1.0.0")

    assert isinstance(result, Err)
    assert result.error.transient
    assert len(seen) == 1


def test_create_merge_request(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = _install(
        monkeypatch,
        [
            _FakeResponse(
                {
                    "iid": 12,
                    "web_url": "https://gitlab.example/group/app/-/merge_requests/12",
                    "source_branch": "release/1.0.1",
                    "target_branch": "master",
                }
            )
        ],
    )
    draft = MergeRequestDraft(
        source_branch="release/1.0.1",
        target_branch="master",
        title="EMERGENCY PRODUCTION PATCH (release/1.0.0)",
        description="body",
        assignee_id=7,
    )

    result = _client().create_merge_request(draft)

    assert isinstance(result, Ok)
    assert result.value.iid == 12
    payload = json.loads(seen[0].data)  # type: ignore[arg-type]
    assert payload["assignee_id"] == 7
    assert payload["target_branch"] == "master"


def test_merge_request_conflict_message_list(monkeypatch: pytest.MonkeyPatch) -> None:
    url = "https://gitlab.example/api/v4/projects/group%2Fapp/merge_requests"
    _install(
        monkeypatch,
        [_http_error(url, 409, {"message": ["Another open merge request already exists"]})],
    )
    draft = MergeRequestDraft("release/1.0.1", "dev", "t", "d")

    result = _client().create_merge_request(draft)

    assert isinstance(result, Err)
    assert result.error.status == 409
    assert result.error.message == "Another open merge request already exists"


def test_unexpected_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, [_FakeResponse({"not": "a list"})])
    result = _client().list_branches(regex=".")
    assert isinstance(result, Err)
    assert result.error.kind == "payload"


def test_fake_client_satisfies_protocol() -> None:
    assert isinstance(FakeGitLabClient(), GitLabClient)
    assert isinstance(_client(), GitLabClient)


def test_fake_client_rejects_unknown_ref() -> None:
    client = FakeGitLabClient(branches=[Branch("master")])
    result = client.create_branch(branch="release/1.0.1", ref="release/1.0.0")
    assert isinstance(result, Err)
    assert result.error.status == 400
