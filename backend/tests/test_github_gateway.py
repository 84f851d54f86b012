import base64
import json
import unittest

import httpx

from contextflow.services.github.exceptions import (
    GithubConflictError,
    GithubContentError,
    GithubError,
    GithubNotFoundError,
    GithubPermissionError,
    GithubRateLimitError,
    GithubRetryableError,
)
from contextflow.services.github.github_client import GithubRepositoryGateway


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


class FakeGithub:
    """Minimal contents/trees/commits/hooks API for one repository."""

    def __init__(self):
        self.files = {"services/auth/vibe.json": ('{"a": 1}\n', "sha-1")}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        prefix = "/repos/acme/shop"

        if path.startswith(f"{prefix}/contents/"):
            file_path = path[len(f"{prefix}/contents/"):]
            if request.method == "GET":
                if file_path not in self.files:
                    return httpx.Response(404, json={"message": "Not Found"})
                content, sha = self.files[file_path]
                return httpx.Response(
                    200,
                    json={
                        "type": "file",
                        "path": file_path,
                        "sha": sha,
                        "encoding": "base64",
                        "content": _b64(content),
                    },
                )
            if request.method == "PUT":
                body = json.loads(request.content)
                current = self.files.get(file_path)
                if current and body.get("sha") != current[1]:
                    return httpx.Response(
                        409, json={"message": f"{file_path} does not match {body.get('sha')}"}
                    )
                new_sha = f"sha-{len(self.requests)}"
                self.files[file_path] = (base64.b64decode(body["content"]).decode(), new_sha)
                return httpx.Response(200, json={"commit": {"sha": "c0ffee1234"}})

        if path == f"{prefix}/git/trees/HEAD":
            return httpx.Response(
                200,
                json={
                    "truncated": False,
                    "tree": [
                        {"path": "vibe.json", "type": "blob", "sha": "b0"},
                        {"path": "services/auth", "type": "tree", "sha": "t1"},
                        {"path": "services/auth/vibe.json", "type": "blob", "sha": "b1"},
                        {"path": "services/auth/vibe.json.bak", "type": "blob", "sha": "b2"},
                        {"path": "docs/not-vibe.json", "type": "blob", "sha": "b3"},
                    ],
                },
            )

        if path == f"{prefix}/commits":
            if request.url.params.get("path") == "missing":
                return httpx.Response(200, json=[])
            return httpx.Response(
                200,
                json=[
                    {
                        "sha": "abc123",
                        "commit": {
                            "message": "feat: login",
                            "author": {"name": "Dana", "date": "2024-05-01T10:00:00Z"},
                        },
                    }
                ],
            )

        if path == f"{prefix}/hooks" and request.method == "POST":
            return httpx.Response(201, json={"id": 99})
        if path == f"{prefix}/hooks/99" and request.method == "DELETE":
            return httpx.Response(204)

        if path == prefix:
            return httpx.Response(
                200,
                json={
                    "id": 4242,
                    "name": "shop",
                    "full_name": "acme/shop",
                    "default_branch": "trunk",
                    "owner": {"login": "acme"},
                },
            )

        return httpx.Response(404, json={"message": "Not Found"})


class TestGithubRepositoryGateway(unittest.TestCase):
    def setUp(self):
        self.github = FakeGithub()
        self.gateway = GithubRepositoryGateway(
            "acme",
            "shop",
            "token-123",
            base_url="https://api.github.test",
            transport=httpx.MockTransport(self.github),
        )

    def tearDown(self):
        self.gateway.close()

    def test_read_file_decodes_content(self):
        remote = self.gateway.read_file("services/auth/vibe.json")

        self.assertEqual(remote.content, '{"a": 1}\n')
        self.assertEqual(remote.content_hash, "sha-1")
        self.assertEqual(
            self.github.requests[0].headers["Authorization"], "Bearer token-123"
        )

    def test_read_missing_file(self):
        with self.assertRaises(GithubNotFoundError):
            self.gateway.read_file("nope/vibe.json")

    def test_write_with_current_hash(self):
        commit_sha = self.gateway.write_file(
            "services/auth/vibe.json", '{"a": 2}\n', "update", "sha-1"
        )

        self.assertEqual(commit_sha, "c0ffee1234")
        self.assertEqual(self.github.files["services/auth/vibe.json"][0], '{"a": 2}\n')

    def test_write_with_stale_hash_conflicts_and_leaves_content(self):
        with self.assertRaises(GithubConflictError):
            self.gateway.write_file("services/auth/vibe.json", "{}", "update", "stale")

        self.assertEqual(self.github.files["services/auth/vibe.json"][0], '{"a": 1}\n')

    def test_search_matches_basename_over_full_tree(self):
        matches = self.gateway.search_files_by_name("vibe.json")

        self.assertEqual([m.path for m in matches], ["vibe.json", "services/auth/vibe.json"])
        self.assertEqual(self.github.requests[0].url.params["recursive"], "1")

    def test_latest_commit_for_path(self):
        commit = self.gateway.latest_commit_for_path("services/auth/vibe.json")

        self.assertEqual(commit.commit_hash, "abc123")
        self.assertEqual(commit.author_date.isoformat(), "2024-05-01T10:00:00+00:00")
        self.assertEqual(self.github.requests[0].url.params["per_page"], "1")

    def test_latest_commit_none(self):
        self.assertIsNone(self.gateway.latest_commit_for_path("missing"))

    def test_webhooks(self):
        hook_id = self.gateway.create_webhook("https://hooks.test/github", "secret")
        self.gateway.delete_webhook(hook_id)

        body = json.loads(self.github.requests[0].content)
        self.assertEqual(hook_id, 99)
        self.assertEqual(body["events"], ["push"])
        self.assertEqual(body["config"]["secret"], "secret")

    def test_get_repository(self):
        info = self.gateway.get_repository()

        self.assertEqual(info.github_repo_id, 4242)
        self.assertEqual(info.default_branch, "trunk")


class TestGatewayErrorMapping(unittest.TestCase):
    def _gateway(self, response: httpx.Response) -> GithubRepositoryGateway:
        return GithubRepositoryGateway(
            "acme",
            "shop",
            "t",
            base_url="https://api.github.test",
            transport=httpx.MockTransport(lambda request: response),
        )

    def test_status_mapping(self):
        cases = [
            (httpx.Response(401, json={"message": "Bad credentials"}), GithubPermissionError),
            (httpx.Response(403, json={"message": "Resource not accessible"}), GithubPermissionError),
            (
                httpx.Response(
                    403,
                    json={"message": "API rate limit exceeded"},
                    headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "0"},
                ),
                GithubRateLimitError,
            ),
            (httpx.Response(429, json={"message": "slow down"}, headers={"Retry-After": "30"}), GithubRateLimitError),
            (httpx.Response(502, text="bad gateway"), GithubRetryableError),
            (httpx.Response(422, json={"message": "Validation Failed"}), GithubError),
        ]
        for response, expected in cases:
            with self.subTest(status=response.status_code, expected=expected.__name__):
                with self.assertRaises(expected):
                    self._gateway(response).get_repository()

    def test_retry_after_is_exposed(self):
        gateway = self._gateway(httpx.Response(429, headers={"Retry-After": "30"}))

        with self.assertRaises(GithubRateLimitError) as ctx:
            gateway.get_repository()
        self.assertEqual(ctx.exception.retry_after, 30.0)

    def test_sha_validation_error_is_conflict(self):
        gateway = self._gateway(
            httpx.Response(422, json={"message": "Invalid request.\n\n\"sha\" wasn't supplied."})
        )

        with self.assertRaises(GithubConflictError):
            gateway.write_file("vibe.json", "{}", "msg", "")

    def test_transport_error_is_retryable(self):
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = GithubRepositoryGateway(
            "acme", "shop", "t", base_url="https://api.github.test", transport=httpx.MockTransport(boom)
        )
        with self.assertRaises(GithubRetryableError):
            gateway.read_file("vibe.json")

    def test_undecodable_content(self):
        cases = {
            "non-utf8": base64.b64encode(b'{"serviceName": "\xff\xfe"}').decode(),
            "bad-padding": "abc",
        }
        for name, content in cases.items():
            with self.subTest(name):
                gateway = self._gateway(
                    httpx.Response(
                        200,
                        json={
                            "type": "file",
                            "path": "a/vibe.json",
                            "sha": "x",
                            "encoding": "base64",
                            "content": content,
                        },
                    )
                )

                with self.assertRaises(GithubContentError):
                    gateway.read_file("a/vibe.json")

    def test_empty_repository_has_no_manifests(self):
        gateway = self._gateway(httpx.Response(409, json={"message": "Git Repository is empty."}))

        self.assertEqual(gateway.search_files_by_name("vibe.json"), [])


if __name__ == "__main__":
    unittest.main()
