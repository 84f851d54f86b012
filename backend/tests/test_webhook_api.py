import json
import unittest
from unittest.mock import MagicMock

import redis
from fakes import (
    InMemoryGateway,
    InMemorySuggestionRepository,
    gateway_factory,
    make_repository,
    make_service,
    manifest_json,
)
from fastapi.testclient import TestClient

from contextflow.api.webhook import get_webhook_rate_limiter, get_webhook_service
from contextflow.main import app
from contextflow.services.github.webhook_security import compute_signature
from contextflow.services.rate_limiter import RateLimitResult
from contextflow.services.webhook_service import PushProcessingResult, WebhookService

URL = "/api/webhook/github"


def push_body(repo_id: int = 4242) -> bytes:
    return json.dumps(
        {
            "ref": "refs/heads/main",
            "repository": {"id": repo_id, "full_name": "acme/shop"},
            "commits": [
                {
                    "id": "a" * 40,
                    "message": "[STATUS:DONE]",
                    "modified": ["services/auth/login.py"],
                }
            ],
        }
    ).encode()


class TestGithubWebhookEndpoint(unittest.TestCase):
    def setUp(self):
        self.repository = make_repository()
        self.service = MagicMock()
        self.service.find_repository.return_value = self.repository
        self.service.process_push.return_value = PushProcessingResult(
            repository_tracked=True, commits_processed=1, suggestions_created=1
        )
        self.limiter = MagicMock()
        self.limiter.hit.return_value = RateLimitResult(
            allowed=True, limit=60, remaining=59, reset_at=120
        )

        app.dependency_overrides[get_webhook_service] = lambda: self.service
        app.dependency_overrides[get_webhook_rate_limiter] = lambda: self.limiter
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def _post(self, body: bytes, event: str = "push", secret: str = "s3cret", signature=None):
        headers = {"X-GitHub-Event": event, "X-GitHub-Delivery": "delivery-1"}
        if signature is None and secret:
            signature = compute_signature(secret, body)
        if signature:
            headers["X-Hub-Signature-256"] = signature
        return self.client.post(URL, content=body, headers=headers)

    def test_signed_push_is_processed(self):
        response = self._post(push_body())

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["suggestions_created"], 1)
        push, repository = self.service.process_push.call_args.args
        self.assertEqual(push.commits[0]["id"], "a" * 40)
        self.assertEqual(repository, self.repository)

    def test_bad_signature_is_rejected(self):
        response = self._post(push_body(), secret="wrong")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid signature")
        self.service.process_push.assert_not_called()

    def test_missing_signature_is_rejected(self):
        response = self._post(push_body(), secret="")

        self.assertEqual(response.status_code, 401)

    def test_tampered_body_is_rejected(self):
        signature = compute_signature("s3cret", push_body())
        tampered = push_body().replace(b"DONE", b"TESTING")

        response = self._post(tampered, signature=signature)

        self.assertEqual(response.status_code, 401)

    def test_ping(self):
        response = self._post(push_body(), event="ping")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "pong")

    def test_other_events_are_rejected(self):
        response = self._post(push_body(), event="issues")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Only push events are supported")

    def test_untracked_repository_is_acknowledged(self):
        self.service.find_repository.return_value = None

        response = self._post(push_body(repo_id=1), secret="")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Repository not tracked")
        self.service.process_push.assert_not_called()

    def test_invalid_push_payload(self):
        body = json.dumps({"repository": {"full_name": "acme/shop"}, "commits": []}).encode()

        response = self._post(body)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid push payload")

    def test_malformed_commit_does_not_reject_the_push(self):
        body = json.dumps(
            {
                "repository": {"id": 4242, "full_name": "acme/shop"},
                "commits": [
                    {"id": "a" * 40, "message": "[STATUS:DONE]", "modified": ["services/auth/login.py"]},
                    {"id": "b" * 40, "message": None, "modified": ["services/auth/login.py"]},
                ],
            }
        ).encode()

        webhook_service = WebhookService(
            MagicMock(),
            gateway_factory=gateway_factory(
                InMemoryGateway({"services/auth/vibe.json": manifest_json()})
            ),
            notifier=MagicMock(),
        )
        webhook_service.repo_repo = MagicMock()
        webhook_service.repo_repo.find_active_by_github_id.return_value = self.repository
        webhook_service.service_repo = MagicMock()
        webhook_service.service_repo.find_by_repository.return_value = [
            make_service(self.repository, "services/auth/vibe.json")
        ]
        webhook_service.suggestion_repo = InMemorySuggestionRepository()
        app.dependency_overrides[get_webhook_service] = lambda: webhook_service

        response = self._post(body)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["suggestions_created"], 1)
        self.assertEqual(data["errors"], ["commit 1 (bbbbbbb): invalid commit"])

    def test_rate_limited(self):
        self.limiter.hit.return_value = RateLimitResult(
            allowed=False, limit=60, remaining=0, reset_at=120
        )

        response = self._post(push_body())

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.headers["X-RateLimit-Remaining"], "0")
        self.service.find_repository.assert_not_called()

    def test_rate_limiter_outage_lets_requests_through(self):
        self.limiter.hit.side_effect = redis.ConnectionError("down")

        response = self._post(push_body())

        self.assertEqual(response.status_code, 200)

    def test_processing_errors_are_reported(self):
        self.service.process_push.return_value = PushProcessingResult(
            repository_tracked=True,
            commits_processed=1,
            errors=["aaaaaaa services/auth/vibe.json: forbidden"],
        )

        response = self._post(push_body())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["errors"]), 1)


if __name__ == "__main__":
    unittest.main()
