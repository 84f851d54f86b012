import unittest
from unittest.mock import MagicMock

from fakes import make_repository, make_service
from fastapi.testclient import TestClient

from contextflow.api.suggestions import get_suggestion_service
from contextflow.entities.commit_suggestion import CommitSuggestion
from contextflow.main import app
from contextflow.services.github.exceptions import GithubRateLimitError
from contextflow.services.suggestion_service import (
    CONFLICT_MESSAGE,
    ApplyResult,
    ManifestConflictError,
    SuggestionAlreadyAppliedError,
    SuggestionNotFoundError,
)

SUGGESTION_ID = "0123456789abcdef01234567"


class TestSuggestionEndpoints(unittest.TestCase):
    def setUp(self):
        self.service = MagicMock()
        app.dependency_overrides[get_suggestion_service] = lambda: self.service
        self.client = TestClient(app)

        repository = make_repository()
        tracked = make_service(repository, "services/auth/vibe.json")
        self.suggestion = CommitSuggestion(
            _id=SUGGESTION_ID,
            tracked_service_id=tracked.id,
            repository_id=repository.id,
            commit_sha="abc1234def",
            commit_message="[STATUS:DONE]",
            suggested_manifest={"serviceName": "auth", "status": "Done"},
            applied=True,
            applied_commit_sha="c0ffee",
        )
        self.tracked = tracked

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_apply(self):
        self.service.apply.return_value = ApplyResult(
            suggestion=self.suggestion, service=self.tracked, commit_sha="c0ffee"
        )

        response = self.client.post(f"/api/suggestions/{SUGGESTION_ID}/apply")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["commit_sha"], "c0ffee")

    def test_apply_conflict(self):
        self.service.apply.side_effect = ManifestConflictError("services/auth/vibe.json")

        response = self.client.post(f"/api/suggestions/{SUGGESTION_ID}/apply")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(
            response.json(),
            {"success": False, "error": CONFLICT_MESSAGE, "code": "MANIFEST_CONFLICT"},
        )

    def test_error_statuses(self):
        cases = [
            (SuggestionNotFoundError("missing"), 404),
            (SuggestionAlreadyAppliedError("applied"), 409),
            (GithubRateLimitError("slow down", retry_after=30), 503),
        ]
        for exc, expected in cases:
            with self.subTest(exc=type(exc).__name__):
                self.service.apply.side_effect = exc

                response = self.client.post(f"/api/suggestions/{SUGGESTION_ID}/apply")

                self.assertEqual(response.status_code, expected)
                self.assertFalse(response.json()["success"])

    def test_dismiss(self):
        response = self.client.delete(f"/api/suggestions/{SUGGESTION_ID}")

        self.assertEqual(response.status_code, 200)
        self.service.dismiss.assert_called_once_with(SUGGESTION_ID)

    def test_list_requires_a_filter(self):
        response = self.client.get("/api/suggestions")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "BAD_REQUEST")


if __name__ == "__main__":
    unittest.main()
