import unittest
from unittest.mock import MagicMock

from contextflow.services.github.webhook_security import (
    compute_signature,
    generate_webhook_secret,
    verify_signature,
)
from contextflow.services.rate_limiter import RedisRateLimiter, get_client_identifier

BODY = b'{"zen": "Keep it logically awesome."}'


class TestWebhookSignature(unittest.TestCase):
    def test_valid_signature(self):
        self.assertTrue(verify_signature("s3cret", BODY, compute_signature("s3cret", BODY)))

    def test_rejections(self):
        good = compute_signature("s3cret", BODY)
        cases = {
            "missing": None,
            "empty": "",
            "no prefix": good[len("sha256="):],
            "sha1": "sha1=" + good[len("sha256="):],
            "other secret": compute_signature("other", BODY),
            "other body": compute_signature("s3cret", BODY + b" "),
        }
        for label, header in cases.items():
            with self.subTest(label):
                self.assertFalse(verify_signature("s3cret", BODY, header))

    def test_generated_secrets_are_unique(self):
        self.assertNotEqual(generate_webhook_secret(), generate_webhook_secret())


class TestClientIdentifier(unittest.TestCase):
    def test_forwarded_for_first_hop(self):
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "10.0.0.2"}

        self.assertEqual(get_client_identifier(headers, "10.0.0.3"), "203.0.113.7")

    def test_real_ip_then_peer(self):
        self.assertEqual(get_client_identifier({"x-real-ip": "198.51.100.4"}, "peer"), "198.51.100.4")
        self.assertEqual(get_client_identifier({}, "192.0.2.9"), "192.0.2.9")

    def test_user_agent_fallback(self):
        identifier = get_client_identifier({"user-agent": "GitHub-Hookshot/abc"}, None)

        self.assertTrue(identifier.startswith("ua:"))
        self.assertEqual(identifier, get_client_identifier({"user-agent": "GitHub-Hookshot/abc"}, None))


class TestRedisRateLimiter(unittest.TestCase):
    def _limiter(self, count: int) -> tuple:
        client = MagicMock()
        pipe = client.pipeline.return_value
        pipe.execute.return_value = [count, True]
        return RedisRateLimiter("webhook", limit=3, window_seconds=60, client=client), pipe

    def test_within_limit(self):
        limiter, pipe = self._limiter(2)

        result = limiter.hit("203.0.113.7", now=125.0)

        self.assertTrue(result.allowed)
        self.assertEqual(result.remaining, 1)
        self.assertEqual(result.reset_at, 180)
        pipe.incr.assert_called_once_with("ratelimit:webhook:203.0.113.7:2")
        pipe.expire.assert_called_once_with("ratelimit:webhook:203.0.113.7:2", 60)

    def test_over_limit(self):
        limiter, _ = self._limiter(4)

        result = limiter.hit("203.0.113.7", now=125.0)

        self.assertFalse(result.allowed)
        self.assertEqual(result.remaining, 0)
        self.assertEqual(result.headers()["X-RateLimit-Limit"], "3")


if __name__ == "__main__":
    unittest.main()
