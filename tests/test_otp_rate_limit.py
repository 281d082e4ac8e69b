import unittest
from unittest.mock import MagicMock, patch

import redis

from tests.base import ApiTestCase
from app.core.config import settings
from app.services.rate_limit import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    get_rate_limiter,
    reset_rate_limiter_for_tests,
)


class OtpRateLimitTests(ApiTestCase):
    def test_send_is_limited_by_phone(self):
        with (
            patch("app.api.auth.settings.OTP_RATE_LIMIT_WINDOW_SECONDS", 60),
            patch("app.api.auth.settings.OTP_SEND_RATE_LIMIT", 1),
            patch("app.services.otp_service._generate_code", return_value="111111"),
        ):
            first = self.client.post("/auth/request-otp", json={"phone": "09121110000"})
            self.assertEqual(first.status_code, 200)

            second = self.client.post("/auth/request-otp", json={"phone": "09121110000"})
            self.assertEqual(second.status_code, 429)
            self.assertIn("Too many OTP requests", second.json().get("detail", ""))

    def test_send_is_limited_by_ip(self):
        with (
            patch("app.api.auth.settings.OTP_RATE_LIMIT_WINDOW_SECONDS", 60),
            patch("app.api.auth.settings.OTP_SEND_RATE_LIMIT", 1),
            patch("app.services.otp_service._generate_code", return_value="111111"),
        ):
            first = self.client.post("/auth/request-otp", json={"phone": "09121110001"})
            self.assertEqual(first.status_code, 200)

            # same IP (testclient), other phone => blocked by IP bucket
            second = self.client.post("/auth/request-otp", json={"phone": "09121110002"})
            self.assertEqual(second.status_code, 429)

            forwarded = self.client.post(
                "/auth/request-otp",
                json={"phone": "09121110003"},
                headers={"X-Forwarded-For": "10.0.0.7, 10.0.0.1"},
            )
            self.assertEqual(forwarded.status_code, 200)

    def test_verify_is_limited(self):
        with (
            patch("app.api.auth.settings.OTP_RATE_LIMIT_WINDOW_SECONDS", 60),
            patch("app.api.auth.settings.OTP_SEND_RATE_LIMIT", 10),
            patch("app.api.auth.settings.OTP_VERIFY_RATE_LIMIT", 1),
            patch("app.services.otp_service._generate_code", return_value="222222"),
        ):
            sent = self.client.post("/auth/request-otp", json={"phone": "09122220000"})
            self.assertEqual(sent.status_code, 200)

            wrong_first = self.client.post("/auth/verify-otp", json={"phone": "09122220000", "code": "000000"})
            self.assertEqual(wrong_first.status_code, 401)

            wrong_second = self.client.post("/auth/verify-otp", json={"phone": "09122220000", "code": "222222"})
            self.assertEqual(wrong_second.status_code, 429)


class InMemoryRateLimiterTests(unittest.TestCase):
    def test_fixed_window_counts_and_reset(self):
        limiter = InMemoryRateLimiter()
        first = limiter.hit("otp:send:phone:x", limit=2, window_seconds=60)
        second = limiter.hit("otp:send:phone:x", limit=2, window_seconds=60)
        third = limiter.hit("otp:send:phone:x", limit=2, window_seconds=60)
        self.assertTrue(first.allowed)
        self.assertTrue(second.allowed)
        self.assertFalse(third.allowed)
        self.assertEqual(third.current_value, 3)
        self.assertGreater(third.retry_after_seconds, 0)

        limiter.reset("otp:send:phone:x")
        self.assertTrue(limiter.hit("otp:send:phone:x", limit=2, window_seconds=60).allowed)
        self.assertTrue(limiter.hit("otp:send:phone:y", limit=1, window_seconds=60).allowed)


class RateLimiterBackendTests(unittest.TestCase):
    def setUp(self):
        reset_rate_limiter_for_tests()
        self.addCleanup(reset_rate_limiter_for_tests)

    def test_falls_back_to_memory_when_redis_is_down(self):
        with patch("app.services.rate_limit.redis.Redis.from_url", side_effect=redis.ConnectionError("down")):
            limiter = get_rate_limiter()
        self.assertIsInstance(limiter, InMemoryRateLimiter)
        self.assertIs(get_rate_limiter(), limiter)

    def test_redis_limiter_uses_namespaced_fixed_window(self):
        client = MagicMock()
        pipe = client.pipeline.return_value
        pipe.execute.return_value = [3, True, 42]
        limiter = RedisRateLimiter(client)
        key = f"{settings.APP_NAME}:rl:otp:send:phone:abc"

        result = limiter.hit("otp:send:phone:abc", limit=2, window_seconds=60)
        self.assertFalse(result.allowed)
        self.assertEqual(result.current_value, 3)
        self.assertEqual(result.retry_after_seconds, 42)
        pipe.incr.assert_called_once_with(key)
        pipe.expire.assert_called_once_with(key, 60, nx=True)

        limiter.reset("otp:send:phone:abc")
        client.delete.assert_called_once_with(key)
