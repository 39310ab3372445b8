"""Security helper tests - passwords, tokens and rate limit counters"""
from datetime import timedelta
from unittest.mock import Mock

import jwt
import pytest

from videotube.core import security
from videotube.core.config import settings
from videotube.core.errors import ApiError
from videotube.db import redis as redis_module


@pytest.mark.critical
class TestPasswords:
    """Test bcrypt helpers"""

    def test_hash_and_verify(self):
        hashed = security.hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert security.verify_password("s3cret!", hashed)
        assert not security.verify_password("wrong", hashed)

    def test_verify_with_missing_values(self):
        assert not security.verify_password("", security.hash_password("x"))
        assert not security.verify_password("x", "")


@pytest.mark.critical
class TestTokens:
    """Test JWT creation and validation"""

    user = {"_id": "64b7f0c2a1b2c3d4e5f60718", "email": "alice@example.com", "username": "alice"}

    def test_access_token_round_trip(self):
        payload = security.decode_token(security.create_access_token(self.user), "access")
        assert payload["sub"] == self.user["_id"]
        assert payload["username"] == "alice"
        assert payload["type"] == "access"

    def test_tokens_are_unique(self):
        assert security.create_refresh_token(self.user) != security.create_refresh_token(self.user)

    def test_refresh_token_is_not_an_access_token(self):
        with pytest.raises(ApiError) as exc_info:
            security.decode_token(security.create_refresh_token(self.user), "access")
        assert exc_info.value.status_code == 401

    def test_access_token_is_not_a_refresh_token(self):
        # Signed with the access secret, so the refresh secret rejects it
        with pytest.raises(ApiError):
            security.decode_token(security.create_access_token(self.user), "refresh")

    def test_expired_token(self):
        token = security._encode(
            {"sub": self.user["_id"], "type": "access"},
            settings.ACCESS_TOKEN_SECRET,
            timedelta(seconds=-10)
        )
        with pytest.raises(ApiError) as exc_info:
            security.decode_token(token, "access")
        assert exc_info.value.message == "Access token expired"

    def test_forged_token(self):
        token = jwt.encode({"sub": self.user["_id"], "type": "access"}, "not-the-secret", algorithm="HS256")
        with pytest.raises(ApiError) as exc_info:
            security.decode_token(token, "access")
        assert exc_info.value.message == "Invalid access token"

    def test_subject_must_be_an_object_id(self):
        token = jwt.encode({"sub": "alice", "type": "access"}, settings.ACCESS_TOKEN_SECRET, algorithm="HS256")
        with pytest.raises(ApiError):
            security.decode_token(token, "access")

    def test_garbage_token(self):
        with pytest.raises(ApiError):
            security.decode_token("not.a.jwt", "access")


@pytest.mark.high
class TestRequestHelpers:
    """Test token extraction and client identification"""

    def request(self, headers=None, cookies=None, host="1.2.3.4"):
        request = Mock()
        request.headers = headers or {}
        request.cookies = cookies or {}
        request.client = Mock(host=host)
        return request

    def test_cookie_wins_over_header(self):
        request = self.request(headers={"Authorization": "Bearer header-token"}, cookies={"access_token": "cookie-token"})
        assert security.get_token_from_request(request) == "cookie-token"

    def test_bearer_header(self):
        assert security.get_token_from_request(self.request(headers={"Authorization": "Bearer abc"})) == "abc"
        assert security.get_token_from_request(self.request(headers={"Authorization": "Basic abc"})) is None

    def test_client_identifier_prefers_forwarded_for(self):
        request = self.request(headers={"X-Forwarded-For": "9.9.9.9, 10.0.0.1"})
        assert security.get_client_identifier(request) == "ip:9.9.9.9"
        assert security.get_client_identifier(self.request()) == "ip:1.2.3.4"


@pytest.mark.medium
class TestRateLimitCounters:
    """Test the Redis fixed-window counters"""

    def test_window_expiry_is_set_once(self, mock_redis):
        assert redis_module.increment_rate_limit("ip:1", 60) == 1
        assert redis_module.increment_rate_limit("ip:1", 60) == 2
        assert 0 < mock_redis.ttl("ratelimit:ip:1") <= 60
        assert redis_module.get_rate_limit_count("ip:1") == 2

    def test_strict_bucket_is_separate(self, mock_redis):
        redis_module.check_rate_limit("ip:1", strict=True)
        assert redis_module.get_rate_limit_count("ip:1") == 0
        assert redis_module.get_rate_limit_count("ip:1:strict") == 1
