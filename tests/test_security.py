import time
from datetime import timedelta

from appointmenthub import rate_limiter
from appointmenthub.security_utils import (
    create_jwt_token,
    hash_password_bcrypt,
    verify_jwt_token,
    verify_password_bcrypt,
)


def test_password_hash_round_trip():
    hashed = hash_password_bcrypt("secret123")

    assert hashed != "secret123"
    assert verify_password_bcrypt("secret123", hashed)
    assert not verify_password_bcrypt("secret124", hashed)
    assert not verify_password_bcrypt("secret123", None)


def test_jwt_expiry():
    token = create_jwt_token({"sub": "42"})
    expired = create_jwt_token({"sub": "42"}, expires_delta=timedelta(seconds=-5))

    assert verify_jwt_token(token)["sub"] == "42"
    assert verify_jwt_token(expired) is None
    assert verify_jwt_token("garbage") is None


def test_rate_limit_window(monkeypatch):
    monkeypatch.setattr(rate_limiter, "windows", {})
    key = "test:203.0.113.1"

    results = [rate_limiter.check_rate_limit(key, limit=3, window_seconds=60)[0] for _ in range(4)]
    assert results == [True, True, True, False]

    # A new window starts once the reset time has passed
    rate_limiter.windows[key]["reset_at"] = int(time.time()) - 1
    assert rate_limiter.check_rate_limit(key, limit=3, window_seconds=60)[0] is True
