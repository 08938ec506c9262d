import time

import jwt
import pytest

from filedrive.tokens import (
    AuthenticatedUser,
    Unauthorized,
    authenticate,
    create_jwt,
    jwt_secret,
    validate_jwt,
)

SECRET = b"secret"


def test_round_trip():
    issued = create_jwt("42", SECRET)
    assert validate_jwt(issued, SECRET) == "42"


def test_expiry_is_one_day_ahead():
    before = int(time.time())
    issued = create_jwt("42", SECRET)
    claims = jwt.decode(issued, SECRET, algorithms=["HS256"])
    after = int(time.time())
    assert before + 60 * 60 * 24 <= claims["exp"] <= after + 60 * 60 * 24
    assert claims["sub"] == "42"


def test_header_uses_hs256():
    issued = create_jwt("1", SECRET)
    assert jwt.get_unverified_header(issued)["alg"] == "HS256"


def test_wrong_secret_rejected():
    issued = create_jwt("42", SECRET)
    assert validate_jwt(issued, b"token") is None


def test_garbage_rejected():
    assert validate_jwt("not-a-token", SECRET) is None


def test_expired_token_rejected():
    issued = jwt.encode({"sub": "42", "exp": int(time.time()) - 3600}, SECRET, algorithm="HS256")
    assert validate_jwt(issued, SECRET) is None


def test_recently_expired_within_leeway_accepted():
    issued = jwt.encode({"sub": "42", "exp": int(time.time()) - 30}, SECRET, algorithm="HS256")
    assert validate_jwt(issued, SECRET) == "42"


def test_token_without_exp_rejected():
    issued = jwt.encode({"sub": "42"}, SECRET, algorithm="HS256")
    assert validate_jwt(issued, SECRET) is None


def test_secret_from_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "secret")
    assert jwt_secret() == b"secret"
    issued = create_jwt("7")
    assert validate_jwt(issued) == "7"


def test_missing_secret(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        jwt_secret()


def test_authenticate_from_cookie():
    issued = create_jwt("5", SECRET)
    assert authenticate({"auth_token": issued}, SECRET) == AuthenticatedUser(user_id="5")


def test_authenticate_missing_cookie():
    with pytest.raises(Unauthorized, match="Unauthorized"):
        authenticate({}, SECRET)


def test_authenticate_invalid_cookie():
    with pytest.raises(Unauthorized):
        authenticate({"auth_token": "token"}, SECRET)