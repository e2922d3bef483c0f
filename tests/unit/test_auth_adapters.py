from datetime import UTC, datetime, timedelta
from uuid import uuid4

from storefront.adapters.auth.crypto import JWTAuthAdapter


def test_password_round_trip(auth_adapter):
    hashed = auth_adapter.hash_password("correct horse")
    assert hashed != "correct horse"
    assert auth_adapter.verify_password("correct horse", hashed) is True
    assert auth_adapter.verify_password("wrong horse", hashed) is False


def test_token_subject(auth_adapter):
    user_id = uuid4()
    token = auth_adapter.create_token(user_id, ttl_minutes=5)
    assert auth_adapter.validate_token(token) == str(user_id)


def test_expired_token_rejected(auth_adapter):
    issued = datetime.now(UTC) - timedelta(hours=2)
    token = auth_adapter.create_token(uuid4(), ttl_minutes=10, now_utc=issued)
    assert auth_adapter.validate_token(token) is None


def test_token_from_other_key_rejected():
    token = JWTAuthAdapter(secret_key="other").create_token(uuid4(), ttl_minutes=5)
    assert JWTAuthAdapter(secret_key="ours").validate_token(token) is None


def test_garbage_token_rejected(auth_adapter):
    assert auth_adapter.validate_token("not.a.jwt") is None


def test_hash_token_is_stable_sha256(auth_adapter):
    fingerprint = auth_adapter.hash_token("tok_visa_4242")
    assert fingerprint == auth_adapter.hash_token("tok_visa_4242")
    assert len(fingerprint) == 64


def test_csrf_tokens_unique(auth_adapter):
    assert auth_adapter.new_csrf_token() != auth_adapter.new_csrf_token()
