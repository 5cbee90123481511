from datetime import timedelta

import pytest

from authflow.domain.ports.persistence import DuplicateEmailError


def _create(store, clock, email="a@x.com", code="123456"):
    return store.create_user(
        email=email,
        password_hash="hashed",
        name="A",
        verification_token=code,
        verification_token_expires_at=clock.now + timedelta(hours=24),
    )


def test_created_user_is_unverified_with_pending_code(store, clock):
    user = _create(store, clock)

    assert user.id > 0
    assert not user.is_verified
    assert user.verification_token == "123456"
    assert user.verification_token_expires_at == clock.now + timedelta(hours=24)
    assert not user.has_pending_reset
    assert store.get_user_by_email("a@x.com").id == user.id
    assert store.get_user_by_id(user.id).email == "a@x.com"


def test_email_uniqueness_is_enforced_on_write(store, clock):
    _create(store, clock)

    with pytest.raises(DuplicateEmailError):
        _create(store, clock, code="654321")


def test_email_lookup_is_case_sensitive(store, clock):
    _create(store, clock)

    assert store.get_user_by_email("A@X.COM") is None


def test_verification_token_is_consumed_once(store, clock):
    _create(store, clock)

    verified = store.consume_verification_token("123456", clock.now)
    again = store.consume_verification_token("123456", clock.now)

    assert verified.is_verified
    assert verified.verification_token is None
    assert verified.verification_token_expires_at is None
    assert again is None


def test_expired_verification_token_does_not_match(store, clock):
    _create(store, clock)

    assert store.consume_verification_token("123456", clock.now + timedelta(hours=24)) is None
    assert not store.get_user_by_email("a@x.com").is_verified


def test_reset_token_is_matched_and_consumed_with_new_hash(store, clock):
    user = _create(store, clock)
    store.set_reset_token(user.id, "resettoken", clock.now + timedelta(hours=1))

    assert store.find_by_reset_token("resettoken", clock.now).id == user.id
    assert store.find_by_reset_token("resettoken", clock.now + timedelta(hours=2)) is None

    updated = store.consume_reset_token("resettoken", clock.now, "new-hash")

    assert updated.password_hash == "new-hash"
    assert updated.reset_password_token is None
    assert updated.reset_password_expires_at is None
    assert store.consume_reset_token("resettoken", clock.now, "other-hash") is None
    # Verification state is untouched by the reset flow.
    assert updated.verification_token == "123456"


def test_record_login_sets_last_login(store, clock):
    user = _create(store, clock)

    updated = store.record_login(user.id, clock.now)

    assert updated.last_login == clock.now


def test_verification_token_in_use_only_while_pending(store, clock):
    _create(store, clock)

    assert store.verification_token_in_use("123456", clock.now)
    assert not store.verification_token_in_use("654321", clock.now)
    assert not store.verification_token_in_use("123456", clock.now + timedelta(hours=24))

    store.consume_verification_token("123456", clock.now)

    assert not store.verification_token_in_use("123456", clock.now)
