import re
from datetime import timedelta

from authflow.services.tokens import TokenGenerator


def test_verification_code_is_six_digits_and_expires_in_a_day(clock):
    tokens = TokenGenerator(clock=clock)

    for _ in range(200):
        issued = tokens.new_verification_code()
        assert re.fullmatch(r"\d{6}", issued.value)
        assert 100000 <= int(issued.value) <= 999999
        assert issued.expires_at == clock.now + timedelta(hours=24)


def test_reset_token_is_hex_and_expires_in_an_hour(clock):
    tokens = TokenGenerator(clock=clock)

    issued = tokens.new_reset_token()

    assert re.fullmatch(r"[0-9a-f]{40}", issued.value)
    assert issued.expires_at == clock.now + timedelta(hours=1)


def test_reset_tokens_are_unique(clock):
    tokens = TokenGenerator(clock=clock)

    values = {tokens.new_reset_token().value for _ in range(50)}

    assert len(values) == 50
