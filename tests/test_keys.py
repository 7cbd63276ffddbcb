"""Key normalization: examples, idempotence, output alphabet, validity check."""

import re

import pytest

from kvstore.keys import MAX_KEY_LENGTH, is_valid_key, normalize

ALPHABET = re.compile(r"^[A-Za-z0-9._-]*$")

SAMPLES = [
    "",
    "plain",
    "device/switch/state",
    "user@domain.com",
    "a:b:c",
    "with space",
    "tab\tand\nnewline",
    "ünïcödé",
    "emoji🙂key",
    "already-ok_key.v2",
    "///",
]


def test_examples():
    assert normalize("device/switch/state") == "device_switch_state"
    assert normalize("user@domain.com") == "user_domain.com"


def test_allowed_characters_pass_through():
    assert normalize("Az09-_.") == "Az09-_."


def test_every_other_character_becomes_underscore():
    assert normalize("a/b:c@d e") == "a_b_c_d_e"
    assert normalize("é") == "_"


def test_length_preserved():
    for s in SAMPLES:
        assert len(normalize(s)) == len(s)


@pytest.mark.parametrize("s", SAMPLES)
def test_idempotent_and_restricted_alphabet(s):
    once = normalize(s)
    assert normalize(once) == once
    assert ALPHABET.match(once)


def test_is_valid_key():
    assert is_valid_key("device_switch_state")
    assert is_valid_key(normalize("user@domain.com"))
    assert not is_valid_key("")
    assert not is_valid_key("a/b")
    assert not is_valid_key("x" * (MAX_KEY_LENGTH + 1))
    assert is_valid_key("x" * MAX_KEY_LENGTH)
