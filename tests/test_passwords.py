import string

import pytest

from uirotator.core.errors import PasswordPolicyError
from uirotator.core.passwords import SIMILAR_CHARACTERS, SYMBOLS, generate_password


def test_defaults_are_ten_letters():
    password = generate_password()
    assert len(password) == 10
    assert all(c in string.ascii_letters for c in password)


def test_length_is_honoured():
    assert len(generate_password({"length": 64})) == 64


def test_numbers_and_symbols_in_strict_mode():
    for _ in range(25):
        password = generate_password({"length": 8, "numbers": True, "symbols": True, "strict": True})
        assert any(c.isdigit() for c in password)
        assert any(c in SYMBOLS for c in password)
        assert any(c.islower() for c in password)
        assert any(c.isupper() for c in password)


def test_custom_symbol_pool():
    password = generate_password({"length": 40, "lowercase": False, "uppercase": False, "symbols": "#!"})
    assert set(password) <= {"#", "!"}


def test_exclusions():
    options = {"length": 200, "numbers": True, "excludeSimilarCharacters": True, "exclude": "abc"}
    password = generate_password(options)
    assert not set(password) & set(SIMILAR_CHARACTERS + "abc")


def test_uppercase_only():
    assert generate_password({"length": 30, "lowercase": False}).isupper()


@pytest.mark.parametrize("options, message", [
    ({"lowercase": False, "uppercase": False}, "At least one rule"),
    ({"length": 2, "numbers": True, "strict": True}, "strict"),
    ({"length": 0}, "between"),
    ({"length": "12"}, "integer"),
    ({"lowercase": False, "uppercase": False, "numbers": True, "exclude": string.digits}, "nothing"),
])
def test_invalid_options(options, message):
    with pytest.raises(PasswordPolicyError, match=message):
        generate_password(options)


def test_policy_error_is_a_value_error():
    with pytest.raises(ValueError):
        generate_password({"length": -1})


def test_passwords_differ():
    assert len({generate_password({"length": 24}) for _ in range(10)}) == 10


def test_options_must_be_an_object():
    with pytest.raises(PasswordPolicyError, match="must be an object"):
        generate_password([1])
