"""Short code generator tests."""

from unittest.mock import patch

import pytest

from shortlink.codegen import BASE62_ALPHABET, DEFAULT_CODE_LENGTH, generate_short_code
from shortlink.exceptions import RandomSourceError


def test_alphabet_is_base62() -> None:
    assert len(BASE62_ALPHABET) == 62
    assert len(set(BASE62_ALPHABET)) == 62
    assert BASE62_ALPHABET.isalnum()


def test_default_length() -> None:
    code = generate_short_code()
    assert len(code) == DEFAULT_CODE_LENGTH == 8
    assert set(code) <= set(BASE62_ALPHABET)


@pytest.mark.parametrize("length", [1, 12, 16])
def test_custom_length(length: int) -> None:
    code = generate_short_code(length)
    assert len(code) == length
    assert set(code) <= set(BASE62_ALPHABET)


def test_codes_are_distinct() -> None:
    codes = {generate_short_code() for _ in range(1000)}
    assert len(codes) == 1000


@pytest.mark.parametrize("length", [0, -1])
def test_rejects_non_positive_length(length: int) -> None:
    with pytest.raises(ValueError):
        generate_short_code(length)


def test_random_source_failure_is_wrapped() -> None:
    with patch("shortlink.codegen.generate", side_effect=OSError("no entropy")):
        with pytest.raises(RandomSourceError):
            generate_short_code()
