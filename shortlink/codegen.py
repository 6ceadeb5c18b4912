"""Random short code generation.

Codes are drawn uniformly from a 62-symbol alphabet using nanoid, which reads
``os.urandom`` and uses mask-and-reject sampling, so every symbol has the same
probability regardless of the alphabet size.

Functions:
    generate_short_code(length=8):
        Generate a random base62 code (also used for lock tokens).

Example:
    >>> from shortlink.codegen import generate_short_code
    >>> len(generate_short_code())
    8
"""

from nanoid import generate

from shortlink.exceptions import RandomSourceError

__all__ = ["BASE62_ALPHABET", "DEFAULT_CODE_LENGTH", "generate_short_code"]

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
DEFAULT_CODE_LENGTH = 8


def generate_short_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Generate a random fixed-length base62 code.

    Collisions are not handled here; retrying is the caller's job.

    Args:
        length: Number of characters, must be positive.

    Returns:
        str: Random code over ``BASE62_ALPHABET``.

    Raises:
        ValueError: If length is not a positive integer.
        RandomSourceError: If the OS entropy source is unavailable.
    """
    if not isinstance(length, int) or length <= 0:
        raise ValueError(f"length must be a positive integer, got {length!r}")

    try:
        return generate(BASE62_ALPHABET, length)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError("Entropy source unavailable for short code generation.") from exc
