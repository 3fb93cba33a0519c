"""Random password generation from the secrets module."""

from __future__ import annotations

import secrets

from vaultpass.errors import InvalidArgument

NUMBERS = "0123456789"
LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
SPECIAL = "!@#$%&*-_"

DEFAULT_SIZE = 20
MIN_SIZE = 1
MAX_SIZE = 100


def generate(
    use_numbers: bool = True,
    use_lowercase: bool = True,
    use_uppercase: bool = True,
    use_special: bool = True,
    size: int | str = DEFAULT_SIZE,
) -> str:
    """Return a password of ``size`` characters drawn from the enabled sets.

    ``size`` may be a numeric string (as read from a form or the command line).
    """
    if isinstance(size, str):
        try:
            size = int(size, 10)
        except ValueError:
            raise InvalidArgument(f"Password size must be between {MIN_SIZE} and {MAX_SIZE}") from None
    if isinstance(size, bool) or not isinstance(size, int) or not MIN_SIZE <= size <= MAX_SIZE:
        raise InvalidArgument(f"Password size must be between {MIN_SIZE} and {MAX_SIZE}")

    charset = ""
    if use_numbers:
        charset += NUMBERS
    if use_lowercase:
        charset += LOWERCASE
    if use_uppercase:
        charset += UPPERCASE
    if use_special:
        charset += SPECIAL
    if not charset:
        raise InvalidArgument("Select at least one character set")

    return "".join(secrets.choice(charset) for _ in range(size))
