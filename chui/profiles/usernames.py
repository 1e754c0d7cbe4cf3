import re

from chui.core.errors import InvalidUsername

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20

STRICT_PATTERN = re.compile(r"^[a-z0-9]+$")
UNDERSCORE_PATTERN = re.compile(r"^[a-z0-9_]+$")


def rules_text(allow_underscore: bool = False) -> str:
    alphabet = "letters/numbers/underscores" if allow_underscore else "letters/numbers"
    return f"Username: {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} {alphabet}, case insensitive"


def normalize_username(raw: str) -> str:
    return raw.strip().lower()


def is_valid_username(value: str, allow_underscore: bool = False) -> bool:
    pattern = UNDERSCORE_PATTERN if allow_underscore else STRICT_PATTERN
    return (
        USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH
        and pattern.match(value) is not None
    )


def parse_username(raw, allow_underscore: bool = False) -> str:
    """Normalize ``raw`` and validate it, raising InvalidUsername on failure."""
    if not isinstance(raw, str):
        raise InvalidUsername(rules_text(allow_underscore))

    username = normalize_username(raw)
    if not is_valid_username(username, allow_underscore):
        raise InvalidUsername(rules_text(allow_underscore))
    return username
