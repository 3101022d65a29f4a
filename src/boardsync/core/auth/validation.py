"""
Credential validation.

Each validator returns the list of problems found (empty when the value is
acceptable) so callers can show every message at once instead of stopping at
the first failure.
"""

import re

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
FULL_NAME_PATTERN = re.compile(r"^[a-zA-Z\s'-]+$")

PASSWORD_MIN_LENGTH = 8
FULL_NAME_MIN_LENGTH = 2
FULL_NAME_MAX_LENGTH = 50

# (pattern, message) pairs checked in order
_PASSWORD_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "Password must contain at least one special character"),
]


def validate_email(email: str) -> list[str]:
    """
    Validate an email address.

    Args:
        email: Address to check

    Returns:
        List of error messages (empty if valid)
    """
    if not EMAIL_PATTERN.match(email.strip()):
        return ["Please enter a valid email address"]
    return []


def validate_password(password: str) -> list[str]:
    """
    Validate password strength.

    Requires at least 8 characters with an uppercase letter, a lowercase
    letter, a digit and a special character.

    Args:
        password: Password to check

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(password):
            errors.append(message)
    return errors


def validate_full_name(full_name: str) -> list[str]:
    """
    Validate a display name.

    Args:
        full_name: Name to check

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []
    if len(full_name) < FULL_NAME_MIN_LENGTH:
        errors.append(
            f"Full name must be at least {FULL_NAME_MIN_LENGTH} characters long"
        )
    if len(full_name) > FULL_NAME_MAX_LENGTH:
        errors.append(f"Full name must be less than {FULL_NAME_MAX_LENGTH} characters")
    if full_name and not FULL_NAME_PATTERN.match(full_name):
        errors.append(
            "Full name can only contain letters, spaces, hyphens, and apostrophes"
        )
    return errors


def validate_registration(email: str, password: str, full_name: str) -> list[str]:
    """Run every registration check and return all messages."""
    return validate_email(email) + validate_password(password) + validate_full_name(full_name)
