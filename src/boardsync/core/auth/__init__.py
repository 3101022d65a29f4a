"""
Authentication helpers.

Token issuing and refreshing belong to the data sources; this package only
holds the client-side credential checks run before a request is sent.
"""

from .validation import (
    validate_email,
    validate_full_name,
    validate_password,
    validate_registration,
)

__all__ = [
    "validate_email",
    "validate_full_name",
    "validate_password",
    "validate_registration",
]
