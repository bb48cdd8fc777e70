"""
Identifier classification and normalization utilities.

This module provides:
- `normalize_identifier`, which classifies a raw identifier string as an
  email address or a phone number and returns its canonical form.
- `mask_identifier`, a helper that hides most of an identifier before it
  is written to logs.

Examples:
    >>> normalize_identifier("  John.Doe@Example.COM ")
    Identifier(kind='email', value='john.doe@example.com')
    >>> normalize_identifier("+91 98765 43210")
    Identifier(kind='phone', value='+919876543210')
    >>> mask_identifier("+919876543210")
    '+919***'
"""

import re
from typing import NamedTuple

from django.utils.translation import gettext_lazy as _

from .constants import IdentifierKind
from .exceptions import MalformedInput

_WHITESPACE = re.compile(r"\s+")


class Identifier(NamedTuple):
    """A classified, canonical identifier."""

    kind: str
    value: str


def normalize_identifier(raw: str) -> Identifier:
    """
    Classify and canonicalize a raw identifier.

    Rules:
        - Anything containing ``@`` is an email address: surrounding
          whitespace is trimmed and the value is lower-cased.
        - Anything else is a phone number: all whitespace is removed.
          No further format validation is done here; a number the SMS
          provider rejects surfaces later as a delivery failure.

    Args:
        raw (str): The identifier exactly as submitted by the client.

    Raises:
        MalformedInput: If the identifier is missing or empty.

    Returns:
        Identifier: The identifier kind and its canonical value.
    """

    if not isinstance(raw, str):
        raise MalformedInput(_("identifier is required"))

    if "@" in raw:
        value = raw.strip().lower()
        kind = IdentifierKind.EMAIL
    else:
        value = _WHITESPACE.sub("", raw)
        kind = IdentifierKind.PHONE

    if not value:
        raise MalformedInput(_("identifier is required"))

    return Identifier(kind=kind.value, value=value)


def mask_identifier(value: str) -> str:
    """Return a log-safe version of an identifier."""

    if not value:
        return "***"
    if "@" in value:
        local, _sep, domain = value.partition("@")
        return f"{local[:2]}***@{domain}"
    return f"{value[:4]}***"
