"""
OTP code generation, hashing and verification.

Codes are never stored in plain text. Each issued code gets its own random
salt, and only ``HMAC-SHA256(key=salt, msg=code)`` is persisted. Verification
recomputes the digest for the candidate code and compares it with the stored
one in constant time.

Example:
    >>> code = OTPCodec.generate_code()
    >>> salt = OTPCodec.new_salt()
    >>> digest = OTPCodec.hash_code(code, salt)
    >>> OTPCodec.verify_code(code, salt, digest)
    True
"""

import hashlib
import hmac
import secrets

from .constants import OTP_CODE_LENGTH, OTP_SALT_BYTES

_LOWEST_CODE = 10 ** (OTP_CODE_LENGTH - 1)
_CODE_SPAN = 9 * _LOWEST_CODE
_DIGEST_LENGTH = hashlib.sha256().digest_size * 2


class OTPCodec:
    """
    Stateless cryptographic helpers for one-time passcodes.

    Methods:
        generate_code():
            Produce a uniformly distributed 6-digit code (100000-999999).

        new_salt():
            Produce a hex-encoded random salt.

        hash_code(code, salt):
            Derive the keyed digest stored for a code.

        verify_code(candidate, salt, stored_digest):
            Check a candidate code against a stored digest.
    """

    @staticmethod
    def generate_code() -> str:
        """
        Generate a secure numeric OTP code.

        Uses `secrets.randbelow`, so codes are drawn from the operating
        system's CSPRNG and never from process state.

        Returns:
            str: A 6-digit code in the inclusive range 100000-999999.
        """

        return str(_LOWEST_CODE + secrets.randbelow(_CODE_SPAN))

    @staticmethod
    def new_salt() -> str:
        """Return a fresh 16-byte salt, hex encoded."""

        return secrets.token_hex(OTP_SALT_BYTES)

    @staticmethod
    def hash_code(code: str, salt: str) -> str:
        """
        Derive the digest stored for ``code``.

        Args:
            code (str): The plain-text code.
            salt (str): The per-code salt, used as the HMAC key.

        Returns:
            str: 64 lowercase hex characters.
        """

        return hmac.new(
            salt.encode("utf-8"), code.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    @staticmethod
    def verify_code(candidate: str, salt: str, stored_digest: str) -> bool:
        """
        Check ``candidate`` against ``stored_digest``.

        The length check may short-circuit since digest length is public;
        the content comparison uses `hmac.compare_digest`, whose running time
        does not depend on where the inputs first differ.

        Returns:
            bool: True on match. False on mismatch or on any malformed
            input; this method never raises.
        """

        if not all(isinstance(v, str) for v in (candidate, salt, stored_digest)):
            return False

        if len(stored_digest) != _DIGEST_LENGTH:
            return False

        try:
            computed = OTPCodec.hash_code(candidate, salt).encode("ascii")
            expected = stored_digest.lower().encode("ascii")
        except UnicodeEncodeError:
            return False

        return hmac.compare_digest(computed, expected)
