"""
Session token issuance.

Tokens are SimpleJWT access tokens, so the same `JWTAuthentication` class
that protects the API accepts them. Signing key, algorithm and lifetime come
from the ``SIMPLE_JWT`` settings.
"""

from rest_framework_simplejwt.tokens import AccessToken


class TokenIssuer:
    """Sign session claims for a verified user."""

    def issue(self, user) -> str:
        """
        Return a signed access token for ``user``.

        Claims:
            - user_id: The internal user identifier.
            - email / phone: Whichever identifiers are known.

        Example:
            >>> TokenIssuer().issue(user)
            'eyJ0eXAiOiJKV1QiLCJhbGci...'
        """

        token = AccessToken.for_user(user)

        if user.email:
            token["email"] = user.email
        if user.phone_number:
            token["phone"] = user.phone_number

        return str(token)
