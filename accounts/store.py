"""
Database-backed credential store.

The policy engine assumes it evaluates a freshly read record that nobody
else is mutating. `CredentialStore` provides that guarantee with row-level
locks: every read is a ``SELECT ... FOR UPDATE`` and must happen inside
`transaction.atomic()`, so concurrent requests for the same identifier
queue up behind each other while different identifiers never contend.

Usage:
    >>> store = CredentialStore()
    >>> with transaction.atomic():
    ...     user = store.find_or_create(identifier)
    ...     decision = engine.evaluate_issuance(user.to_state(identifier), now)
    ...     store.persist(user, decision.state)
"""

from django.contrib.auth import get_user_model
from django.db import transaction

from .models import OTP_STATE_FIELDS


class CredentialStore:
    """
    Keyed storage for credential records.

    Args:
        model: The user model, `get_user_model()` by default.
    """

    def __init__(self, model=None):
        self.model = model or get_user_model()

    def _locked(self, identifier):
        lookup = self.model.objects.identifier_lookup(*identifier)
        return self.model.objects.select_for_update().filter(**lookup).first()

    def find(self, identifier):
        """Return the locked record for ``identifier``, or None."""

        self._require_transaction()
        return self._locked(identifier)

    def find_or_create(self, identifier):
        """
        Return the locked record for ``identifier``, creating it first if
        it has never been seen. Idempotent.
        """

        self._require_transaction()
        user = self._locked(identifier)
        if user is None:
            self.model.objects.get_or_create_by_identifier(*identifier)
            user = self._locked(identifier)
        return user

    def persist(self, user, state):
        """
        Write a policy decision's state to ``user``'s row.

        The full OTP field set is always written, so the hash, salt and
        expiry are stored or cleared together.
        """

        user.apply_state(state)
        user.save(update_fields=OTP_STATE_FIELDS)
        return user

    @staticmethod
    def _require_transaction():
        if not transaction.get_connection().in_atomic_block:
            raise RuntimeError("CredentialStore must be used inside transaction.atomic().")
