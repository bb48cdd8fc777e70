"""
User factories for generating test credential records.

This module uses `factory_boy` to provide factories that simplify the
creation of `User` objects in tests. Records are created the way the OTP
flow creates them: keyed by a single identifier with an unusable password.

Features:
    - `UserFactory`: email-keyed records with unique addresses.
    - `PhoneUserFactory`: phone-keyed records with unique numbers.

Example:
    >>> user = UserFactory()
    >>> user.identifier_kind
    'email'
    >>> user.has_usable_password()
    False
"""

import factory
from django.contrib.auth import get_user_model

from .constants import IdentifierKind

# Get the currently active user model (supports custom user models)
User = get_user_model()


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for email-keyed User instances.

    Meta:
        model (User): The custom user model.
        skip_postgeneration_save (bool): Prevents double-saving the object
            when post-generation hooks modify it.
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    identifier_kind = IdentifierKind.EMAIL
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    phone_number = None

    @factory.post_generation
    def password(self, create, extracted, **kwargs):
        """
        Set the given password, or an unusable one by default.

        Args:
            create (bool): Whether the instance has been saved to the database.
            extracted (str, optional): A user-provided password.
        """

        if not create:
            return

        if extracted:
            self.set_password(extracted)
        else:
            self.set_unusable_password()

        self.save()


class PhoneUserFactory(UserFactory):
    """Factory for phone-keyed User instances."""

    identifier_kind = IdentifierKind.PHONE
    email = None
    phone_number = factory.Sequence(lambda n: f"+9198765{n:05d}")
