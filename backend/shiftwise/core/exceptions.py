"""Exception types shared across services."""


class MigrationError(Exception):
    """Raised when a guest-to-cloud migration cannot proceed."""

    pass


class UserProvisioningError(MigrationError):
    """The cloud user row could not be created; every later step depends on it."""

    pass


class LocalStoreError(MigrationError):
    """The guest key-value store could not be read or written."""

    pass
