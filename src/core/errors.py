"""Error hierarchy for the record store, object store and credit ledger.

- StoreError: base for everything raised by this package
- NotConfiguredError: missing credentials/endpoints, raised at the boundary
- RecordStorageError: local record writes that failed
- DuplicateRecordError: a new record reused an id already stored
- InsufficientCreditsError / CreditAccountError: credit ledger conflicts
"""

from typing import Optional


class StoreError(Exception):
    """Base exception for all record store errors."""

    pass


class NotConfiguredError(StoreError):
    """A remote collaborator has no credentials or endpoint configured."""

    pass


class StorageNotConfiguredError(NotConfiguredError):
    """R2 object store credentials are missing."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "R2 storage not configured. Set R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, "
            "R2_SECRET_ACCESS_KEY, and R2_BUCKET_NAME environment variables."
        )


class LedgerNotConfiguredError(NotConfiguredError):
    """The relational ledger has no database configured."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Cloud ledger not configured. Set DATABASE_URL.")


class RecordStorageError(StoreError):
    """Writing to the local record store failed."""

    pass


class DuplicateRecordError(StoreError):
    """Records are immutable once created; an id can only be added once."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Record {record_id} already exists")


class InsufficientCreditsError(StoreError):
    def __init__(self, balance: int, required: int):
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient credits: have {balance}, need {required}")


class CreditAccountError(StoreError):
    """No credit row exists and none can be created (no bootstrap email)."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(
            f"User record not found for {user_id} and no email provided to create it"
        )
