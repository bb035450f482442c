"""Error taxonomy for the dual-store mediator."""

from typing import Dict, Optional

from mrrobot.storage.models import StoreIdentity


class MediatorError(Exception):
    """Base exception for all mediator errors."""


class ConfigurationMissing(MediatorError):
    """Raised when neither store has the required connection fields."""


class StoreUnavailable(MediatorError):
    """A store could not be opened or probed at startup."""

    def __init__(self, store: StoreIdentity, reason: str):
        self.store = store
        self.reason = reason
        super().__init__(f"{store.label} unavailable: {reason}")


class QueryFailed(MediatorError):
    """A statement failed on one store. Recorded, never raised to callers."""

    def __init__(self, store: StoreIdentity, message: str):
        self.store = store
        self.message = message
        super().__init__(f"{store.label} query failed: {message}")


class AggregateStoreFailure(MediatorError):
    """No store produced a usable result."""


class BothStoresUnavailable(AggregateStoreFailure):
    """Neither store has a live handle."""

    def __init__(self, reasons: Optional[Dict[StoreIdentity, str]] = None):
        self.reasons = reasons or {}
        details = "; ".join(
            f"{store.label}: {self.reasons.get(store) or 'unavailable'}"
            for store in StoreIdentity
        )
        super().__init__(f"No stores available for query execution ({details})")


class BothQueriesFailed(AggregateStoreFailure):
    """Every available store rejected the statement."""

    def __init__(self, failures: Dict[StoreIdentity, QueryFailed]):
        self.failures = failures
        details = "; ".join(
            f"{store.label}: {failures[store].message}"
            for store in StoreIdentity
            if store in failures
        )
        super().__init__(f"Query failed on all stores ({details})")
