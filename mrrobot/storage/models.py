"""
Value types for the dual-store mediator.

StoreHandle is owned by the mediator and never handed to route handlers.
StoreOutcome / MediatedResult are created fresh for every call.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from psycopg_pool import ConnectionPool

    from mrrobot.storage.errors import QueryFailed, StoreUnavailable


class StoreIdentity(Enum):
    """Identity of a configured store."""
    A = "A"
    B = "B"

    @property
    def key(self) -> str:
        """Key used in status payloads ('store_a', 'store_b')."""
        return f"store_{self.value.lower()}"

    @property
    def label(self) -> str:
        return f"store {self.value}"

    @property
    def provider(self) -> str:
        """Hosting provider the store was deployed on."""
        return "aws" if self is StoreIdentity.A else "azure"


class OutcomeStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StoreOutcome:
    """Result of running one statement against one store."""
    store: StoreIdentity
    status: OutcomeStatus
    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = -1
    error: Optional["QueryFailed"] = None

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None


@dataclass(frozen=True)
class MediatedResult:
    """
    Result of a mediated call.

    rows come from the selected store only; the other store's outcome is kept
    for diagnostics and is never merged in.
    """
    rows: List[Dict[str, Any]]
    rowcount: int
    selected: StoreIdentity
    outcomes: Dict[StoreIdentity, StoreOutcome]

    @property
    def partial_failure(self) -> bool:
        """True when some store ran the statement and failed."""
        return any(
            outcome.status is OutcomeStatus.FAILED
            for outcome in self.outcomes.values()
        )


@dataclass
class StoreHandle:
    """Connection pool plus availability state for one store."""
    identity: StoreIdentity
    pool: Optional["ConnectionPool"] = None
    configured: bool = False
    available: bool = False
    startup_failure: Optional["StoreUnavailable"] = None
    last_query_error: Optional[str] = None

    @property
    def startup_error(self) -> Optional[str]:
        return self.startup_failure.reason if self.startup_failure is not None else None


@dataclass(frozen=True)
class StoreStatus:
    """Connectivity report for one store."""
    connected: bool
    configured: bool
    error: Optional[str] = None
    last_query_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connected": self.connected,
            "configured": self.configured,
            "error": self.error,
            "last_query_error": self.last_query_error,
        }
