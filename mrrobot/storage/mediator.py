"""
MR-ROBOT - Dual-Store Write Mediator

Mirrors every statement to two independent Postgres stores and returns the
result of the preferred one.

RESPONSIBILITIES:
- Store Initializer: open one pool per configured store, probe it once
- Mediated Executor: run a statement on store B then store A, pick a result
- Status Reporter: probe both stores on demand

SELECTION POLICY (fixed):
- Store B's result if B succeeded
- else store A's result if A succeeded
- else BothQueriesFailed / BothStoresUnavailable

This is NOT a transaction across stores. A statement that succeeds on one
store and fails on the other leaves them diverged; the failure is logged and
recorded on the handle, and the call still returns the surviving result.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

import psycopg
from psycopg import RawCursor
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool
import structlog

from mrrobot.storage.errors import (
    BothQueriesFailed,
    BothStoresUnavailable,
    ConfigurationMissing,
    MediatorError,
    QueryFailed,
    StoreUnavailable,
)
from mrrobot.storage.models import (
    MediatedResult,
    OutcomeStatus,
    StoreHandle,
    StoreIdentity,
    StoreOutcome,
    StoreStatus,
)

if TYPE_CHECKING:
    from mrrobot.config import MediatorConfig, StoreConfig

logger = structlog.get_logger()

PROBE_QUERY = "SELECT 1"

# Execution order and preference order are the same: B, then A
STORE_ORDER = (StoreIdentity.B, StoreIdentity.A)

PoolFactory = Callable[["StoreConfig"], ConnectionPool]


def create_pool(config: "StoreConfig") -> ConnectionPool:
    """
    Build an unopened connection pool for one store.

    Connections hand out raw cursors so statements keep Postgres-native
    $1, $2 placeholders untouched, and rows come back as dicts.
    """
    return ConnectionPool(
        conninfo=config.conninfo(),
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
        timeout=config.connect_timeout,
        max_idle=config.max_idle,
        kwargs={"row_factory": dict_row, "cursor_factory": RawCursor},
        name=config.identity.key,
        open=False,
    )


class DualStoreMediator:
    """
    Owns both StoreHandles.

    Construct once at process start, call initialize(), inject into route
    handlers, call shutdown() at exit.
    """

    def __init__(self, config: "MediatorConfig", pool_factory: PoolFactory = create_pool):
        self.config = config
        self._pool_factory = pool_factory
        self._handles: Dict[StoreIdentity, StoreHandle] = {
            identity: StoreHandle(identity=identity) for identity in StoreIdentity
        }
        self._initialized = False

    def __enter__(self) -> "DualStoreMediator":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def handle(self, identity: StoreIdentity) -> StoreHandle:
        return self._handles[identity]

    def available_stores(self) -> List[StoreIdentity]:
        return [identity for identity in STORE_ORDER if self._handles[identity].available]

    # ------------------------------------------------------------------
    # Store Initializer
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Open and probe a pool for each configured store.

        One store failing never stops the other from initializing.

        Raises:
            MediatorError: If already initialized
            ConfigurationMissing: If neither store is configured
            BothStoresUnavailable: If no configured store could be reached
        """
        if self._initialized:
            raise MediatorError("Mediator already initialized")

        if not self.config.any_configured():
            logger.error("mediator.init.failed", error="no store configured")
            raise ConfigurationMissing(
                "No store configured. Set STORE_A_HOST/STORE_A_USER/STORE_A_DATABASE, "
                "the STORE_B_* equivalents, or the shared DB_* defaults."
            )

        logger.info("mediator.init.start")

        for identity in STORE_ORDER:
            self._init_store(identity)

        self._initialized = True

        if not self.available_stores():
            reasons = {
                identity: handle.startup_error
                for identity, handle in self._handles.items()
            }
            logger.error("mediator.init.failed", error="no store reachable")
            raise BothStoresUnavailable(reasons)

        logger.info(
            "mediator.ready",
            available=[identity.key for identity in self.available_stores()]
        )

    def _init_store(self, identity: StoreIdentity) -> None:
        handle = self._handles[identity]
        store_config = self.config.for_store(identity)

        if not store_config.is_configured():
            handle.startup_failure = StoreUnavailable(identity, "not configured")
            logger.warning("mediator.store.not_configured", store=identity.key)
            return

        handle.configured = True
        pool = None

        try:
            pool = self._pool_factory(store_config)
            pool.open(wait=True, timeout=store_config.connect_timeout)
            self._probe(pool, timeout=store_config.connect_timeout)
        except psycopg.Error as e:
            handle.startup_failure = StoreUnavailable(identity, str(e))
            logger.warning(
                "mediator.store.unavailable",
                store=identity.key,
                provider=identity.provider,
                error=handle.startup_error
            )
            if pool is not None:
                pool.close()
            return

        handle.pool = pool
        handle.available = True
        logger.info(
            "mediator.store.connected",
            store=identity.key,
            provider=identity.provider,
            target=store_config.describe()
        )

    @staticmethod
    def _probe(pool: ConnectionPool, timeout: Optional[float] = None) -> None:
        with pool.connection(timeout=timeout) as conn:
            with conn.cursor() as cur:
                cur.execute(PROBE_QUERY)
                cur.fetchall()

    # ------------------------------------------------------------------
    # Mediated Executor
    # ------------------------------------------------------------------

    def execute_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """
        Run a statement on both stores and return the selected store's rows.

        This is the single entry point route handlers use.
        """
        return self.execute_mediated(sql, params).rows

    def execute_mediated(self, sql: str, params: Optional[Sequence[Any]] = None) -> MediatedResult:
        """
        Run a statement on store B then store A and apply the selection policy.

        Args:
            sql: Statement with Postgres $1, $2 placeholders (passed through as-is)
            params: Ordered bind parameters

        Returns:
            MediatedResult with the selected store's rows and every outcome

        Raises:
            MediatorError: If called before initialize()
            BothStoresUnavailable: If no store has a live handle
            BothQueriesFailed: If every available store failed the statement
        """
        if not self._initialized:
            raise MediatorError("Mediator not initialized. Call initialize() first.")

        if not self.available_stores():
            raise BothStoresUnavailable({
                identity: handle.startup_error
                for identity, handle in self._handles.items()
            })

        outcomes: Dict[StoreIdentity, StoreOutcome] = {}
        for identity in STORE_ORDER:
            outcomes[identity] = self._run_on_store(self._handles[identity], sql, params)

        return self._select(outcomes)

    def _run_on_store(
        self,
        handle: StoreHandle,
        sql: str,
        params: Optional[Sequence[Any]]
    ) -> StoreOutcome:
        if not handle.available:
            return StoreOutcome(store=handle.identity, status=OutcomeStatus.SKIPPED)

        try:
            with handle.pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, list(params) if params else None)
                    rows = cur.fetchall() if cur.description is not None else []
                    rowcount = cur.rowcount
        except psycopg.Error as e:
            failure = QueryFailed(handle.identity, str(e))
            handle.last_query_error = failure.message
            logger.warning(
                "mediator.query.store_failed",
                store=handle.identity.key,
                provider=handle.identity.provider,
                error=failure.message
            )
            return StoreOutcome(
                store=handle.identity,
                status=OutcomeStatus.FAILED,
                error=failure
            )

        handle.last_query_error = None
        logger.debug("mediator.query.store_ok", store=handle.identity.key, rowcount=rowcount)
        return StoreOutcome(
            store=handle.identity,
            status=OutcomeStatus.SUCCEEDED,
            rows=list(rows),
            rowcount=rowcount
        )

    @staticmethod
    def _select(outcomes: Dict[StoreIdentity, StoreOutcome]) -> MediatedResult:
        selected = next(
            (identity for identity in STORE_ORDER if outcomes[identity].succeeded),
            None
        )

        if selected is None:
            failures = {
                identity: outcome.error
                for identity, outcome in outcomes.items()
                if outcome.status is OutcomeStatus.FAILED
            }
            logger.error(
                "mediator.query.failed",
                errors={identity.key: failure.message for identity, failure in failures.items()}
            )
            raise BothQueriesFailed(failures)

        failed = [
            identity.key for identity, outcome in outcomes.items()
            if outcome.status is OutcomeStatus.FAILED
        ]
        if failed:
            # Stores are now diverged; nothing is rolled back
            logger.warning(
                "mediator.query.partial_failure",
                selected=selected.key,
                failed=failed
            )

        chosen = outcomes[selected]
        return MediatedResult(
            rows=chosen.rows,
            rowcount=chosen.rowcount,
            selected=selected,
            outcomes=outcomes
        )

    # ------------------------------------------------------------------
    # Status Reporter
    # ------------------------------------------------------------------

    def get_status(self) -> Dict[str, StoreStatus]:
        """
        Probe each available store with SELECT 1.

        Stores that never came up are reported disconnected without a probe.

        Returns:
            {'store_a': StoreStatus, 'store_b': StoreStatus}
        """
        status = {}

        for identity in StoreIdentity:
            handle = self._handles[identity]

            if not handle.available:
                status[identity.key] = StoreStatus(
                    connected=False,
                    configured=handle.configured,
                    error=handle.startup_error,
                    last_query_error=handle.last_query_error
                )
                continue

            try:
                self._probe(handle.pool, timeout=self.config.for_store(identity).connect_timeout)
            except psycopg.Error as e:
                logger.warning("mediator.status.probe_failed", store=identity.key, error=str(e))
                status[identity.key] = StoreStatus(
                    connected=False,
                    configured=True,
                    error=str(e),
                    last_query_error=handle.last_query_error
                )
                continue

            status[identity.key] = StoreStatus(
                connected=True,
                configured=True,
                last_query_error=handle.last_query_error
            )

        return status

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Close both pools. Safe to call more than once."""
        for identity in STORE_ORDER:
            handle = self._handles[identity]
            if handle.pool is None:
                continue

            handle.pool.close()
            handle.pool = None
            handle.available = False
            logger.info("mediator.store.closed", store=identity.key)

        self._initialized = False
