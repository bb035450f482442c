"""
MR-ROBOT - Dual-store data layer

Store A (AWS) and store B (Azure) receive every statement; store B is the
preferred source of results. See mediator.py for the selection policy.
"""

from mrrobot.storage.models import (
    MediatedResult,
    OutcomeStatus,
    StoreHandle,
    StoreIdentity,
    StoreOutcome,
    StoreStatus
)
from mrrobot.storage.errors import (
    AggregateStoreFailure,
    BothQueriesFailed,
    BothStoresUnavailable,
    ConfigurationMissing,
    MediatorError,
    QueryFailed,
    StoreUnavailable
)
from mrrobot.storage.mediator import DualStoreMediator, create_pool

__all__ = [
    'DualStoreMediator',
    'create_pool',
    'MediatedResult',
    'OutcomeStatus',
    'StoreHandle',
    'StoreIdentity',
    'StoreOutcome',
    'StoreStatus',
    'AggregateStoreFailure',
    'BothQueriesFailed',
    'BothStoresUnavailable',
    'ConfigurationMissing',
    'MediatorError',
    'QueryFailed',
    'StoreUnavailable'
]
