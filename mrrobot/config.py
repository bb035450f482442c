"""
MR-ROBOT - Configuration

Centralized configuration for the dual-store data layer.

Environment Variables:
- STORE_A_HOST, STORE_A_PORT, STORE_A_USER, STORE_A_PASSWORD, STORE_A_DATABASE
- STORE_B_HOST, STORE_B_PORT, STORE_B_USER, STORE_B_PASSWORD, STORE_B_DATABASE
- DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_DATABASE (shared fallbacks;
  DB_NAME is accepted for DB_DATABASE)
- DB_POOL_MAX_SIZE: max connections per store (default: 10)
- DB_CONNECT_TIMEOUT: connect/probe timeout in seconds (default: 10)
- DB_POOL_MAX_IDLE: idle connection lifetime in seconds (default: 30)
- NODE_ENV / ENV: 'production' enables TLS for both stores

A store is configured when host, user and database all resolve. Stores that
are not configured are reported unavailable and never contacted.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from psycopg.conninfo import make_conninfo

from mrrobot.storage.models import StoreIdentity

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5432
DEFAULT_POOL_MAX_SIZE = 10
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_MAX_IDLE = 30.0

# Shared fallback variables, by field
_FALLBACKS = {
    "HOST": ("DB_HOST",),
    "PORT": ("DB_PORT",),
    "USER": ("DB_USER",),
    "PASSWORD": ("DB_PASSWORD",),
    "DATABASE": ("DB_DATABASE", "DB_NAME"),
}


def _lookup(identity: StoreIdentity, field_name: str) -> Optional[str]:
    """Resolve STORE_<X>_<FIELD>, falling back to the shared DB_* variables."""
    names = (f"STORE_{identity.value}_{field_name}",) + _FALLBACKS[field_name]
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def is_production() -> bool:
    env = os.getenv("NODE_ENV") or os.getenv("ENV") or "development"
    return env.lower() == "production"


@dataclass
class StoreConfig:
    """
    Connection settings for one store.

    Defaults mirror the pool the website has always run with:
    10 connections, 10s connect timeout, 30s idle timeout.
    """
    identity: StoreIdentity
    host: Optional[str] = None
    port: int = DEFAULT_PORT
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    sslmode: str = "disable"
    pool_min_size: int = 1
    pool_max_size: int = DEFAULT_POOL_MAX_SIZE
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    max_idle: float = DEFAULT_MAX_IDLE

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.database)

    def conninfo(self) -> str:
        """Build a libpq connection string."""
        return make_conninfo(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            dbname=self.database,
            sslmode=self.sslmode,
            connect_timeout=max(1, int(self.connect_timeout)),
        )

    def describe(self) -> str:
        """Human readable target, without credentials."""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"

    @classmethod
    def from_env(cls, identity: StoreIdentity) -> 'StoreConfig':
        """
        Load one store's settings from environment variables.

        Raises:
            ValueError: If a numeric setting cannot be parsed
        """
        port = _lookup(identity, "PORT")

        return cls(
            identity=identity,
            host=_lookup(identity, "HOST"),
            port=int(port) if port else DEFAULT_PORT,
            user=_lookup(identity, "USER"),
            password=_lookup(identity, "PASSWORD"),
            database=_lookup(identity, "DATABASE"),
            # 'require' encrypts without verifying the server certificate
            sslmode="require" if is_production() else "disable",
            pool_max_size=int(os.getenv("DB_POOL_MAX_SIZE", str(DEFAULT_POOL_MAX_SIZE))),
            connect_timeout=float(os.getenv("DB_CONNECT_TIMEOUT", str(DEFAULT_CONNECT_TIMEOUT))),
            max_idle=float(os.getenv("DB_POOL_MAX_IDLE", str(DEFAULT_MAX_IDLE))),
        )


@dataclass
class MediatorConfig:
    """Settings for both stores."""
    store_a: StoreConfig
    store_b: StoreConfig

    def for_store(self, identity: StoreIdentity) -> StoreConfig:
        return self.store_a if identity is StoreIdentity.A else self.store_b

    def stores(self) -> Tuple[StoreConfig, StoreConfig]:
        return (self.store_a, self.store_b)

    def any_configured(self) -> bool:
        return any(store.is_configured() for store in self.stores())

    @classmethod
    def from_env(cls) -> 'MediatorConfig':
        return cls(
            store_a=StoreConfig.from_env(StoreIdentity.A),
            store_b=StoreConfig.from_env(StoreIdentity.B),
        )


@dataclass
class AppConfig:
    """
    Application configuration.

    Reads from environment variables with safe defaults.
    """
    database: MediatorConfig
    environment: str

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """
        Load configuration from environment variables.

        Missing store settings are not an error here; the mediator decides
        at initialize() time whether enough is configured.
        """
        database = MediatorConfig.from_env()
        environment = (os.getenv("NODE_ENV") or os.getenv("ENV") or "development").lower()

        for store in database.stores():
            if store.is_configured():
                logger.info(
                    f"{store.identity.label} ({store.identity.provider}): "
                    f"{store.describe()} sslmode={store.sslmode}"
                )
            else:
                logger.warning(f"{store.identity.label} is not configured")

        return cls(database=database, environment=environment)


# Global config instance (lazy-loaded)
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get global application configuration.

    Lazy-loads from environment on first call.
    """
    global _config

    if _config is None:
        _config = AppConfig.from_env()

    return _config


def reload_config() -> AppConfig:
    """Reload configuration from environment (tests, hot-reload)."""
    global _config
    _config = AppConfig.from_env()
    return _config
