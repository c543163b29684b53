"""Translate Clowder dependency descriptors into Pulp operator secret payloads."""
import logging
from typing import Optional

from .errors import PreconditionError
from .models import (
    KIND_CACHE,
    KIND_DATABASE,
    KIND_OBJECT_STORE,
    CacheConfig,
    DatabaseConfig,
    ObjectStoreBucket,
    ObjectStoreConfig,
    ProvisioningDefaults,
    SecretPayload,
)

logger = logging.getLogger(__name__)

DEFAULTS = ProvisioningDefaults()


def map_database_config(config: DatabaseConfig, defaults: Optional[ProvisioningDefaults] = None) -> SecretPayload:
    """
    Convert a Clowder database descriptor into the external database secret.

    The database name always comes from ``defaults.database_name``; the name
    Clowder reports is not used. No validation is done, empty values pass
    straight through.

    Args:
        config: Clowder database descriptor
        defaults: Overrides for the built-in defaults

    Returns:
        SecretPayload with host, port, username, password, db-name, ssl-mode
    """
    defaults = defaults or DEFAULTS
    return SecretPayload(
        kind=KIND_DATABASE,
        fields={
            "host": config.hostname,
            "port": str(config.port),
            "username": config.username,
            "password": config.password,
            "db-name": defaults.database_name,
            "ssl-mode": config.ssl_mode,
        },
    )


def map_cache_config(config: CacheConfig, defaults: Optional[ProvisioningDefaults] = None) -> SecretPayload:
    """
    Convert a Clowder in-memory DB descriptor into the external cache secret.

    An absent password becomes an empty string. Clowder has no database index,
    so ``db-index`` is always ``defaults.cache_db_index``.
    """
    defaults = defaults or DEFAULTS
    password = config.password if config.password is not None else ""
    return SecretPayload(
        kind=KIND_CACHE,
        fields={
            "host": config.hostname,
            "port": str(config.port),
            "password": password,
            "db-index": defaults.cache_db_index,
        },
    )


def select_bucket(config: ObjectStoreConfig) -> ObjectStoreBucket:
    """
    Pick the bucket the Pulp instance will use: the first one listed.

    Raises:
        PreconditionError: If the descriptor lists no buckets
    """
    if not config.buckets:
        raise PreconditionError(
            f"Object store '{config.hostname}' has no buckets; at least one is required"
        )
    if len(config.buckets) > 1:
        logger.warning(
            f"Object store '{config.hostname}' lists {len(config.buckets)} buckets, "
            f"only '{config.buckets[0].name}' will be used"
        )
    return config.buckets[0]


def map_object_store_config(config: ObjectStoreConfig, defaults: Optional[ProvisioningDefaults] = None) -> SecretPayload:
    """
    Convert a Clowder object store descriptor into the S3 secret.

    Args:
        config: Clowder object store descriptor
        defaults: Overrides for the built-in defaults

    Returns:
        SecretPayload with access-key-id, secret-access-key, bucket-name, region

    Raises:
        PreconditionError: If the descriptor lists no buckets

    Behavior:
        - Keys come from the top-level access/secret key, empty when absent
        - Only the first bucket is consulted
        - A region set on that bucket replaces ``defaults.region``
    """
    defaults = defaults or DEFAULTS
    bucket = select_bucket(config)

    access_key = config.access_key if config.access_key is not None else ""
    secret_key = config.secret_key if config.secret_key is not None else ""
    region = bucket.region if bucket.region is not None else defaults.region

    return SecretPayload(
        kind=KIND_OBJECT_STORE,
        fields={
            "access-key-id": access_key,
            "secret-access-key": secret_key,
            "bucket-name": bucket.name,
            "region": region,
        },
    )
