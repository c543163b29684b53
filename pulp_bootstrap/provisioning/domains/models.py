"""Domain models for Clowder descriptors and Pulp operator resources."""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigError, EncodingError

PULP_API_GROUP = "repo-manager.pulpproject.org"
PULP_API_VERSION = "v1alpha1"
PULP_API_GROUP_VERSION = f"{PULP_API_GROUP}/{PULP_API_VERSION}"
PULP_KIND = "Pulp"
PULP_PLURAL = "pulps"

KIND_DATABASE = "database"
KIND_CACHE = "cache"
KIND_OBJECT_STORE = "object-store"

# Logical field name -> key the Pulp operator reads from the Secret.
# The naming style differs per kind and must stay that way.
SECRET_KEY_SCHEMAS: Dict[str, Dict[str, str]] = {
    KIND_DATABASE: {
        "host": "POSTGRES_HOST",
        "port": "POSTGRES_PORT",
        "username": "POSTGRES_USERNAME",
        "password": "POSTGRES_PASSWORD",
        "db-name": "POSTGRES_DB_NAME",
        "ssl-mode": "POSTGRES_SSLMODE",
    },
    KIND_CACHE: {
        "host": "REDIS_HOST",
        "port": "REDIS_PORT",
        "password": "REDIS_PASSWORD",
        "db-index": "REDIS_DB",
    },
    KIND_OBJECT_STORE: {
        "access-key-id": "s3-access-key-id",
        "secret-access-key": "s3-secret-access-key",
        "bucket-name": "s3-bucket-name",
        "region": "s3-region",
    },
}


def _require(data: Mapping[str, Any], key: str, section: str) -> Any:
    if data.get(key) in (None, ""):
        raise ConfigError(f"Missing '{section}.{key}' in Clowder config")
    return data[key]


def _port(data: Mapping[str, Any], section: str) -> int:
    value = _require(data, "port", section)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid '{section}.port' in Clowder config: {value!r}")


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass(frozen=True)
class ProvisioningDefaults:
    """Values the Clowder config has no source for."""
    database_name: str = "pulp"
    region: str = "us-east-1"
    cache_db_index: str = ""
    endpoint_scheme: str = "http"


@dataclass(frozen=True)
class DatabaseConfig:
    """Clowder ``database`` descriptor."""
    hostname: str
    port: int
    username: str = ""
    password: str = ""
    admin_username: str = ""
    admin_password: str = ""
    ssl_mode: str = ""
    name: str = ""
    rds_ca: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DatabaseConfig":
        return cls(
            hostname=str(_require(data, "hostname", "database")),
            port=_port(data, "database"),
            username=str(data.get("username") or ""),
            password=str(data.get("password") or ""),
            admin_username=str(data.get("adminUsername") or ""),
            admin_password=str(data.get("adminPassword") or ""),
            ssl_mode=str(data.get("sslMode") or ""),
            name=str(data.get("name") or ""),
            rds_ca=str(data.get("rdsCa") or ""),
        )


@dataclass(frozen=True)
class CacheConfig:
    """Clowder ``inMemoryDb`` descriptor. ``password`` of None means no auth."""
    hostname: str
    port: int
    password: Optional[str] = None
    username: Optional[str] = None
    ssl_mode: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CacheConfig":
        ssl_mode = data.get("sslMode")
        return cls(
            hostname=str(_require(data, "hostname", "inMemoryDb")),
            port=_port(data, "inMemoryDb"),
            password=_optional_str(data.get("password")),
            username=_optional_str(data.get("username")),
            ssl_mode=None if ssl_mode is None else bool(ssl_mode),
        )


@dataclass(frozen=True)
class ObjectStoreBucket:
    """One bucket of a Clowder ``objectStore`` descriptor."""
    name: str
    requested_name: str = ""
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ObjectStoreBucket":
        return cls(
            name=str(data.get("name") or ""),
            requested_name=str(data.get("requestedName") or ""),
            access_key=_optional_str(data.get("accessKey")),
            secret_key=_optional_str(data.get("secretKey")),
            region=_optional_str(data.get("region")),
        )


@dataclass(frozen=True)
class ObjectStoreConfig:
    """Clowder ``objectStore`` descriptor."""
    hostname: str
    port: int
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    tls: bool = False
    buckets: Tuple[ObjectStoreBucket, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ObjectStoreConfig":
        buckets = data.get("buckets") or []
        if not isinstance(buckets, list) or not all(isinstance(b, Mapping) for b in buckets):
            raise ConfigError("'objectStore.buckets' must be a list of mappings in Clowder config")
        tls = data.get("tls")
        if tls is None:
            tls = False
        if not isinstance(tls, bool):
            raise ConfigError(f"'objectStore.tls' must be true or false in Clowder config, got {tls!r}")
        return cls(
            hostname=str(_require(data, "hostname", "objectStore")),
            port=_port(data, "objectStore"),
            access_key=_optional_str(data.get("accessKey")),
            secret_key=_optional_str(data.get("secretKey")),
            tls=tls,
            buckets=tuple(ObjectStoreBucket.from_dict(b) for b in buckets),
        )


@dataclass(frozen=True)
class ClowderConfig:
    """The dependency descriptors pulled out of a Clowder app config."""
    database: Optional[DatabaseConfig] = None
    in_memory_db: Optional[CacheConfig] = None
    object_store: Optional[ObjectStoreConfig] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClowderConfig":
        database = data.get("database")
        in_memory_db = data.get("inMemoryDb")
        object_store = data.get("objectStore")
        for section, value in (("database", database), ("inMemoryDb", in_memory_db), ("objectStore", object_store)):
            if value and not isinstance(value, Mapping):
                raise ConfigError(f"'{section}' in Clowder config must be a mapping")
        return cls(
            database=DatabaseConfig.from_dict(database) if database else None,
            in_memory_db=CacheConfig.from_dict(in_memory_db) if in_memory_db else None,
            object_store=ObjectStoreConfig.from_dict(object_store) if object_store else None,
        )


@dataclass(frozen=True)
class SecretPayload:
    """Flat credential bundle for one dependency kind, keyed by logical field name."""
    kind: str
    fields: Mapping[str, str]

    def string_data(self) -> Dict[str, str]:
        """Render the payload under the key names the Pulp operator reads."""
        schema = SECRET_KEY_SCHEMAS[self.kind]
        return {schema[key]: value for key, value in self.fields.items()}


@dataclass(frozen=True)
class ResourceRecord:
    """A ``Pulp`` custom resource that points at secrets by name."""
    name: str
    namespace: str
    database_secret: str
    cache_secret: str
    object_storage_secret: str
    settings_blob: bytes = field(default=b"{}")

    def to_body(self) -> Dict[str, Any]:
        """
        Build the custom resource document submitted to the API server.

        The settings blob is embedded as raw JSON under ``spec.pulp_settings``.

        Raises:
            EncodingError: If the settings blob is not valid JSON
        """
        try:
            pulp_settings = json.loads(self.settings_blob)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Settings blob for '{self.name}' is not valid JSON: {e}")

        return {
            "apiVersion": PULP_API_GROUP_VERSION,
            "kind": PULP_KIND,
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
            },
            "spec": {
                "database": {
                    "external_db_secret": self.database_secret,
                },
                "cache": {
                    "enabled": True,
                    "external_cache_secret": self.cache_secret,
                },
                "object_storage_s3_secret": self.object_storage_secret,
                "pulp_settings": pulp_settings,
            },
        }

    def serialize(self) -> bytes:
        """Serialize the resource body to JSON bytes."""
        body = self.to_body()
        try:
            return json.dumps(body).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Failed to serialize resource '{self.name}': {e}")
