"""Load bootstrap settings and the Clowder app config."""
import os
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .models import ClowderConfig, ProvisioningDefaults
from .preferences import CLOWDER_CONFIG_PATH, SETTINGS_PATH, get_preference

logger = logging.getLogger(__name__)

# Set by the platform injector to the path of the rendered cdappconfig.json
CLOWDER_CONFIG_ENV = "ACG_CONFIG"


@dataclass(frozen=True)
class BootstrapSettings:
    """Where and under which names the secrets and the Pulp resource are created."""
    namespace: str = "pulp"
    database_secret: str = "external-database"
    cache_secret: str = "external-redis"
    object_storage_secret: str = "test-s3"
    resource_name: str = "example-pulp"
    context: Optional[str] = None
    defaults: ProvisioningDefaults = field(default_factory=ProvisioningDefaults)


def default_settings_path() -> Path:
    return Path.home() / ".config" / "pulp-bootstrap" / "config.yml"


def _get_settings_path(explicit: Optional[str] = None) -> Optional[str]:
    """
    Resolve the settings file path.

    Priority order:
    1. Explicit path (``--settings``)
    2. User preference (``pulp-bootstrap config set-path``)
    3. Default location: ~/.config/pulp-bootstrap/config.yml

    Returns:
        Absolute path to the settings file, or None when only built-in defaults apply

    Raises:
        ConfigError: If an explicit path was given but doesn't exist
    """
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigError(f"Settings file not found: {path}")
        return str(path)

    preferred = get_preference(SETTINGS_PATH)
    if preferred:
        path = Path(preferred)
        if path.exists():
            logger.info(f"Using settings from preference: {path}")
            return str(path)
        logger.warning(f"Settings path from preference doesn't exist: {path}")

    default_path = default_settings_path()
    if default_path.exists():
        logger.info(f"Using default settings location: {default_path}")
        return str(default_path)

    return None


def _read_yaml(path: str, what: str) -> Any:
    try:
        with open(path, 'r') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {what} at {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read {what} at {path}: {e}")


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' section in settings must be a mapping")
    return value


def _parse_defaults(section: Dict[str, Any]) -> ProvisioningDefaults:
    allowed = {f.name for f in fields(ProvisioningDefaults)}
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ConfigError(
            f"Unknown key(s) in 'defaults': {', '.join(unknown)}\n"
            f"Allowed keys: {', '.join(sorted(allowed))}"
        )
    return ProvisioningDefaults(**{k: "" if v is None else str(v) for k, v in section.items()})


def load_settings(path: Optional[str] = None) -> BootstrapSettings:
    """
    Load bootstrap settings from YAML, falling back to built-in defaults.

    Expected format (every key optional):

        kubernetes:
          namespace: pulp
          context: kind-pulp
        secrets:
          database: external-database
          cache: external-redis
          object_storage: test-s3
        resource:
          name: example-pulp
        defaults:
          database_name: pulp
          region: us-east-1

    Raises:
        ConfigError: If the file is unreadable or malformed
    """
    settings_path = _get_settings_path(path)
    if settings_path is None:
        logger.info("No settings file found, using built-in defaults")
        return BootstrapSettings()

    config = _read_yaml(settings_path, "settings")
    if config is None:
        logger.warning(f"Settings file at {settings_path} is empty, using built-in defaults")
        return BootstrapSettings()
    if not isinstance(config, dict):
        raise ConfigError(f"Settings file at {settings_path} must contain a mapping")

    kubernetes = _section(config, "kubernetes")
    secrets = _section(config, "secrets")
    resource = _section(config, "resource")
    base = BootstrapSettings()

    settings = BootstrapSettings(
        namespace=str(kubernetes.get("namespace", base.namespace)),
        context=kubernetes.get("context"),
        database_secret=str(secrets.get("database", base.database_secret)),
        cache_secret=str(secrets.get("cache", base.cache_secret)),
        object_storage_secret=str(secrets.get("object_storage", base.object_storage_secret)),
        resource_name=str(resource.get("name", base.resource_name)),
        defaults=_parse_defaults(_section(config, "defaults")),
    )
    logger.info(f"Settings loaded successfully from {settings_path}")
    logger.debug(f"Using namespace: {settings.namespace}")
    return settings


def _get_clowder_config_path(explicit: Optional[str] = None) -> str:
    """
    Resolve the Clowder config path: explicit flag, ACG_CONFIG, then preference.

    Raises:
        ConfigError: If no source names a Clowder config
    """
    if explicit:
        return explicit

    env_path = os.getenv(CLOWDER_CONFIG_ENV)
    if env_path:
        logger.debug(f"Using Clowder config from {CLOWDER_CONFIG_ENV}: {env_path}")
        return env_path

    preferred = get_preference(CLOWDER_CONFIG_PATH)
    if preferred:
        return preferred

    raise ConfigError(
        "Clowder config not found. Provide it using one of these methods:\n\n"
        "1. Pass it explicitly:\n"
        "   pulp-bootstrap provision --clowder-config /path/to/cdappconfig.json\n\n"
        f"2. Export the variable the platform injector sets:\n"
        f"   export {CLOWDER_CONFIG_ENV}=/path/to/cdappconfig.json\n\n"
        "3. Remember a path:\n"
        "   pulp-bootstrap config set-path --clowder /path/to/cdappconfig.json\n\n"
        "Run 'pulp-bootstrap sample-config' for an example document.\n"
    )


def load_clowder_config(path: Optional[str] = None) -> ClowderConfig:
    """
    Load the Clowder app config (JSON or YAML) and extract its dependency descriptors.

    Raises:
        ConfigError: If the file is missing, unparseable, or has malformed descriptors
    """
    config_path = _get_clowder_config_path(path)
    if not os.path.isfile(config_path):
        raise ConfigError(f"Clowder config not found at: {config_path}")

    document = _read_yaml(config_path, "Clowder config")
    if not document:
        raise ConfigError(f"Clowder config at {config_path} is empty")
    if not isinstance(document, dict):
        raise ConfigError(f"Clowder config at {config_path} must contain a mapping")

    clowder = ClowderConfig.from_dict(document)
    logger.info(f"Clowder config loaded successfully from {config_path}")
    return clowder
