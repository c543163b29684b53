"""CLI entrypoint for pulp-bootstrap."""
import sys
import json
import argparse
import logging
from dataclasses import replace
from pathlib import Path

import yaml

from .validators import validate_namespace, validate_object_name

VERSION = "0.1.0"

logger = logging.getLogger(__name__)

# Example Clowder config mirroring what the platform injector renders for an app
# that requests a database, an in-memory DB and one object store bucket.
SAMPLE_CLOWDER_CONFIG = {
    "database": {
        "adminPassword": "pass",
        "adminUsername": "user",
        "hostname": "dbhost",
        "name": "dbname",
        "password": "dbpass",
        "port": 5432,
        "sslMode": "disable",
        "username": "dbuser",
    },
    "inMemoryDb": {
        "hostname": "example.redis.local",
        "port": 6379,
    },
    "objectStore": {
        "hostname": "endpoint",
        "port": 9292,
        "accessKey": "test",
        "secretKey": "test",
        "tls": False,
        "buckets": [
            {
                "accessKey": "test",
                "secretKey": "test",
                "requestedName": "reqname",
                "name": "pulp",
            },
        ],
    },
}


def _configure_logging(args):
    level = logging.WARNING
    if getattr(args, "debug", False):
        level = logging.DEBUG
    elif getattr(args, "verbose", False):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s" if level == logging.DEBUG else "%(message)s",
        stream=sys.stderr
    )


def _load_inputs(args):
    """Load settings and Clowder config, apply CLI overrides and validate names."""
    from pulp_bootstrap.provisioning.domains.config_loader import load_clowder_config, load_settings

    settings = load_settings(args.settings)
    if args.namespace:
        settings = replace(settings, namespace=args.namespace)
    if getattr(args, "context", None):
        settings = replace(settings, context=args.context)

    validate_namespace(settings.namespace)
    validate_object_name(settings.database_secret, "database secret")
    validate_object_name(settings.cache_secret, "cache secret")
    validate_object_name(settings.object_storage_secret, "object storage secret")
    validate_object_name(settings.resource_name, "Pulp resource")

    clowder = load_clowder_config(args.clowder_config)
    return clowder, settings


def cmd_version(args):
    """Show version information."""
    print(f"pulp-bootstrap {VERSION}")


def cmd_sample_config(args):
    """Print an example Clowder config."""
    if args.output == "yaml":
        print(yaml.safe_dump(SAMPLE_CLOWDER_CONFIG, sort_keys=False), end="")
    else:
        print(json.dumps(SAMPLE_CLOWDER_CONFIG, indent=2))


def cmd_provision(args):
    """Create the secrets and the Pulp resource in the cluster."""
    from pulp_bootstrap.provisioning.domains.k8s_client import KubernetesSubmissionClient
    from pulp_bootstrap.provisioning.workflows.provision import format_report, provision

    clowder, settings = _load_inputs(args)
    client = KubernetesSubmissionClient(context=settings.context)
    report = provision(clowder, settings, client)

    print(format_report(report))
    if not report.succeeded:
        print(f"Error: {len(report.failures)} provisioning step(s) failed", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


def cmd_render(args):
    """Print the manifests provision would submit, without touching the cluster."""
    from pulp_bootstrap.provisioning.workflows.provision import format_report, render

    clowder, settings = _load_inputs(args)
    manifests, report = render(clowder, settings)

    if args.output == "json":
        print(json.dumps(manifests, indent=2))
    else:
        print(yaml.safe_dump_all(manifests, sort_keys=False), end="")

    if not report.succeeded:
        print(format_report(report), file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


def cmd_config_set_path(args):
    """Set the settings (or Clowder config) path preference."""
    from pulp_bootstrap.provisioning.domains.preferences import (
        CLOWDER_CONFIG_PATH, SETTINGS_PATH, set_preference,
    )

    path = Path(args.path).resolve()

    if not path.exists():
        print(f"Error: File does not exist: {path}", file=sys.stderr)
        sys.exit(1)

    if not path.is_file():
        print(f"Error: Path is not a file: {path}", file=sys.stderr)
        sys.exit(1)

    key = CLOWDER_CONFIG_PATH if args.clowder else SETTINGS_PATH
    set_preference(key, str(path))
    label = "Clowder config path" if args.clowder else "Settings path"
    print(f"{label} set to: {path}")


def cmd_config_show(args):
    """Show where settings and the Clowder config are read from."""
    import os
    from pulp_bootstrap.provisioning.domains.config_loader import CLOWDER_CONFIG_ENV, default_settings_path
    from pulp_bootstrap.provisioning.domains.preferences import (
        CLOWDER_CONFIG_PATH, SETTINGS_PATH, get_preference,
    )

    settings_pref = get_preference(SETTINGS_PATH)
    if settings_pref:
        settings_path = Path(settings_pref)
        suffix = "" if settings_path.exists() else " (file not found)"
        print(f"Settings path: {settings_path}{suffix}")
        print("Source: preference")
    else:
        default_path = default_settings_path()
        if default_path.exists():
            print(f"Settings path: {default_path}")
            print("Source: default")
        else:
            print(f"Settings path: {default_path}")
            print("Source: default (file not found, built-in defaults apply)")

    env_path = os.getenv(CLOWDER_CONFIG_ENV)
    clowder_pref = get_preference(CLOWDER_CONFIG_PATH)
    if env_path:
        print(f"Clowder config: {env_path}")
        print(f"Source: {CLOWDER_CONFIG_ENV}")
    elif clowder_pref:
        print(f"Clowder config: {clowder_pref}")
        print("Source: preference")
    else:
        print("Clowder config: not set")


def cmd_config_clear(args):
    """Clear the settings (or Clowder config) path preference."""
    from pulp_bootstrap.provisioning.domains.config_loader import default_settings_path
    from pulp_bootstrap.provisioning.domains.preferences import (
        CLOWDER_CONFIG_PATH, SETTINGS_PATH, clear_preference,
    )

    if args.clowder:
        clear_preference(CLOWDER_CONFIG_PATH)
        print("Clowder config path preference cleared.")
    else:
        clear_preference(SETTINGS_PATH)
        print(f"Settings path preference cleared. Will use default: {default_settings_path()}")


def _add_input_arguments(parser):
    parser.add_argument(
        "--clowder-config",
        help="Path to the Clowder app config (defaults to $ACG_CONFIG, then the stored preference)"
    )
    parser.add_argument(
        "--settings",
        help="Path to the bootstrap settings YAML (defaults to preference, then ~/.config/pulp-bootstrap/config.yml)"
    )
    parser.add_argument(
        "-n", "--namespace",
        help="Namespace for the secrets and the Pulp resource (overrides settings)"
    )


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (config, cluster access, failed provisioning steps)
        2 - Usage errors (invalid arguments, invalid object names)
    """
    parser = argparse.ArgumentParser(
        prog="pulp-bootstrap",
        description="Translate Clowder dependency config into Pulp operator secrets and create a sample Pulp resource",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (config, cluster access, one or more provisioning steps failed)
  2 - Usage error (invalid arguments, invalid object names)

Environment variables:
  ACG_CONFIG - Path to the Clowder app config (cdappconfig.json)

Configuration:
  Default location: ~/.config/pulp-bootstrap/config.yml
  Custom path: Set with 'pulp-bootstrap config set-path <path>'
  View current: Run 'pulp-bootstrap config show'
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("--debug", action="store_true", help="Log debug output to stderr")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of pulp-bootstrap"
    )

    sample_parser = subparsers.add_parser(
        "sample-config",
        help="Print an example Clowder config",
        description="Print an example Clowder config with a database, an in-memory DB and one bucket"
    )
    sample_parser.add_argument("-o", "--output", choices=("json", "yaml"), default="json")

    provision_parser = subparsers.add_parser(
        "provision",
        help="Create secrets and the Pulp resource",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="""
Create the external database, external cache and S3 secrets from the Clowder
config, then create a Pulp resource referencing them.

Every step is attempted even if an earlier one fails. Nothing is retried or
rolled back; a summary of each step is printed at the end.

Exit codes:
  0 - All steps succeeded
  1 - At least one step failed, or config could not be loaded
  2 - Invalid namespace or object name
        """
    )
    _add_input_arguments(provision_parser)
    provision_parser.add_argument(
        "--context",
        help="kubeconfig context to use (skips in-cluster configuration)"
    )

    render_parser = subparsers.add_parser(
        "render",
        help="Print manifests without submitting them",
        description="Build the secrets and Pulp resource manifests and print them (dry run)"
    )
    _add_input_arguments(render_parser)
    render_parser.add_argument("-o", "--output", choices=("yaml", "json"), default="yaml")

    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage pulp-bootstrap configuration paths"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set settings (or Clowder config) path",
        description="Store the absolute path in ~/.config/pulp-bootstrap/preferences.json"
    )
    config_set_path_parser.add_argument("path", help="Path to the file")
    config_set_path_parser.add_argument(
        "--clowder", action="store_true", help="Store the Clowder config path instead of the settings path"
    )

    config_subparsers.add_parser(
        "show",
        help="Show current config paths",
        description="Display where settings and the Clowder config are read from"
    )

    config_clear_parser = config_subparsers.add_parser(
        "clear",
        help="Clear a path preference",
        description="Remove the stored settings (or Clowder config) path"
    )
    config_clear_parser.add_argument(
        "--clowder", action="store_true", help="Clear the Clowder config path instead of the settings path"
    )

    args = parser.parse_args()
    _configure_logging(args)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "sample-config":
            cmd_sample_config(args)
        elif args.command == "provision":
            cmd_provision(args)
        elif args.command == "render":
            cmd_render(args)
        elif args.command == "config":
            if args.config_command == "set-path":
                cmd_config_set_path(args)
            elif args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "clear":
                cmd_config_clear(args)
            else:
                config_parser.print_help()
                sys.exit(2)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
