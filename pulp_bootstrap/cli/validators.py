"""Input validation for CLI arguments."""
import re
import sys

# RFC 1123 label / subdomain, as enforced by the API server for namespaces and object names
_LABEL = r'[a-z0-9]([-a-z0-9]*[a-z0-9])?'
DNS_LABEL_PATTERN = re.compile(rf'^{_LABEL}$')
DNS_SUBDOMAIN_PATTERN = re.compile(rf'^{_LABEL}(\.{_LABEL})*$')


def validate_namespace(namespace: str) -> None:
    """
    Validate a namespace name (RFC 1123 label, at most 63 characters).

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not namespace or len(namespace) > 63 or not DNS_LABEL_PATTERN.match(namespace):
        print(f"Error: Invalid namespace '{namespace}'", file=sys.stderr)
        print("\nNamespaces must be at most 63 characters of lowercase letters, digits and '-',", file=sys.stderr)
        print("starting and ending with a letter or digit (e.g. 'pulp', 'pulp-stage').", file=sys.stderr)
        sys.exit(2)


def validate_object_name(name: str, what: str) -> None:
    """
    Validate a secret or custom resource name (RFC 1123 subdomain).

    Args:
        name: Name to validate
        what: Description used in the error message, e.g. "database secret"

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print(f"Error: {what} name cannot be empty", file=sys.stderr)
        sys.exit(2)

    if len(name) > 253 or not DNS_SUBDOMAIN_PATTERN.match(name):
        print(f"Error: Invalid {what} name '{name}'", file=sys.stderr)
        print("\nAllowed characters: lowercase letters, numbers, hyphens (-), dots (.)", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ external-database", file=sys.stderr)
        print("  ✓ example-pulp", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ External_DB (uppercase, underscore)", file=sys.stderr)
        print("  ✗ -pulp (starts with hyphen)", file=sys.stderr)
        sys.exit(2)
