"""Input validation for CLI arguments."""
import re
import sys

from virtsecret.secrets.domains.models import USAGE_TYPES

UUID_PATTERN = r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$'


def validate_uuid(uuid: str) -> None:
    """
    Validate a secret UUID is in canonical 8-4-4-4-12 hex form.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not uuid:
        print("Error: Secret UUID cannot be empty", file=sys.stderr)
        sys.exit(2)

    if not re.match(UUID_PATTERN, uuid):
        print(f"Error: Invalid secret UUID '{uuid}'", file=sys.stderr)
        print("\nExpected format: xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx (hex digits)", file=sys.stderr)
        print("  ✓ 7a9e3b2c-1f4d-4c8a-9b6e-0d2f5a8c1e3b", file=sys.stderr)
        print("  ✗ 7a9e3b2c1f4d4c8a9b6e0d2f5a8c1e3b (missing hyphens)", file=sys.stderr)
        sys.exit(2)


def validate_usage_type(usage_type: str) -> int:
    """
    Validate a usage type name and return its libvirt code.

    Raises:
        SystemExit with code 2 if validation fails
    """
    code = USAGE_TYPES.get((usage_type or "").lower())
    if code is None:
        print(f"Error: Unknown usage type '{usage_type}'", file=sys.stderr)
        print(f"\nAllowed usage types: {', '.join(USAGE_TYPES)}", file=sys.stderr)
        sys.exit(2)
    return code


def validate_secret_value(value: bytes) -> None:
    """
    Validate secret value is not empty.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value:
        print("Error: Secret value cannot be empty", file=sys.stderr)
        sys.exit(2)
