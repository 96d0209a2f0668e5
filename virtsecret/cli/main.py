"""CLI entrypoint for virtsecret."""
import sys
import base64
import argparse
import logging
from pathlib import Path

from virtsecret.secrets.domains.models import SecretDefinition
from virtsecret.secrets.workflows import secret_operations
from .validators import validate_secret_value, validate_usage_type, validate_uuid

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _connect(args):
    """Open the connection selected by --uri/--readonly, env or config."""
    readonly = True if args.readonly else None
    return secret_operations.open_connection(args.uri, readonly=readonly)


def _selector(args) -> dict:
    """Turn --uuid / --usage / --usage-id into lookup keyword arguments."""
    if args.uuid and args.usage:
        print("Error: Use either --uuid or --usage/--usage-id, not both", file=sys.stderr)
        sys.exit(2)
    if args.uuid:
        validate_uuid(args.uuid)
        return {"uuid": args.uuid}
    if args.usage:
        return {"usage_type": validate_usage_type(args.usage), "usage_id": args.usage_id}
    print("Error: Select a secret with --uuid or --usage/--usage-id", file=sys.stderr)
    sys.exit(2)


def _read_value_file(path: str) -> bytes:
    value_path = Path(path)
    if not value_path.is_file():
        print(f"Error: Value file does not exist: {value_path}", file=sys.stderr)
        sys.exit(1)
    return value_path.read_bytes()


def cmd_version(args):
    """Show version information."""
    print(f"virtsecret {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from virtsecret.secrets.domains.preferences import set_config_path

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    stored = set_config_path(config_path)
    print(f"Config path set to: {stored}")


def cmd_config_show(args):
    """Show current config file path and the libvirt URI it resolves to."""
    from virtsecret.secrets.domains.config_loader import ConfigError, default_config_path
    from virtsecret.secrets.domains.preferences import get_config_path

    config_path = get_config_path()

    if config_path:
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        if default_config.exists():
            print("Source: default")
        else:
            print("Source: default (file not found)")

    try:
        print(f"URI: {secret_operations.resolve_uri(args.uri)}")
    except (FileNotFoundError, ConfigError) as e:
        logger.debug(f"Could not resolve URI: {e}")
        print("URI: (not configured)")


def cmd_config_clear(args):
    """Clear config path preference."""
    from virtsecret.secrets.domains.config_loader import default_config_path
    from virtsecret.secrets.domains.preferences import clear_config_path

    clear_config_path()
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_secrets_count(args):
    """Print the number of secrets on the connection."""
    with _connect(args) as conn:
        print(conn.num_of_secrets())


def cmd_secrets_list(args):
    """List secrets with their usage."""
    with _connect(args) as conn:
        infos = secret_operations.list_secret_info(conn)

    if args.quiet:
        for info in infos:
            print(info.uuid)
        return

    if not infos:
        print("No secrets defined")
        return
    for info in infos:
        print(f"{info.uuid}  {info.usage_type_name:<7} {info.usage_id or ''}".rstrip())


def cmd_secrets_show(args):
    """Show a secret's summary or XML description."""
    selector = _selector(args)
    with _connect(args) as conn:
        with secret_operations.lookup_secret(conn, **selector) as secret:
            if args.xml:
                print(secret.xml_desc())
                return
            info = secret_operations.describe(secret)

    print(f"UUID:       {info.uuid}")
    print(f"Usage type: {info.usage_type_name}")
    print(f"Usage id:   {info.usage_id or ''}")


def cmd_secrets_define(args):
    """Define a secret from an XML file or from command-line fields."""
    if args.xml_file:
        xml_path = Path(args.xml_file)
        if not xml_path.is_file():
            print(f"Error: XML file does not exist: {xml_path}", file=sys.stderr)
            sys.exit(1)
        definition = xml_path.read_text()
    elif args.usage:
        validate_usage_type(args.usage)
        if args.uuid:
            validate_uuid(args.uuid)
        try:
            definition = SecretDefinition(
                usage_type=args.usage.lower(),
                usage_id=args.usage_id,
                uuid=args.uuid,
                description=args.description,
                ephemeral=args.ephemeral,
                private=args.private,
            )
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)
    else:
        print("Error: Provide --xml-file or --usage/--usage-id", file=sys.stderr)
        sys.exit(2)

    value = None
    if args.value_file:
        value = _read_value_file(args.value_file)
        validate_secret_value(value)

    with _connect(args) as conn:
        info = secret_operations.define_secret(conn, definition, value=value)
    print(info.uuid)


def cmd_secrets_get_value(args):
    """Print or save a secret's raw value."""
    selector = _selector(args)
    with _connect(args) as conn:
        value = secret_operations.get_secret_value(conn, **selector)

    if args.output:
        Path(args.output).write_bytes(value)
        print(f"Wrote {len(value)} bytes to {args.output}", file=sys.stderr)
    elif args.base64:
        print(base64.b64encode(value).decode("ascii"))
    else:
        sys.stdout.flush()
        sys.stdout.buffer.write(value)
        sys.stdout.buffer.flush()


def cmd_secrets_set_value(args):
    """Store a new value for a secret."""
    selector = _selector(args)
    if args.value_file:
        value = _read_value_file(args.value_file)
    elif args.stdin:
        value = sys.stdin.buffer.read()
    else:
        print("Error: Provide --value-file or --stdin", file=sys.stderr)
        sys.exit(2)
    validate_secret_value(value)

    with _connect(args) as conn:
        secret_operations.set_secret_value(conn, value, **selector)
    print(f"Stored {len(value)} bytes")


def cmd_secrets_undefine(args):
    """Delete a secret."""
    selector = _selector(args)
    with _connect(args) as conn:
        secret_operations.undefine_secret(conn, **selector)
    print("Secret undefined")


def _add_selector_arguments(parser):
    parser.add_argument("--uuid", help="Secret UUID (xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx)")
    parser.add_argument("--usage", help="Usage type: none, volume, ceph, iscsi, tls, vtpm")
    parser.add_argument("--usage-id", help="Usage id: volume path, iSCSI target or Ceph/TLS/vTPM name")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="virtsecret",
        description="virtsecret CLI - manage libvirt secrets",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (connection failure, secret not found, libvirt error, etc.)
  2 - Usage error (invalid arguments, invalid UUID or usage type, etc.)

Environment variables:
  VIRTSECRET_URI - libvirt URI (overrides config file)

Configuration:
  Default location: ~/.config/virtsecret/config.yml
  Custom path: Set with 'virtsecret config set-path <path>'
  View current: Run 'virtsecret config show'
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--uri", help="libvirt connection URI (e.g. qemu:///system)")
    parser.add_argument("--readonly", action="store_true", help="Open a read-only connection")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of virtsecret"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage virtsecret configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="""
Set the configuration file path preference.

This stores the absolute path to your config file in:
~/.config/virtsecret/preferences.json
        """
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="Display the configuration file path, its source and the resolved libvirt URI"
    )
    config_subparsers.add_parser(
        "clear",
        help="Clear config path preference",
        description="Remove the config path preference and fall back to ~/.config/virtsecret/config.yml"
    )

    # secrets command
    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Secret management operations",
        description="Manage secrets on a libvirt host"
    )
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    secrets_subparsers.add_parser("count", help="Print the number of secrets")

    list_parser = secrets_subparsers.add_parser("list", help="List secrets")
    list_parser.add_argument("-q", "--quiet", action="store_true", help="Print UUIDs only")

    show_parser = secrets_subparsers.add_parser("show", help="Show a secret")
    _add_selector_arguments(show_parser)
    show_parser.add_argument("--xml", action="store_true", help="Print the XML description")

    define_parser = secrets_subparsers.add_parser(
        "define",
        help="Define a secret",
        description="""
Define a secret from an XML file, or build the XML from options:

  virtsecret secrets define --usage volume --usage-id /var/lib/libvirt/images/vm.qcow2 --private

Prints the UUID of the defined secret.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    define_parser.add_argument("--xml-file", help="Secret XML document")
    _add_selector_arguments(define_parser)
    define_parser.add_argument("--description", help="Human readable description")
    define_parser.add_argument("--ephemeral", action="store_true", help="Keep the secret in memory only")
    define_parser.add_argument("--private", action="store_true", help="Never reveal the value to clients")
    define_parser.add_argument("--value-file", help="File whose bytes become the initial value")

    get_value_parser = secrets_subparsers.add_parser("get-value", help="Print a secret's value")
    _add_selector_arguments(get_value_parser)
    get_value_parser.add_argument("-o", "--output", help="Write the raw value to this file")
    get_value_parser.add_argument("--base64", action="store_true", help="Print the value base64 encoded")

    set_value_parser = secrets_subparsers.add_parser("set-value", help="Store a secret's value")
    _add_selector_arguments(set_value_parser)
    set_value_parser.add_argument("--value-file", help="File whose bytes become the value")
    set_value_parser.add_argument("--stdin", action="store_true", help="Read the value from stdin")

    undefine_parser = secrets_subparsers.add_parser("undefine", help="Delete a secret")
    _add_selector_arguments(undefine_parser)

    return parser


SECRETS_COMMANDS = {
    "count": cmd_secrets_count,
    "list": cmd_secrets_list,
    "show": cmd_secrets_show,
    "define": cmd_secrets_define,
    "get-value": cmd_secrets_get_value,
    "set-value": cmd_secrets_set_value,
    "undefine": cmd_secrets_undefine,
}

CONFIG_COMMANDS = {
    "set-path": cmd_config_set_path,
    "show": cmd_config_show,
    "clear": cmd_config_clear,
}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (connection, libvirt, secret not found, etc.)
        2 - Usage errors (invalid arguments, invalid UUID format, etc.)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            handler = CONFIG_COMMANDS.get(args.config_command)
            if handler is None:
                parser.print_help()
                sys.exit(2)
            handler(args)
        elif args.command == "secrets":
            handler = SECRETS_COMMANDS.get(args.secrets_command)
            if handler is None:
                parser.print_help()
                sys.exit(2)
            handler(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
