"""Workflows for secret operations that manage handles for the caller."""
import os
import logging
from typing import List, Optional, Tuple, Union

from ..domains.config_loader import load_config
from ..domains.connection import SecretConnection
from ..domains.errors import NotFoundError, VirtSecretError
from ..domains.models import SecretDefinition, SecretInfo
from ..domains.secret import Secret, SecretValue

logger = logging.getLogger(__name__)

URI_ENV_VAR = "VIRTSECRET_URI"


def resolve_connection_settings(uri: Optional[str] = None) -> Tuple[Optional[str], bool]:
    """
    Work out which libvirt URI to connect to.

    Priority order:
    1. Explicit uri argument
    2. VIRTSECRET_URI environment variable
    3. Config file (connection.uri)

    Returns:
        (uri, readonly) where readonly comes from the config file when one is loaded

    Raises:
        FileNotFoundError, ConfigError: If the config file is needed but unusable
    """
    if uri:
        logger.debug(f"Using libvirt URI from argument: {uri}")
        return uri, False

    env_uri = os.getenv(URI_ENV_VAR)
    if env_uri:
        logger.debug(f"Using {URI_ENV_VAR} from environment: {env_uri}")
        return env_uri, False

    config = load_config()
    connection = config['connection']
    return connection['uri'], connection['readonly']


def resolve_uri(uri: Optional[str] = None) -> Optional[str]:
    return resolve_connection_settings(uri)[0]


def open_connection(uri: Optional[str] = None, readonly: Optional[bool] = None) -> SecretConnection:
    """
    Open a SecretConnection from the argument, environment or config file.

    Args:
        uri: libvirt URI override
        readonly: Force read-only (True) or read-write (False); None uses the config
    """
    resolved_uri, config_readonly = resolve_connection_settings(uri)
    if readonly is None:
        readonly = config_readonly
    return SecretConnection.open(resolved_uri, readonly=readonly)


def describe(secret: Secret) -> SecretInfo:
    usage_type = secret.usagetype
    # Secrets without a usage have no usage id
    usage_id = None if usage_type == Secret.USAGE_TYPE_NONE else secret.usageid
    return SecretInfo(uuid=secret.uuid, usage_type=usage_type, usage_id=usage_id)


def list_secret_info(conn: SecretConnection) -> List[SecretInfo]:
    """Summaries for every secret on the connection."""
    infos = []
    for uuid in conn.list_secrets():
        try:
            with conn.lookup_secret_by_uuid(uuid) as secret:
                infos.append(describe(secret))
        except NotFoundError:
            logger.debug(f"Secret {uuid} disappeared while listing, skipping")
    return infos


def lookup_secret(
    conn: SecretConnection,
    uuid: Optional[str] = None,
    usage_type: Optional[int] = None,
    usage_id: Optional[str] = None,
) -> Secret:
    """
    Look up a secret by UUID, or by usage when no UUID is given.

    The caller owns the returned handle; use it in a with block.

    Raises:
        ValueError: If neither uuid nor usage_type is given
        NotFoundError: If no secret matches
    """
    if uuid:
        return conn.lookup_secret_by_uuid(uuid)
    if usage_type is not None:
        return conn.lookup_secret_by_usage(usage_type, usage_id)
    raise ValueError("Either uuid or usage_type is required to look up a secret")


def define_secret(
    conn: SecretConnection,
    definition: Union[SecretDefinition, str],
    value: Optional[SecretValue] = None,
    flags: int = 0,
) -> SecretInfo:
    """
    Define a secret and optionally store its value.

    If storing the value fails, a secret created by this call is undefined
    before the error propagates.

    Args:
        definition: SecretDefinition or raw secret XML
        value: Initial value to store
        flags: Passed to virSecretDefineXML
    """
    xml = definition.to_xml() if isinstance(definition, SecretDefinition) else definition
    existing = set(conn.list_secrets()) if value is not None else set()
    with conn.define_secret_xml(xml, flags) as secret:
        if value is not None:
            try:
                secret.set_value(value)
            except (VirtSecretError, TypeError):
                # A redefined secret keeps its old state; a new one is removed again
                if secret.uuid not in existing:
                    logger.warning(f"Storing the value failed, undefining new secret {secret.uuid}")
                    secret.undefine()
                raise
        info = describe(secret)
    logger.info(f"Secret {info.uuid} defined ({info.usage_type_name})")
    return info


def get_secret_value(conn: SecretConnection, uuid: Optional[str] = None,
                     usage_type: Optional[int] = None, usage_id: Optional[str] = None) -> bytes:
    with lookup_secret(conn, uuid, usage_type, usage_id) as secret:
        return secret.get_value()


def set_secret_value(conn: SecretConnection, value: SecretValue, uuid: Optional[str] = None,
                     usage_type: Optional[int] = None, usage_id: Optional[str] = None) -> None:
    with lookup_secret(conn, uuid, usage_type, usage_id) as secret:
        secret.set_value(value)


def undefine_secret(conn: SecretConnection, uuid: Optional[str] = None,
                    usage_type: Optional[int] = None, usage_id: Optional[str] = None) -> None:
    with lookup_secret(conn, uuid, usage_type, usage_id) as secret:
        secret.undefine()
