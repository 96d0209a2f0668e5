"""libvirt connection wrapper exposing the secret API."""
import logging
from typing import List, Optional

import libvirt

from .errors import DefinitionError, InvalidHandleError, NotFoundError, RetrieveError, VirtSecretError
from .native import call_native, is_negative, is_null
from .secret import Secret

logger = logging.getLogger(__name__)


class SecretConnection:
    """
    Secret operations on one libvirt connection.

    Wraps an already-open virConnect, or opens one with SecretConnection.open().
    Only connections opened here are closed here. The connection must stay
    open for as long as any Secret looked up through it is in use.
    """

    def __init__(self, conn: "libvirt.virConnect", owned: bool = False):
        self._conn = conn
        self._owned = owned

    @classmethod
    def open(cls, uri: Optional[str] = None, readonly: bool = False) -> "SecretConnection":
        """
        Open a libvirt connection.

        Args:
            uri: libvirt URI, e.g. qemu:///system (None lets libvirt pick its default)
            readonly: Open a read-only connection

        Raises:
            VirtSecretError: If libvirt could not connect
        """
        opener = libvirt.openReadOnly if readonly else libvirt.open
        mode = "read-only" if readonly else "read-write"
        logger.debug(f"Opening {mode} libvirt connection to {uri or '<default>'}")
        try:
            conn = opener(uri)
        except libvirt.libvirtError as e:
            raise VirtSecretError("virConnectOpen", "", e.get_error_message() or str(e)) from e
        if conn is None:
            raise VirtSecretError("virConnectOpen", "", f"Failed to open connection to {uri}")
        return cls(conn, owned=True)

    def __enter__(self) -> "SecretConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._conn is None

    def close(self) -> None:
        """Close the connection if it was opened by this wrapper."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        if self._owned:
            conn.close()
            logger.debug("Closed libvirt connection")

    def _get(self, function_name: str) -> "libvirt.virConnect":
        if self._conn is None:
            raise InvalidHandleError(function_name, "", "Connection has been closed")
        return self._conn

    def last_error(self) -> Optional[str]:
        """Most recent detailed libvirt error message for this connection."""
        err = None
        if self._conn is not None:
            err = self._conn.virConnGetLastError()
        if err is None:
            err = libvirt.virGetLastError()
        return err[2] if err else None

    def call(self, function_name: str, fn, *args, failed=is_null, error=RetrieveError):
        """Run one libvirt call with this connection's error translation."""
        return call_native(self, function_name, fn, *args, failed=failed, error=error)

    def num_of_secrets(self) -> int:
        """Number of secrets defined on the connection."""
        conn = self._get("virConnectNumOfSecrets")
        return self.call("virConnectNumOfSecrets", conn.numOfSecrets, failed=is_negative)

    def list_secrets(self) -> List[str]:
        """UUID strings of all secrets defined on the connection."""
        conn = self._get("virConnectListSecrets")
        return list(self.call("virConnectListSecrets", conn.listSecrets))

    def lookup_secret_by_uuid(self, uuid: str) -> Secret:
        """
        Look up a secret by its UUID string.

        Raises:
            NotFoundError: If no secret has this UUID
        """
        if not isinstance(uuid, str):
            raise TypeError(f"uuid must be a string, got {type(uuid).__name__}")
        conn = self._get("virSecretLookupByUUID")
        secret = self.call("virSecretLookupByUUID", conn.secretLookupByUUIDString, uuid,
                           error=NotFoundError)
        return Secret(secret, self)

    def lookup_secret_by_usage(self, usage_type: int, usage_id: Optional[str] = None) -> Secret:
        """
        Look up a secret by what it is used for.

        Args:
            usage_type: One of the Secret.USAGE_TYPE_* constants
            usage_id: Volume path, iSCSI target or Ceph/TLS/vTPM name. None is
                handed to libvirt as NULL and libvirt decides whether that is valid.

        Raises:
            NotFoundError: If no secret matches
        """
        conn = self._get("virSecretLookupByUsage")
        secret = self.call("virSecretLookupByUsage", conn.secretLookupByUsage, usage_type, usage_id,
                           error=NotFoundError)
        return Secret(secret, self)

    def define_secret_xml(self, xml: str, flags: int = 0) -> Secret:
        """
        Define (or redefine) a secret from its XML description.

        Raises:
            DefinitionError: If libvirt rejects the XML
        """
        conn = self._get("virSecretDefineXML")
        secret = self.call("virSecretDefineXML", conn.secretDefineXML, xml, flags,
                           error=DefinitionError)
        logger.info("Defined secret from XML")
        return Secret(secret, self)
