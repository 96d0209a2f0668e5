"""Handle adapter for a libvirt secret."""
import logging
from typing import Optional, Union

import libvirt

from .errors import InvalidHandleError, RetrieveError, VirtSecretError
from .native import call_native, is_negative, is_null

logger = logging.getLogger(__name__)

SecretValue = Union[bytes, bytearray, memoryview]


class Secret:
    """
    A live reference to one libvirt secret.

    The wrapped virSecret is owned exclusively by this object and is never
    handed out. Once released (free(), undefine() or leaving a with block)
    every operation raises InvalidHandleError.
    """

    USAGE_TYPE_NONE = libvirt.VIR_SECRET_USAGE_TYPE_NONE
    USAGE_TYPE_VOLUME = libvirt.VIR_SECRET_USAGE_TYPE_VOLUME
    USAGE_TYPE_CEPH = libvirt.VIR_SECRET_USAGE_TYPE_CEPH
    USAGE_TYPE_ISCSI = libvirt.VIR_SECRET_USAGE_TYPE_ISCSI
    USAGE_TYPE_TLS = libvirt.VIR_SECRET_USAGE_TYPE_TLS
    USAGE_TYPE_VTPM = libvirt.VIR_SECRET_USAGE_TYPE_VTPM

    def __init__(self, handle: "libvirt.virSecret", connection):
        self._handle = handle
        self._connection = connection
        self._uuid: Optional[str] = None

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<Secret uuid={self._uuid or '?'} {state}>"

    def __enter__(self) -> "Secret":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.free()

    @property
    def connection(self):
        """The SecretConnection this secret was looked up on."""
        return self._connection

    @property
    def released(self) -> bool:
        return self._handle is None

    def _get(self, function_name: str) -> "libvirt.virSecret":
        if self._handle is None:
            raise InvalidHandleError(function_name, "", "Secret has been freed")
        return self._handle

    def _call(self, function_name: str, method: str, *args, failed=is_null, error=RetrieveError):
        handle = self._get(function_name)
        return call_native(
            self._connection, function_name, getattr(handle, method), *args,
            failed=failed, error=error,
        )

    @property
    def uuid(self) -> str:
        """UUID string of the secret."""
        self._uuid = self._call("virSecretGetUUIDString", "UUIDString")
        return self._uuid

    @property
    def usagetype(self) -> int:
        """Usage type code, one of the USAGE_TYPE_* constants."""
        return self._call("virSecretGetUsageType", "usageType", failed=is_negative)

    @property
    def usageid(self) -> str:
        """Usage identifier (volume path, iSCSI target, Ceph/TLS/vTPM name)."""
        return self._call("virSecretGetUsageID", "usageID")

    def xml_desc(self, flags: int = 0) -> str:
        """Return the XML description of the secret."""
        return self._call("virSecretGetXMLDesc", "XMLDesc", flags)

    def set_value(self, value: SecretValue, flags: int = 0) -> None:
        """
        Store a new value for the secret.

        Args:
            value: Raw bytes, passed to libvirt unmodified
            flags: Reserved by libvirt, must be 0 today
        """
        if isinstance(value, str):
            raise TypeError("Secret values are bytes; encode strings before storing them")
        self._call("virSecretSetValue", "setValue", bytes(value), flags, failed=is_negative)

    def get_value(self, flags: int = 0) -> bytes:
        """Return the raw secret value; its length is len() of the result."""
        return self._call("virSecretGetValue", "value", flags)

    def undefine(self) -> None:
        """Delete the secret from the host and release this handle."""
        self._call("virSecretUndefine", "undefine", failed=is_negative, error=VirtSecretError)
        logger.info(f"Undefined secret {self._uuid or '<unread uuid>'}")
        self.free()

    def free(self) -> None:
        """
        Release the native handle. Safe to call more than once.

        libvirt-python frees the virSecret when its last reference goes
        away, so dropping ours is the release.
        """
        if self._handle is None:
            logger.debug("Secret handle already released")
            return
        self._handle = None
        logger.debug(f"Released secret handle {self._uuid or '<unread uuid>'}")
