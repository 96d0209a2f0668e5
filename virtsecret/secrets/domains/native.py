"""Error-checked delegation to libvirt.

Every secret operation goes through call_native(): run one libvirt call,
check its failure sentinel and raise a typed error carrying the function
name and libvirt's last error text.
"""
import logging
from typing import Any, Callable

import libvirt

from .errors import RetrieveError, VirtSecretError

logger = logging.getLogger(__name__)


def is_null(result: Any) -> bool:
    """Sentinel check for calls that return an object or None."""
    return result is None


def is_negative(result: Any) -> bool:
    """Sentinel check for calls that return a status code."""
    return isinstance(result, int) and result < 0


def call_native(
    conn,
    function_name: str,
    fn: Callable[..., Any],
    *args: Any,
    failed: Callable[[Any], bool] = is_null,
    error: type = RetrieveError,
) -> Any:
    """
    Call a libvirt function and translate its failure into a typed error.

    The python binding reports most failures by raising libvirtError, but
    some calls still hand back the C sentinel, so both are checked.

    Args:
        conn: SecretConnection whose last error is reported on failure
        function_name: libvirt C function name used in the error
        fn: Bound binding method to call
        *args: Positional arguments for fn
        failed: Predicate that recognises the failure sentinel
        error: VirtSecretError subclass to raise

    Returns:
        Whatever fn returned

    Raises:
        VirtSecretError: (the given subclass) if the call failed
    """
    if not issubclass(error, VirtSecretError):
        raise TypeError(f"error must be a VirtSecretError subclass, got {error!r}")

    logger.debug(f"Calling {function_name}")
    try:
        result = fn(*args)
    except libvirt.libvirtError as e:
        message = e.get_error_message() or conn.last_error() or str(e)
        logger.warning(f"{function_name} failed: {message}")
        raise error(function_name, "", message) from e

    if failed(result):
        message = conn.last_error()
        logger.warning(f"{function_name} failed: {message}")
        raise error(function_name, "", message)

    return result
