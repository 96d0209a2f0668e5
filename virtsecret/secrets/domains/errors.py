"""Errors raised when a libvirt secret call fails."""
from typing import Optional


class VirtSecretError(Exception):
    """
    A libvirt call made on behalf of a secret failed.

    Attributes:
        function_name: Name of the libvirt function that failed
        context: Extra context for the failure (empty for secret calls)
        message: Last detailed error text reported by libvirt, if any
    """

    def __init__(self, function_name: str, context: str = "", message: Optional[str] = None):
        self.function_name = function_name
        self.context = context
        self.message = message
        super().__init__(self._render())

    def _render(self) -> str:
        text = f"Call to {self.function_name} failed"
        if self.context:
            text += f" ({self.context})"
        if self.message:
            text += f": {self.message}"
        return text


class RetrieveError(VirtSecretError):
    """A getter or setter reported a negative or null status."""
    pass


class NotFoundError(RetrieveError):
    """Lookup by UUID or by usage returned no secret."""
    pass


class DefinitionError(VirtSecretError):
    """libvirt rejected a secret XML definition."""
    pass


class InvalidHandleError(NotFoundError):
    """The secret (or its connection) was already released."""
    pass
