"""Errors raised by the registry image resource core."""

from __future__ import annotations

from pathlib import Path


class ResourceError(Exception):
    """Base class for resource failures."""


class PayloadError(ResourceError, ValueError):
    """Raised when a JSON payload does not have the expected shape."""


class TagDecodeError(ResourceError, ValueError):
    """Raised when a tag is neither a JSON string nor a JSON number."""


class ContentTrustError(ResourceError, ValueError):
    """Raised when content trust material cannot be interpreted."""


class NotaryConfigError(ResourceError, OSError):
    """Raised when the notary config directory cannot be materialized."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return str(self.args[0])


class AdditionalTagsError(ResourceError, OSError):
    """Raised when the additional tags file cannot be read."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return str(self.args[0])
