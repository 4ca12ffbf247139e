"""
Exception hierarchy for the disk cache.

All exceptions inherit from KVDiskError, which carries optional structured
context for logging. Only construction-time errors are raised to callers;
errors hit while an operation runs are attached to the operation's
Outcome or Lookup instead.
"""

from __future__ import annotations

from typing import Any


class KVDiskError(Exception):
    """Base exception for all disk cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    kind: str = "error"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(KVDiskError):
    """Raised when storage configuration is invalid.

    Examples:
        - Negative max_size
        - Empty storage name
    """

    kind = "configuration"


class DirectoryUnavailableError(KVDiskError):
    """Raised at construction when the default cache directory cannot be resolved.

    Callers can recover by passing an explicit root path.
    """

    kind = "directory_unavailable"


class DirectoryCreateError(KVDiskError):
    """The storage root could not be created.

    Context should include:
        - path: The directory that was being created
    """

    kind = "directory_create_failed"


class EncodeError(KVDiskError):
    """The codec failed to turn a value into bytes."""

    kind = "encode_failed"


class WriteError(KVDiskError):
    """Writing an entry's payload failed (disk full, permission denied...)."""

    kind = "write_failed"


class ReadError(KVDiskError):
    """Reading an entry or its expiry marker failed for a reason other than absence."""

    kind = "read_failed"


class DecodeError(KVDiskError):
    """Stored bytes could not be decoded by the codec."""

    kind = "decode_failed"


class AttributeSetError(KVDiskError):
    """Setting the expiry marker or protection attribute failed.

    Context should include:
        - path: The file whose attributes were being set
        - attribute: "expiry" or "protection"
    """

    kind = "attribute_set_failed"


class DeleteError(KVDiskError):
    """Deleting an existing entry (or the storage root) failed."""

    kind = "delete_failed"


class EnumerationError(KVDiskError):
    """Listing the storage root failed; the sweep was aborted."""

    kind = "enumeration_failed"
