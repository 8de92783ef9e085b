"""Error taxonomy for status resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .models import ProtocolType

__all__ = [
    "StatusError",
    "InputValidationError",
    "ProbeError",
    "DnsLookupFailed",
    "ConnectionFailed",
    "ProbeTimeout",
    "ProtocolFailure",
    "AllProbesFailed",
    "StorageFault",
    "InternalFault",
]


class StatusError(Exception):
    """Base class for every error that can end a status resolution."""


class InputValidationError(StatusError):
    """Raised for an empty address or data root, before any I/O happens."""


class ProbeError(StatusError):
    """Base class for failures of a live probe."""

    #: ``True`` when retrying later might succeed (network trouble) rather
    #: than the address itself being wrong.
    transient = True


class DnsLookupFailed(ProbeError):
    """The server address could not be resolved."""

    transient = False


class ConnectionFailed(ProbeError):
    """Connecting to or talking with the server failed at the I/O level."""


class ProbeTimeout(ConnectionFailed):
    """No probe produced a result within the allowed time."""


class ProtocolFailure(ProbeError):
    """The server answered, but not with a valid status response."""


class AllProbesFailed(ProbeError):
    """Every probe of an AUTO race failed."""

    def __init__(self, errors: Dict["ProtocolType", ProbeError]) -> None:
        self.errors = dict(errors)
        details = "; ".join(f"{protocol.label}: {error}" for protocol, error in self.errors.items())
        super().__init__(f"all protocols failed ({details})")

    @property
    def transient(self) -> bool:  # type: ignore[override]
        return any(error.transient for error in self.errors.values())


class StorageFault(StatusError):
    """Unexpected file-system error while creating or writing cached state."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message)


class InternalFault(StatusError):
    """Any unexpected fault caught at the outermost boundary."""
