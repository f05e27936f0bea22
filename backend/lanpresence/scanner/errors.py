class ScanError(Exception):
    """Base class for errors that abort a single scan cycle."""


class InvalidRangeError(ScanError):
    """The configured address block cannot be enumerated."""


class InterfaceNotFoundError(ScanError):
    """The configured network interface does not exist."""


class ResolverUnavailableError(ScanError):
    """The ARP socket could not be opened on the interface."""
