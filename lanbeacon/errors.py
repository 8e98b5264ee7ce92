"""Exception types raised by lanbeacon.

Only `BindError` ever reaches a caller during normal operation; the others
are raised and caught inside the receive and broadcast paths, where they are
logged and the offending datagram or send attempt is dropped.
"""


class DiscoveryError(Exception):
    """Base class for every lanbeacon error."""


class BindError(DiscoveryError):
    """No discovery socket could be bound. Fatal for the component."""


class DecodeError(DiscoveryError, ValueError):
    """A datagram of the right service type could not be decoded."""


class SendError(DiscoveryError):
    """A single query broadcast or reply could not be sent."""


class PlatformFeatureUnavailable(DiscoveryError):
    """An optional socket feature (e.g. NAT traversal) is not supported."""
