"""Base classes for AT command errors.

Errors that desynchronize the serial link derive from `AtNotConnected` so
callers that only need to know the modem must be reconnected can catch the
one class, while the specific cause stays available.
"""


class AtException(Exception):
    """Base class for AT command exceptions."""
    pass


class AtConnectionAlreadyEstablished(AtException):
    """Indicates connect was called on a client that already connected."""
    pass


class AtNotConnected(AtException):
    """The client is not connected, or the connection has faulted."""
    pass


class AtConnectionFault(AtNotConnected):
    """A command failed and the connection is no longer usable."""
    pass


class AtTimeout(AtConnectionFault):
    """Indicates a timeout waiting for response."""
    pass


class AtEndOfStream(AtConnectionFault):
    """The serial stream ended before the expected data arrived."""
    pass


class AtUnexpectedCommandSequence(AtConnectionFault):
    """A ready-state write was issued out of order."""
    pass


class AtUnknownCommand(AtConnectionFault):
    """The command has no known response shape."""
    pass


class AtCancelled(AtException):
    """A pending read was aborted by cancellation."""
    pass
