"""Exception types raised while decoding, configuring, and replaying."""


class ReplayError(Exception):
    """Base class for every replayer error."""


class DecodeError(ReplayError):
    """Raised when access log text cannot be turned into LogRecords.

    ``index`` is the position of the offending record in the input array
    and ``field`` the JSON key that failed, when known.
    """

    def __init__(self, message: str, index: int | None = None, field: str | None = None):
        self.index = index
        self.field = field
        self.reason = message
        prefix = ""
        if index is not None:
            prefix += f"record {index}: "
        if field is not None:
            prefix += f"{field}: "
        super().__init__(prefix + message)


class InvalidShift(ReplayError):
    """Raised for a malformed shift expression such as ``5x`` or ``1d2h``."""


class ConfigError(ReplayError):
    """Raised for an unreadable config file or an invalid setting value."""


class DeadlineElapsed(ReplayError):
    """The scheduled fire time had already passed when the task started."""


class TransportError(ReplayError):
    """The HTTP send failed below the HTTP status level (connect, timeout, protocol)."""
