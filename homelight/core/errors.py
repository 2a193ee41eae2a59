"""Domain-specific errors for homelight."""


class HomelightError(Exception):
    """Base error for homelight."""


class ConfigValidationError(HomelightError):
    """Raised when a light configuration file does not conform to schema or semantics."""


class ConfigLoadError(HomelightError):
    """Raised when reading the light configuration fails."""


class DeviceSelectionError(HomelightError):
    """Raised when a light id does not resolve to a configured device."""


class InvalidValueError(HomelightError):
    """Raised when a requested light value cannot be interpreted."""


class PayloadDecodeError(HomelightError):
    """Raised when a message payload cannot be decoded into light state."""


class StateUnavailableError(HomelightError):
    """Raised when no light state arrived within the allowed wait."""


class TransportError(HomelightError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised on link connect failures."""


class TransportSendError(TransportError):
    """Raised when writing a command to the link fails."""


class TransportTimeoutError(TransportError):
    """Raised when the link does not connect in time."""
