"""SpidyMQ connector exceptions"""


class SpidyMQError(Exception):
    """SpidyMQ connector error."""


class ConfigurationError(SpidyMQError, ValueError):
    """Invalid connector configuration."""


class ConnectionStateError(SpidyMQError):
    """Operation not allowed in current connection state."""


class NotConnectedError(ConnectionStateError):
    """Connection is not established."""


class AlreadyConnectedError(ConnectionStateError):
    """Connection is already established."""


class InvalidArgumentError(SpidyMQError, ValueError):
    """Missing or invalid operation argument."""


class MissingCallbackError(InvalidArgumentError):
    """Subscription requested without a notify callback."""


class MissingContentError(InvalidArgumentError):
    """Message published without content."""


class AlreadySubscribedError(SpidyMQError):
    """Channel already subscribed by this connection."""


class BrokerResponseError(SpidyMQError):
    """Broker did not accept a request.

    :param str message: Error message.
    :param int status_code: (optional, default None)
        HTTP status returned by the broker. None on transport failure.
    """

    def __init__(self, message, *, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class BadRequestError(BrokerResponseError):
    """Request rejected by the broker (e.g. unknown channel, type conflict)."""


class BrokerError(BrokerResponseError):
    """Broker failure or unreachable broker."""
