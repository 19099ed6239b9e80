"""SpidyMQ connector

Produce and consume messages through a SpidyMQ broker over HTTP.
"""

LOGNAME = "spidymq"

__version__ = "0.1.0"
__description__ = "HTTP connector for the SpidyMQ message broker"
__author__ = "SpidyMQ contributors"


def create_connection(url, config):
    """Create a connection to a SpidyMQ broker.

    :param str url: Broker base URL.
    :param dict config: Connector configuration, passed through to
        :meth:`Connection.from_config` (``serverUrl`` is required).
    :returns Connection: A new, not yet connected, connection.
    """
    # Deferred import: connection module imports LOGNAME from here.
    from .connection import Connection
    return Connection.from_config(url, config)
