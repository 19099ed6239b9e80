"""SpidyMQ connection"""

import json
import logging
import functools
import threading
from concurrent.futures import Future, ThreadPoolExecutor

import requests

from spidymq import LOGNAME
from spidymq.config import DEFAULT_MOUNT_PATH, load_connection_config
from spidymq.dispatcher import create_blueprint
from spidymq.exceptions import (
    ConfigurationError,
    NotConnectedError,
    AlreadyConnectedError,
    InvalidArgumentError,
    MissingCallbackError,
    MissingContentError,
    AlreadySubscribedError,
    BrokerResponseError,
    BadRequestError,
    BrokerError,
)
from spidymq.schemas import (
    channel_request_schema,
    subscription_request_schema,
    message_request_schema,
)


logger = logging.getLogger(LOGNAME)


def _call_done(done, future):
    # Error-first completion callback: exactly one of error/result is set.
    error = future.exception()
    if error is not None:
        done(error, None)
    else:
        done(None, future.result())


def _resolve(future, request_func):
    try:
        result = request_func()
    except Exception as exc:
        future.set_exception(exc)
    else:
        future.set_result(result)


class Connection:
    """A connection to a SpidyMQ broker.

    There is no persistent link with the broker: connecting only toggles the
    connection state, each operation then sends one HTTP request to the
    broker. Messages pushed by the broker for subscribed channels are received
    by the Flask blueprint of the connection (see :attr:`blueprint`).

    Broker operations (`create_channel`, `subscribe_channel`,
    `unsubscribe_channel`, `publish_message`) do not block: they return a
    :class:`concurrent.futures.Future` resolved with a boolean result or
    with a :class:`BrokerResponseError`. An optional `done(error, result)`
    callback is also called once the broker answered.

    :param str url: Broker base URL.
    :param str server_url: Base URL this application can be reached at by
        the broker, to push messages.
    :param str mount_path: (optional, default "/spidymq")
        Path the message receiving blueprint is mounted on.
    :param bool use_body_parser: (optional, default True)
        Decode JSON message bodies. If False, subscribers receive raw bodies.
    :param float request_timeout: (optional, default None)
        Timeout, in seconds, of broker requests. No timeout if None.
    :param int max_workers: (optional, default None)
        Maximum number of concurrent broker requests.
    :raises ConfigurationError: When `server_url` is missing.
    """

    def __init__(
            self, url, server_url, *, mount_path=DEFAULT_MOUNT_PATH,
            use_body_parser=True, request_timeout=None, max_workers=None):
        # TODO: make server_url optional for pure producers.
        if not server_url:
            raise ConfigurationError(
                "Cannot create a connection without knowing our local"
                " server url")
        self._broker_url = url.rstrip("/")
        self.mount_path = mount_path.rstrip("/")
        self._notify_base_url = server_url.rstrip("/") + self.mount_path
        self.use_body_parser = use_body_parser
        self.request_timeout = request_timeout

        self._connected = False
        self._subscribers = {}
        # Shared with Flask request threads (see handle_message).
        self._lock = threading.RLock()
        self._session = requests.Session()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=LOGNAME)
        self._blueprint = None

    @classmethod
    def from_config(cls, url, config):
        """Create a connection from a configuration mapping.

        :param str url: Broker base URL.
        :param dict config: Connector configuration (``serverUrl``,
            ``mountPath``, ``useBodyParser``...).
        :raises ConfigurationError: When configuration is not valid.
        """
        return cls(url, **load_connection_config(config))

    @property
    def broker_url(self):
        return self._broker_url

    @property
    def notify_base_url(self):
        return self._notify_base_url

    @property
    def is_connected(self):
        return self._connected

    @property
    def subscribers(self):
        """Snapshot of subscribed channels: channel name -> notify callback"""
        with self._lock:
            return dict(self._subscribers)

    @property
    def blueprint(self):
        """Flask blueprint receiving the messages pushed by the broker"""
        if self._blueprint is None:
            self._blueprint = create_blueprint(self)
        return self._blueprint

    @property
    def _log_header(self):
        return f"[Connection @{self._broker_url}]"

    def init_app(self, app):
        """Register the message receiving blueprint on a Flask application.

        :param flask.Flask app: Application receiving broker requests.
        """
        app.register_blueprint(self.blueprint)
        app.extensions["spidymq"] = self

    def connect(self, done=None):
        """Connect to the broker.

        There is no persistent connection: this only toggles the state.

        :param callable done: (optional, default None)
            Called with `(None, True)` once connected.
        :raises AlreadyConnectedError: When already connected.
        """
        with self._lock:
            if self._connected:
                raise AlreadyConnectedError("Connection already established")
            self._connected = True
        logger.info(f"{self._log_header} connected")
        if done is not None:
            done(None, True)

    def disconnect(self, done=None):
        """Disconnect from the broker, unsubscribing from all channels.

        Unsubscription requests are sent but not waited for.

        :param callable done: (optional, default None)
            Called with `(None, True)` once disconnected.
        :raises NotConnectedError: When not connected.
        """
        with self._lock:
            if not self._connected:
                raise NotConnectedError("Connection already disconnected")
            for channel_name in list(self._subscribers):
                self.unsubscribe_channel(channel_name)
            self._subscribers.clear()
            self._connected = False
        logger.info(f"{self._log_header} disconnected")
        if done is not None:
            done(None, True)

    def create_channel(self, name, options=None, done=None):
        """Create a channel on the broker.

        :param str name: Channel name.
        :param dict options: (optional, default None)
            Channel options. `type` is the channel type, broker default if
            missing.
        :param callable done: (optional, default None)
            Node-style `done(error, result)` callback.
        :returns Future: Resolved with True if the channel was created, False
            if it already existed with the same type.
        :raises NotConnectedError: When not connected.
        :raises InvalidArgumentError: When channel name is missing.
        """
        options = options or {}
        self._check_connected()
        if not name:
            raise InvalidArgumentError(
                "Cannot create a channel without a name")

        body = channel_request_schema.dump(
            {"name": name, "type": options.get("type")})
        return self._submit(
            functools.partial(
                self._send, "/channel", body, "Unable to create channel"),
            done)

    def subscribe_channel(self, channel_name, notify, done=None):
        """Subscribe to a channel to receive its messages.

        The subscriber is registered before the broker answers, so messages
        pushed meanwhile are delivered. It is removed if the broker refuses
        the subscription.

        :param str channel_name: Channel name.
        :param callable notify: Called with each message of the channel.
        :param callable done: (optional, default None)
            Node-style `done(error, result)` callback.
        :returns Future: Resolved with True if freshly subscribed, False if
            the broker already had this subscription.
        :raises NotConnectedError: When not connected.
        :raises InvalidArgumentError: When channel name is missing.
        :raises MissingCallbackError: When notify callback is missing.
        :raises AlreadySubscribedError: When channel is already subscribed.
        """
        with self._lock:
            self._check_connected()
            if not channel_name:
                raise InvalidArgumentError(
                    "Cannot subscribe to a channel without a name")
            if notify is None or not callable(notify):
                raise MissingCallbackError(
                    "Cannot subscribe to a channel without a notify callback")
            if channel_name in self._subscribers:
                raise AlreadySubscribedError(
                    f"Already subscribed to channel {channel_name}")
            self._subscribers[channel_name] = notify

        body = subscription_request_schema.dump({
            "name": channel_name,
            "notify_url": self._notify_url(channel_name),
        })

        def subscribe():
            try:
                subscribed = self._send(
                    "/subscribe", body, "Unable to subscribe to channel")
            except BrokerResponseError:
                with self._lock:
                    # Leave any newer subscription to the same channel alone.
                    if self._subscribers.get(channel_name) is notify:
                        del self._subscribers[channel_name]
                logger.warning(
                    f"{self._log_header} subscription to [{channel_name}]"
                    " rolled back")
                raise
            logger.info(
                f"{self._log_header} subscribed to [{channel_name}]")
            return subscribed

        return self._submit(subscribe, done)

    def unsubscribe_channel(self, channel_name, done=None):
        """Unsubscribe from a channel to stop receiving its messages.

        The subscriber is removed before the request is sent and is not
        restored if the broker request fails: messages still pushed for this
        channel are rejected.

        :param str channel_name: Channel name.
        :param callable done: (optional, default None)
            Node-style `done(error, result)` callback.
        :returns Future: Resolved with True if unsubscribed, False if the
            broker had no such subscription.
        :raises NotConnectedError: When not connected.
        :raises InvalidArgumentError: When channel name is missing.
        """
        with self._lock:
            self._check_connected()
            if not channel_name:
                raise InvalidArgumentError(
                    "Cannot unsubscribe from a channel without a name")
            # Not checking local subscribers: the broker may still push
            #  messages from a previous subscription we failed to remove.
            self._subscribers.pop(channel_name, None)

        logger.info(f"{self._log_header} unsubscribed from [{channel_name}]")
        body = subscription_request_schema.dump({
            "name": channel_name,
            "notify_url": self._notify_url(channel_name),
        })
        return self._submit(
            functools.partial(
                self._send, "/unsubscribe", body,
                "Unable to unsubscribe from channel"),
            done)

    def publish_message(self, channel_name, content, done=None):
        """Publish a message to a channel queue.

        :param str channel_name: Channel name.
        :param content: JSON serializable message content.
        :param callable done: (optional, default None)
            Node-style `done(error, result)` callback.
        :returns Future: Resolved with True if the message was queued.
        :raises NotConnectedError: When not connected.
        :raises InvalidArgumentError: When channel name is missing or content
            is not JSON serializable.
        :raises MissingContentError: When content is None.
        """
        self._check_connected()
        if not channel_name:
            raise InvalidArgumentError(
                "Cannot publish a message to a channel without a name")
        if content is None:
            raise MissingContentError("Cannot publish None content")
        try:
            json.dumps(content, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(
                f"Cannot publish content not serializable as JSON: {exc}"
            ) from exc

        body = message_request_schema.dump(
            {"channel": channel_name, "content": content})
        return self._submit(
            functools.partial(
                self._send, "/message", body, "Unable to publish message"),
            done)

    def handle_message(self, channel_name, message):
        """Deliver a message pushed by the broker to its subscriber.

        :param str channel_name: Channel the message was pushed for.
        :param message: Message payload, passed as is to the subscriber.
        :returns bool: True if delivered, False if rejected (not connected or
            channel not subscribed).
        """
        with self._lock:
            if not self._connected:
                logger.warning(
                    f"{self._log_header} message for [{channel_name}]"
                    " rejected: not connected")
                return False
            notify = self._subscribers.get(channel_name)
        if notify is None:
            logger.warning(
                f"{self._log_header} message for [{channel_name}]"
                " rejected: channel not subscribed")
            return False
        logger.debug(f"{self._log_header} message for [{channel_name}]")
        notify(message)
        return True

    def close(self):
        """Release worker threads and HTTP session.

        Waits for pending broker requests.
        """
        self._executor.shutdown(wait=True)
        self._session.close()

    def _check_connected(self):
        if not self._connected:
            raise NotConnectedError("Connection not established")

    def _notify_url(self, channel_name):
        return f"{self._notify_base_url}/{channel_name}"

    def _submit(self, request_func, done):
        # Marked running before it is queued: callers cannot cancel it.
        future = Future()
        future.set_running_or_notify_cancel()
        if done is not None:
            future.add_done_callback(functools.partial(_call_done, done))
        self._executor.submit(_resolve, future, request_func)
        return future

    def _send(self, path, body, error_message):
        url = f"{self._broker_url}{path}"
        logger.debug(f"{self._log_header} POST {path}: {body}")
        try:
            response = self._session.post(
                url, json=body, timeout=self.request_timeout)
        except requests.RequestException as exc:
            logger.error(f"{self._log_header} {error_message}: {exc}")
            raise BrokerError(error_message) from exc
        return self._handle_response(response)

    @staticmethod
    def _handle_response(response):
        """Interpret a broker response.

        - 200: request succeeded
        - 304: request did not change broker state (e.g. channel exists)
        - 400: request rejected (e.g. channel does not exist)
        - other: broker error

        :param requests.Response response: Broker response.
        :returns bool: True on 200, False on 304.
        :raises BadRequestError: On 400.
        :raises BrokerError: On any other status.
        """
        if response.status_code == 200:
            return True
        if response.status_code == 304:
            return False
        if response.status_code == 400:
            raise BadRequestError("Bad request", status_code=400)
        raise BrokerError("Server error", status_code=response.status_code)
