"""Connector configuration"""
import json

import marshmallow as ma
from marshmallow import validate

from spidymq.exceptions import ConfigurationError


DEFAULT_MOUNT_PATH = "/spidymq"
DEFAULT_LOG_FORMAT = (
    "%(asctime)s %(levelname)-8s [%(name)s] [%(threadName)s]"
    " || %(message)s")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingConfigSchema(ma.Schema):
    """Logging configuration (see spidymq.log.init_logger)"""

    enabled = ma.fields.Boolean(load_default=True)
    format = ma.fields.String(load_default=DEFAULT_LOG_FORMAT)
    level = ma.fields.String(
        load_default="WARNING",
        validate=validate.OneOf(LOG_LEVELS),
    )
    console = ma.fields.Boolean(load_default=False)
    dirpath = ma.fields.String(load_default=None, allow_none=True)
    history = ma.fields.Integer(
        load_default=30, validate=validate.Range(min=0))


class ConnectionConfigSchema(ma.Schema):
    """Connector configuration

    Keys use the camelCase names of the JSON configuration files and are
    loaded as keyword arguments of :class:`spidymq.connection.Connection`.
    """

    class Meta:
        unknown = ma.EXCLUDE

    server_url = ma.fields.String(
        required=True,
        data_key="serverUrl",
        validate=validate.Length(min=1),
    )
    mount_path = ma.fields.String(
        load_default=DEFAULT_MOUNT_PATH,
        data_key="mountPath",
        validate=validate.Regexp(
            r"^/", error="Mount path must start with '/'."),
    )
    use_body_parser = ma.fields.Boolean(
        load_default=True, data_key="useBodyParser")
    request_timeout = ma.fields.Float(
        load_default=None,
        allow_none=True,
        data_key="requestTimeout",
        validate=validate.Range(min=0, min_inclusive=False),
    )
    max_workers = ma.fields.Integer(
        load_default=None,
        allow_none=True,
        data_key="maxWorkers",
        validate=validate.Range(min=1),
    )


class ServiceConfigSchema(ConnectionConfigSchema):
    """Configuration file content: broker URL, connector and logging"""

    broker_url = ma.fields.String(
        required=True,
        data_key="brokerUrl",
        validate=validate.Length(min=1),
    )
    logging = ma.fields.Nested(LoggingConfigSchema, load_default=None)


def load_connection_config(config):
    """Validate a connector configuration mapping.

    :param dict config: Connector configuration (``serverUrl``...).
    :returns dict: Keyword arguments for the connection.
    :raises ConfigurationError: When configuration is missing or invalid.
    """
    if not config:
        raise ConfigurationError(
            "Cannot create a connection without the proper configuration")
    try:
        return ConnectionConfigSchema().load(config)
    except ma.ValidationError as exc:
        raise ConfigurationError(
            f"Invalid connection configuration: {exc.messages}") from exc


def load_logging_config(config):
    """Validate logging settings.

    :param dict config: Logging settings (`level`, `console`, `dirpath`...).
    :returns dict: Settings, defaults filled in.
    :raises ConfigurationError: When settings are not valid.
    """
    try:
        return LoggingConfigSchema().load(config)
    except ma.ValidationError as exc:
        raise ConfigurationError(
            f"Invalid logging configuration: {exc.messages}") from exc


def load_config(config_filepath):
    """Load connector configuration from JSON file.

    :param Path config_filepath: Configuration file path.
    :returns dict: Configuration, with snake_case keys.
    :raises ConfigurationError: When file content is not valid.
    """
    with config_filepath.open("r") as config_file:
        try:
            raw_config = json.load(config_file)
        except json.decoder.JSONDecodeError as exc:
            raise ConfigurationError(str(exc)) from exc
    try:
        return ServiceConfigSchema().load(raw_config)
    except ma.ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration file: {exc.messages}") from exc
