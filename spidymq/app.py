"""SpidyMQ receiving application"""
from pathlib import Path

import flask
from flask_smorest import Api

from spidymq.config import load_config
from spidymq.connection import Connection
from spidymq.log import init_logger


def _load_config_file(config):
    file_config = load_config(Path(config["SPIDYMQ_CONFIG_FILE"]))
    if file_config["logging"] is None:
        del file_config["logging"]
    config.update(
        {f"SPIDYMQ_{key.upper()}": value
         for key, value in file_config.items()})


def _connection_from_config(config):
    return Connection(
        config["SPIDYMQ_BROKER_URL"],
        config["SPIDYMQ_SERVER_URL"],
        mount_path=config["SPIDYMQ_MOUNT_PATH"],
        use_body_parser=config["SPIDYMQ_USE_BODY_PARSER"],
        request_timeout=config["SPIDYMQ_REQUEST_TIMEOUT"],
        max_workers=config["SPIDYMQ_MAX_WORKERS"],
    )


def create_app(connection=None, config_override=None):
    """Create application

    :param Connection connection: (optional, default None)
        Connection whose subscribers receive broker messages. Created from
        `SPIDYMQ_*` settings if None.
    :param type config_override: Config class overriding default config.
        Used for tests.
    """
    app = flask.Flask(__name__)
    app.config.from_object("spidymq.settings.Config")
    app.config.from_envvar('SPIDYMQ_SETTINGS_FILE', silent=True)
    app.config.from_object(config_override)
    if app.config["SPIDYMQ_CONFIG_FILE"] is not None:
        _load_config_file(app.config)

    if app.config["SPIDYMQ_LOGGING"] is not None:
        init_logger(app.config["SPIDYMQ_LOGGING"])

    if connection is None:
        connection = _connection_from_config(app.config)

    api = Api()
    api.init_app(app)
    api.register_blueprint(connection.blueprint)
    app.extensions["spidymq"] = connection

    return app
