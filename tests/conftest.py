"""Tests configuration"""
import os
import logging
import threading
from unittest import mock

import pytest
import requests

from dotenv import load_dotenv

from spidymq import LOGNAME, log
from spidymq.app import create_app
from spidymq.connection import Connection
from spidymq.settings import Config


# Load .env file (to override test URLs from development environment)
load_dotenv('.env')


# Seconds to wait for a done callback
DONE_TIMEOUT = 2


class TestConfig(Config):
    TESTING = True


class DoneCallback:
    """Record node-style done(error, result) calls"""

    def __init__(self):
        self.calls = []
        self._called = threading.Event()

    def __call__(self, error, result):
        self.calls.append((error, result))
        self._called.set()

    def wait(self):
        assert self._called.wait(DONE_TIMEOUT)
        return self.calls[0]


@pytest.fixture
def broker_url():
    return os.getenv("SPIDYMQ_TEST_BROKER_URL", "http://localhost:3000/")


@pytest.fixture
def server_url():
    return os.getenv("SPIDYMQ_TEST_SERVER_URL", "http://localhost:3001/")


@pytest.fixture
def connection(broker_url, server_url):
    conn = Connection(broker_url, server_url)
    yield conn
    conn.close()


@pytest.fixture
def broker_post(connection):
    """Fake broker, answering 200 unless told otherwise"""
    with mock.patch.object(connection._session, "post") as post:
        post.return_value = mock.Mock(spec=requests.Response, status_code=200)
        yield post


@pytest.fixture
def make_done():
    return DoneCallback


@pytest.fixture
def make_app():
    def _make_app(connection):
        return create_app(connection, TestConfig)
    return _make_app


@pytest.fixture
def app(connection, make_app):
    return make_app(connection)


@pytest.fixture
def spidymq_logger():
    """Connector logger, restored after test"""
    logger = logging.getLogger(LOGNAME)
    level_backup = logger.level
    yield logger
    log._remove_handlers()
    logger.setLevel(level_backup)
    logger.disabled = False
