"""Message receiving resources tests"""
from unittest import mock

import flask
import pytest

from spidymq.connection import Connection


TIMEOUT = 2
MESSAGE_URL = '/spidymq/'


class TestDispatcher:

    def test_dispatcher_post_message(self, app, connection, broker_post):
        client = app.test_client()
        notify_a = mock.Mock()
        notify_b = mock.Mock()
        connection.connect()
        connection.subscribe_channel("A", notify_a).result(TIMEOUT)
        connection.subscribe_channel("B", notify_b).result(TIMEOUT)

        payload = {"pizza": "yum yum", "toppings": ["cheese", "olives"]}
        ret = client.post(f"{MESSAGE_URL}A", json=payload)
        assert ret.status_code == 200
        assert ret.data == b""
        notify_a.assert_called_once_with(payload)
        notify_b.assert_not_called()

        ret = client.post(f"{MESSAGE_URL}B", json="plain string")
        assert ret.status_code == 200
        notify_b.assert_called_once_with("plain string")
        assert notify_a.call_count == 1

    def test_dispatcher_not_subscribed(self, app, connection, broker_post):
        client = app.test_client()
        notify = mock.Mock()
        connection.connect()
        connection.subscribe_channel("A", notify).result(TIMEOUT)

        ret = client.post(f"{MESSAGE_URL}B", json={"pizza": "yum yum"})
        assert ret.status_code == 400
        notify.assert_not_called()

    def test_dispatcher_not_connected(self, app, connection):
        client = app.test_client()
        ret = client.post(f"{MESSAGE_URL}A", json={"pizza": "yum yum"})
        assert ret.status_code == 400

    def test_dispatcher_after_unsubscribe(self, app, connection, broker_post):
        client = app.test_client()
        notify = mock.Mock()
        connection.connect()
        connection.subscribe_channel("A", notify).result(TIMEOUT)
        # Unsubscribed whatever the broker says
        broker_post.return_value.status_code = 500
        connection.unsubscribe_channel("A")

        ret = client.post(f"{MESSAGE_URL}A", json={"pizza": "yum yum"})
        assert ret.status_code == 400
        notify.assert_not_called()

    def test_dispatcher_after_disconnect(self, app, connection, broker_post):
        client = app.test_client()
        notify_a = mock.Mock()
        notify_b = mock.Mock()
        connection.connect()
        connection.subscribe_channel("A", notify_a).result(TIMEOUT)
        connection.subscribe_channel("B", notify_b).result(TIMEOUT)
        connection.disconnect()

        for channel in ("A", "B"):
            ret = client.post(
                f"{MESSAGE_URL}{channel}", json={"pizza": "yum yum"})
            assert ret.status_code == 400
        notify_a.assert_not_called()
        notify_b.assert_not_called()

    def test_dispatcher_invalid_json(self, app, connection, broker_post):
        client = app.test_client()
        notify = mock.Mock()
        connection.connect()
        connection.subscribe_channel("A", notify).result(TIMEOUT)

        ret = client.post(
            f"{MESSAGE_URL}A", data="{not json",
            content_type="application/json")
        assert ret.status_code == 400
        notify.assert_not_called()

    def test_dispatcher_method_not_allowed(self, app):
        client = app.test_client()
        ret = client.get(f"{MESSAGE_URL}A")
        assert ret.status_code == 405

    def test_dispatcher_without_body_parser(self, make_app):
        connection = Connection(
            "http://localhost:3000", "http://localhost:3001",
            mount_path="/queue", use_body_parser=False)
        app = make_app(connection)
        client = app.test_client()
        notify = mock.Mock()
        connection.connect()
        with mock.patch.object(connection._session, "post") as post:
            post.return_value = mock.Mock(status_code=200)
            connection.subscribe_channel("A", notify).result(TIMEOUT)

        ret = client.post(
            "/queue/A", data=b'{"pizza": "yum yum"}',
            content_type="application/json")
        assert ret.status_code == 200
        notify.assert_called_once_with(b'{"pizza": "yum yum"}')
        connection.close()

    def test_dispatcher_init_app(self, connection, broker_post):
        app = flask.Flask(__name__)
        connection.init_app(app)
        assert app.extensions["spidymq"] is connection

        client = app.test_client()
        notify = mock.Mock()
        connection.connect()
        connection.subscribe_channel("A", notify).result(TIMEOUT)
        ret = client.post(f"{MESSAGE_URL}A", json={"pizza": "yum yum"})
        assert ret.status_code == 200
        notify.assert_called_once_with({"pizza": "yum yum"})

        ret = client.post(f"{MESSAGE_URL}B", json={"pizza": "yum yum"})
        assert ret.status_code == 400

    def test_dispatcher_notify_error(self, app, connection, broker_post):
        client = app.test_client()
        connection.connect()
        connection.subscribe_channel(
            "A", mock.Mock(side_effect=ValueError("bad pizza"))
        ).result(TIMEOUT)
        with pytest.raises(ValueError):
            client.post(f"{MESSAGE_URL}A", json={"pizza": "yum yum"})
