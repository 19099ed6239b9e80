"""Broker messages receiving resources"""
from flask import Response, request
from flask_smorest import Blueprint, abort


def create_blueprint(connection):
    """Create the blueprint receiving messages pushed for a connection.

    Messages are POSTed by the broker on `<mount_path>/<channel>`.

    :param Connection connection: Connection routing received messages.
    :returns flask_smorest.Blueprint: Blueprint mounted on connection's
        mount path.
    """
    blp = Blueprint(
        'SpidyMQ',
        __name__,
        url_prefix=connection.mount_path,
        description="Messages pushed by the SpidyMQ broker"
    )

    @blp.route('/<channel>', methods=('POST', ))
    def post_message(channel):
        """Receive a message for a subscribed channel"""
        if connection.use_body_parser:
            # Malformed JSON aborts with 400
            message = request.get_json(force=True)
        else:
            message = request.get_data()

        if not connection.handle_message(channel, message):
            abort(400, message=f"Not subscribed to channel {channel}")
        return Response(status=200)

    return blp
