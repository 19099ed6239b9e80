"""Broker request schemas"""
import marshmallow as ma


class ChannelRequestSchema(ma.Schema):
    """Channel creation request body"""

    name = ma.fields.String(required=True)
    type = ma.fields.String(allow_none=True)


class SubscriptionRequestSchema(ma.Schema):
    """Subscription and unsubscription request body"""

    name = ma.fields.String(required=True)
    notify_url = ma.fields.String(required=True, data_key="notifyUrl")


class MessageRequestSchema(ma.Schema):
    """Message publication request body"""

    channel = ma.fields.String(required=True)
    content = ma.fields.Raw(required=True)


channel_request_schema = ChannelRequestSchema()
subscription_request_schema = SubscriptionRequestSchema()
message_request_schema = MessageRequestSchema()
