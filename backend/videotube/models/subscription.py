"""Subscription model"""
from bson import ObjectId

from videotube.models.base import Document


class Subscription(Document):
    """Subscriber -> channel edge"""

    subscriber: ObjectId  # the user who subscribes
    channel: ObjectId  # the user being subscribed to
