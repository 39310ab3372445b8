"""Channel subscriptions"""
import logging
from typing import Dict, List

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from videotube.core.errors import ApiError
from videotube.db.helpers import attach_owners, get_or_404
from videotube.models import Subscription

logger = logging.getLogger(__name__)


def toggle_subscription(db: Database, subscriber_id: ObjectId, channel_id: ObjectId) -> Dict:
    """Subscribe to a channel, or unsubscribe when already subscribed

    Raises:
        ApiError: 400 when subscribing to yourself, 404 for an unknown channel
    """
    if subscriber_id == channel_id:
        raise ApiError(400, "You cannot subscribe to yourself")
    get_or_404(db, "users", channel_id, "Channel", {"_id": 1})

    key = {"subscriber": subscriber_id, "channel": channel_id}
    removed = db.subscriptions.delete_one(key)
    if removed.deleted_count:
        logger.info(f"User {subscriber_id} unsubscribed from channel {channel_id}")
        return {"is_subscribed": False}

    try:
        db.subscriptions.insert_one(Subscription(**key).to_document())
    except DuplicateKeyError:
        logger.debug(f"Duplicate subscription {subscriber_id} -> {channel_id}")
    logger.info(f"User {subscriber_id} subscribed to channel {channel_id}")
    return {"is_subscribed": True, "subscription": db.subscriptions.find_one(key)}


def get_subscribed_channels(db: Database, subscriber_id: ObjectId) -> List[Dict]:
    """Channels the user subscribes to, each with the channel's public profile"""
    subscriptions = list(
        db.subscriptions.find({"subscriber": subscriber_id})
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
    )
    if not subscriptions:
        raise ApiError(404, "No channels found for this user")
    return attach_owners(db, subscriptions, field="channel")


def get_channel_subscribers(db: Database, channel_id: ObjectId) -> List[Dict]:
    """Subscribers of a channel, each with the subscriber's public profile"""
    subscriptions = list(
        db.subscriptions.find({"channel": channel_id})
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
    )
    if not subscriptions:
        raise ApiError(404, "No subscribers found for this channel")
    return attach_owners(db, subscriptions, field="subscriber")
