"""Tweets: short text posts on a user's channel"""
import logging
from typing import Dict, List

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from videotube.core.errors import ApiError
from videotube.db.helpers import (
    attach_owners, find_owned, get_or_404, pagination_stages, stamped
)
from videotube.models import Tweet

logger = logging.getLogger(__name__)

NEWEST_FIRST = {"$sort": {"created_at": DESCENDING, "_id": DESCENDING}}


def create_tweet(db: Database, user_id: ObjectId, content: str) -> Dict:
    tweet = Tweet(content=content, owner=user_id)
    result = db.tweets.insert_one(tweet.to_document())
    logger.info(f"Tweet {result.inserted_id} created by user {user_id}")
    return db.tweets.find_one({"_id": result.inserted_id})


def list_tweets(db: Database, page: int = 1, limit: int = 10) -> List[Dict]:
    """Feed of all tweets, newest first"""
    tweets = list(db.tweets.aggregate([NEWEST_FIRST, *pagination_stages(page, limit)]))
    return attach_owners(db, tweets)


def list_user_tweets(db: Database, user_id: ObjectId) -> List[Dict]:
    """A user's tweets, newest first

    Raises:
        ApiError: 404 when the user does not exist or has not tweeted
    """
    get_or_404(db, "users", user_id, "User", {"_id": 1})
    tweets = list(db.tweets.aggregate([{"$match": {"owner": user_id}}, NEWEST_FIRST]))
    if not tweets:
        raise ApiError(404, "Tweets not found")
    return attach_owners(db, tweets)


def update_tweet(db: Database, tweet_id: ObjectId, user_id: ObjectId, content: str) -> Dict:
    find_owned(db, "tweets", tweet_id, user_id, "Tweet", "update")
    return db.tweets.find_one_and_update(
        {"_id": tweet_id},
        {"$set": stamped({"content": content})},
        return_document=ReturnDocument.AFTER
    )


def delete_tweet(db: Database, tweet_id: ObjectId, user_id: ObjectId) -> Dict:
    tweet = find_owned(db, "tweets", tweet_id, user_id, "Tweet", "delete")
    db.tweets.delete_one({"_id": tweet_id})
    db.likes.delete_many({"target_type": "tweet", "target": tweet_id})
    logger.info(f"Tweet {tweet_id} deleted by user {user_id}")
    return tweet
