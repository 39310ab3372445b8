"""Tweet API routes"""
from typing import Dict

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from videotube.core.errors import ApiResponse
from videotube.core.security import require_auth
from videotube.db.helpers import to_object_id
from videotube.db.mongo import get_db
from videotube.schemas.content import ContentRequest
from videotube.services import tweet_service

router = APIRouter(prefix="/api/v1/tweets", tags=["tweets"])


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_tweet(
    request_data: ContentRequest,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    tweet = tweet_service.create_tweet(db, current_user["_id"], request_data.content)
    return ApiResponse(201, tweet, "Tweet created successfully")


@router.get("")
@router.get("/", include_in_schema=False)
def list_tweets(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Feed of all tweets, newest first"""
    tweets = tweet_service.list_tweets(db, page, limit)
    return ApiResponse(200, tweets, "Tweets fetched successfully")


@router.get("/user/{user_id}")
def get_user_tweets(
    user_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    tweets = tweet_service.list_user_tweets(db, to_object_id(user_id, "user id"))
    return ApiResponse(200, tweets, "User tweets fetched successfully")


@router.patch("/{tweet_id}")
def update_tweet(
    tweet_id: str,
    request_data: ContentRequest,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    tweet = tweet_service.update_tweet(
        db, to_object_id(tweet_id, "tweet id"), current_user["_id"], request_data.content
    )
    return ApiResponse(200, tweet, "Tweet updated successfully")


@router.delete("/{tweet_id}")
def delete_tweet(
    tweet_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    tweet = tweet_service.delete_tweet(db, to_object_id(tweet_id, "tweet id"), current_user["_id"])
    return ApiResponse(200, tweet, "Tweet deleted successfully")
