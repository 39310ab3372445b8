"""Subscription API routes"""
from typing import Dict

from fastapi import APIRouter, Depends
from pymongo.database import Database

from videotube.core.errors import ApiResponse
from videotube.core.security import require_auth
from videotube.db.helpers import to_object_id
from videotube.db.mongo import get_db
from videotube.services import subscription_service

router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])


@router.post("/c/{channel_id}")
def toggle_subscription(
    channel_id: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Subscribe to a channel, or unsubscribe if already subscribed"""
    result = subscription_service.toggle_subscription(
        db, current_user["_id"], to_object_id(channel_id, "channel id")
    )
    if result["is_subscribed"]:
        return ApiResponse(201, result, "Subscribed successfully")
    return ApiResponse(200, result, "Unsubscribed successfully")


@router.get("/c")
def get_subscribed_channels(current_user: Dict = Depends(require_auth), db: Database = Depends(get_db)):
    """Channels the caller subscribes to"""
    channels = subscription_service.get_subscribed_channels(db, current_user["_id"])
    return ApiResponse(200, channels, "Subscribed channels fetched successfully")


@router.get("/u")
def get_channel_subscribers(current_user: Dict = Depends(require_auth), db: Database = Depends(get_db)):
    """Subscribers of the caller's channel"""
    subscribers = subscription_service.get_channel_subscribers(db, current_user["_id"])
    return ApiResponse(200, subscribers, "Subscribers fetched successfully")
