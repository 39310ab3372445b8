"""User account API routes"""
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database

from videotube.core.errors import ApiResponse
from videotube.core.security import (
    REFRESH_COOKIE, clear_auth_cookies, require_auth, set_auth_cookies
)
from videotube.db.mongo import get_db
from videotube.schemas.auth import (
    ChangePasswordRequest, LoginRequest, RefreshTokenRequest, UpdateAccountRequest
)
from videotube.services import user_service
from videotube.services.storage.uploads import cleanup_staged_file, save_upload

router = APIRouter(prefix="/api/v1/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.post("/register", status_code=201)
async def register(
    full_name: str = Form(""),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db)
):
    """Register a new user with an avatar and optional cover image"""
    avatar_path = None
    cover_image_path = None
    try:
        if avatar is not None and avatar.filename:
            avatar_path = await save_upload(avatar, "image", "avatar")
        if cover_image is not None and cover_image.filename:
            cover_image_path = await save_upload(cover_image, "image", "cover_image")
    except Exception:
        cleanup_staged_file(avatar_path)
        raise

    user = await run_in_threadpool(
        user_service.register_user,
        db, full_name, email, username, password, avatar_path, cover_image_path
    )
    return ApiResponse(201, user, "User registered successfully")


@router.post("/login")
def login(request_data: LoginRequest, db: Database = Depends(get_db)):
    """Login with email or username; sets the token cookies"""
    result = user_service.login_user(
        db,
        request_data.password,
        email=request_data.email,
        username=request_data.username
    )
    response = ApiResponse(200, result, "User logged in successfully")
    set_auth_cookies(response, result["access_token"], result["refresh_token"])
    return response


@router.post("/refresh-token")
def refresh_token(
    request: Request,
    request_data: Optional[RefreshTokenRequest] = None,
    db: Database = Depends(get_db)
):
    """Exchange a refresh token (cookie or body) for a new token pair"""
    incoming = request.cookies.get(REFRESH_COOKIE)
    if not incoming and request_data is not None:
        incoming = request_data.refresh_token

    tokens = user_service.refresh_access_token(db, incoming)
    response = ApiResponse(200, tokens, "Access token refreshed")
    set_auth_cookies(response, tokens["access_token"], tokens["refresh_token"])
    return response


@router.post("/logout")
def logout(current_user: Dict = Depends(require_auth), db: Database = Depends(get_db)):
    user_service.logout_user(db, current_user["_id"])
    response = ApiResponse(200, {}, "User logged out successfully")
    clear_auth_cookies(response)
    return response


@router.post("/change-password")
def change_password(
    request_data: ChangePasswordRequest,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    user_service.change_password(
        db, current_user["_id"], request_data.old_password, request_data.new_password
    )
    return ApiResponse(200, {}, "Password changed successfully")


@router.get("/current-user")
def current_user_details(current_user: Dict = Depends(require_auth)):
    return ApiResponse(200, current_user, "Current user fetched successfully")


@router.patch("/update-account")
def update_account(
    request_data: UpdateAccountRequest,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    user = user_service.update_account(
        db, current_user["_id"], request_data.full_name, str(request_data.email)
    )
    return ApiResponse(200, user, "Account details updated successfully")


@router.patch("/avatar")
async def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Replace the avatar; the previous image is removed from the CDN"""
    avatar_path = await save_upload(avatar, "image", "avatar")
    user = await run_in_threadpool(user_service.update_avatar, db, current_user["_id"], avatar_path)
    return ApiResponse(200, user, "Avatar updated successfully")


@router.patch("/cover-image")
async def update_cover_image(
    cover_image: Optional[UploadFile] = File(None),
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Replace the cover image; the previous image is removed from the CDN"""
    cover_image_path = await save_upload(cover_image, "image", "cover_image")
    user = await run_in_threadpool(
        user_service.update_cover_image, db, current_user["_id"], cover_image_path
    )
    return ApiResponse(200, user, "Cover image updated successfully")


@router.get("/c/{username}")
def channel_profile(
    username: str,
    current_user: Dict = Depends(require_auth),
    db: Database = Depends(get_db)
):
    """Channel profile with subscriber counts and the caller's subscription status"""
    channel = user_service.get_channel_profile(db, username, current_user["_id"])
    return ApiResponse(200, channel, "Channel profile fetched successfully")


@router.get("/history")
def watch_history(current_user: Dict = Depends(require_auth), db: Database = Depends(get_db)):
    history = user_service.get_watch_history(db, current_user["_id"])
    return ApiResponse(200, history, "Watch history fetched successfully")
