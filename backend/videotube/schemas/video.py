"""Query parameter types for video listings"""
from typing import Literal

SortType = Literal["asc", "desc"]

VideoSortField = Literal["created_at", "views", "duration", "title"]

ChannelVideoSortField = Literal["created_at", "views", "duration", "is_published"]
