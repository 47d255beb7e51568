from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import ActivityType


@dataclass(frozen=True)
class Photo:
    photo_id: int
    url: str
    created_at: datetime
    caption: Optional[str] = None
    activity_id: Optional[int] = None
    uploaded_by: Optional[int] = None


@dataclass(frozen=True)
class Activity:
    activity_id: int
    type: ActivityType
    title: str
    date: date
    created_at: datetime
    description: Optional[str] = None
    end_date: Optional[date] = None
    result: Optional[str] = None
    created_by: Optional[int] = None
    updated_at: Optional[datetime] = None
    # Filled on the detail view only.
    photos: Optional[tuple[Photo, ...]] = None


@dataclass(frozen=True)
class AnnouncementAuthor:
    member_id: int
    first_name: str
    last_name: str


@dataclass(frozen=True)
class Announcement:
    announcement_id: int
    title: str
    content: str
    created_at: datetime
    author: Optional[AnnouncementAuthor] = None
