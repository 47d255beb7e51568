from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ActivityType
from .model import Activity, Announcement, Photo


class ActivityRepository(Protocol):
    def list_activities(self) -> Sequence[Activity]:
        """Most recent activity date first."""

        raise NotImplementedError

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        raise NotImplementedError

    def create_activity(
        self,
        *,
        type: ActivityType,
        title: str,
        description: Optional[str],
        date: date,
        end_date: Optional[date],
        result: Optional[str],
        created_by: int,
    ) -> int:
        raise NotImplementedError

    def list_announcements(self) -> Sequence[Announcement]:
        raise NotImplementedError

    def get_announcement(self, announcement_id: int) -> Optional[Announcement]:
        raise NotImplementedError

    def create_announcement(self, *, title: str, content: str, author_id: int) -> int:
        raise NotImplementedError

    def count_created_since(self, since: datetime) -> int:
        """Activities plus announcements created strictly after since."""

        raise NotImplementedError

    def list_photos(self, activity_id: int) -> Sequence[Photo]:
        """Oldest first."""

        raise NotImplementedError

    def get_photo(self, photo_id: int) -> Optional[Photo]:
        raise NotImplementedError

    def create_photo(self, *, url: str, caption: Optional[str], activity_id: Optional[int], uploaded_by: int) -> int:
        raise NotImplementedError
