from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta
from typing import Any, Optional

from ..auth.policy import Action, Principal, require
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_date, require_id, require_max_length, require_non_empty
from ..core.constants import PHOTO_URL_MAX_LENGTH, RECENT_ACTIVITY_DAYS
from ..core.enums import ActivityType
from ..core.exceptions import NotFoundError, ValidationError
from ..members.repository import MemberRepository
from .model import Activity, Announcement, Photo
from .repository import ActivityRepository

logger = logging.getLogger(__name__)


class ActivityService:
    def __init__(self, activities: ActivityRepository, members: MemberRepository, *, clock=now_local):
        self._activities = activities
        self._members = members
        self._clock = clock

    def list_activities(self, principal: Principal) -> list[Activity]:
        require(principal, Action.VIEW_ACTIVITIES)
        return list(self._activities.list_activities())

    def get_activity(self, principal: Principal, activity_id: int) -> Activity:
        """One activity with its photos."""
        require(principal, Action.VIEW_ACTIVITIES)
        activity = self._get(activity_id)
        return replace(activity, photos=tuple(self._activities.list_photos(activity.activity_id)))

    def _get(self, activity_id: Any) -> Activity:
        activity = self._activities.get_activity(require_id(activity_id, "Activité", field="activityId"))
        if not activity:
            raise NotFoundError("Activité introuvable")
        return activity

    def create_activity(
        self,
        principal: Principal,
        *,
        type: Any,
        title: str,
        date: Any,
        description: Optional[str] = None,
        end_date: Any = None,
        result: Optional[str] = None,
    ) -> Activity:
        require(principal, Action.PUBLISH_ACTIVITY)
        try:
            kind = type if isinstance(type, ActivityType) else ActivityType(str(type or "OTHER").upper())
        except ValueError:
            raise ValidationError("Type d'activité inconnu", field="type")
        title = require_non_empty(title, "Titre", field="title")
        start = require_date(date, "Date", field="date")
        end = None
        if end_date not in (None, ""):
            end = require_date(end_date, "Date de fin", field="endDate")
            if end < start:
                raise ValidationError("La date de fin doit être postérieure au début", field="endDate")

        activity_id = self._activities.create_activity(
            type=kind,
            title=title,
            description=optional_text(description),
            date=start,
            end_date=end,
            result=optional_text(result),
            created_by=principal.member_id,
        )
        logger.info("activity %s (%s) published by %s", activity_id, kind.value, principal.member_id)
        return self.get_activity(principal, activity_id)

    def list_announcements(self, principal: Principal) -> list[Announcement]:
        require(principal, Action.VIEW_ACTIVITIES)
        return list(self._activities.list_announcements())

    def create_announcement(self, principal: Principal, *, title: str, content: str) -> Announcement:
        require(principal, Action.PUBLISH_ACTIVITY)
        title = require_non_empty(title, "Titre", field="title")
        content = require_non_empty(content, "Contenu", field="content")
        announcement_id = self._activities.create_announcement(title=title, content=content, author_id=principal.member_id)
        logger.info("announcement %s published by %s", announcement_id, principal.member_id)
        announcement = self._activities.get_announcement(announcement_id)
        if not announcement:
            raise NotFoundError("Annonce introuvable")
        return announcement

    def recent_count(self, principal: Principal) -> int:
        """Activities and announcements the member has not seen yet."""
        member = self._members.get_by_id(principal.member_id)
        since = member.activities_seen_at if member else None
        if since is None:
            since = self._clock() - timedelta(days=RECENT_ACTIVITY_DAYS)
        return self._activities.count_created_since(since)

    def mark_seen(self, principal: Principal) -> None:
        self._members.update_fields(principal.member_id, activities_seen_at=self._clock())

    # -------- Photos --------
    def list_photos(self, principal: Principal, activity_id: int) -> list[Photo]:
        require(principal, Action.VIEW_ACTIVITIES)
        activity = self._get(activity_id)
        return list(self._activities.list_photos(activity.activity_id))

    def create_photo(
        self,
        principal: Principal,
        *,
        url: str,
        caption: Optional[str] = None,
        activity_id: Any = None,
    ) -> Photo:
        """Attach an already hosted picture, to an activity or to the general gallery."""
        require(principal, Action.PUBLISH_ACTIVITY)
        url = require_non_empty(url, "URL", field="url")
        require_max_length(url, "URL", PHOTO_URL_MAX_LENGTH, field="url")
        if not url.startswith(("http://", "https://", "/")):
            raise ValidationError("URL de photo invalide", field="url")
        target = None
        if activity_id not in (None, ""):
            target = self._get(activity_id).activity_id

        photo_id = self._activities.create_photo(
            url=url,
            caption=optional_text(caption),
            activity_id=target,
            uploaded_by=principal.member_id,
        )
        logger.info("photo %s added to activity %s by %s", photo_id, target, principal.member_id)
        photo = self._activities.get_photo(photo_id)
        if not photo:
            raise NotFoundError("Photo introuvable")
        return photo
