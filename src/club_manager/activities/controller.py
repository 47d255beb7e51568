from __future__ import annotations

from flask import Flask

from ..common.web import badge_count, body, current_principal, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.activity_service

    def principal():
        return current_principal(container.auth_service)

    @app.route("/activities", methods=["GET"], endpoint="activities_list")
    def list_activities():
        return ok(service.list_activities(principal()))

    @app.route("/activities", methods=["POST"], endpoint="activities_create")
    def create_activity():
        data = body()
        activity = service.create_activity(
            principal(),
            type=data.get("type"),
            title=data.get("title"),
            date=data.get("date"),
            description=data.get("description"),
            end_date=data.get("end_date"),
            result=data.get("result"),
        )
        return ok(activity, 201)

    @app.route("/activities/recent-count", methods=["GET"], endpoint="activities_recent_count")
    def recent_count():
        p = principal()
        return ok({"count": badge_count(lambda: service.recent_count(p))})

    @app.route("/activities/seen", methods=["POST"], endpoint="activities_mark_seen")
    def mark_seen():
        service.mark_seen(principal())
        return ok({"ok": True})

    @app.route("/activities/announcements", methods=["GET"], endpoint="activities_announcements")
    def list_announcements():
        return ok(service.list_announcements(principal()))

    @app.route("/activities/announcements", methods=["POST"], endpoint="activities_create_announcement")
    def create_announcement():
        data = body()
        announcement = service.create_announcement(principal(), title=data.get("title"), content=data.get("content"))
        return ok(announcement, 201)

    @app.route("/activities/<int:activity_id>", methods=["GET"], endpoint="activities_get")
    def get_activity(activity_id: int):
        return ok(service.get_activity(principal(), activity_id))

    @app.route("/activities/<int:activity_id>/photos", methods=["GET"], endpoint="activities_photos")
    def list_photos(activity_id: int):
        return ok(service.list_photos(principal(), activity_id))

    @app.route("/activities/photos", methods=["POST"], endpoint="activities_create_photo")
    def create_photo():
        data = body()
        photo = service.create_photo(
            principal(),
            url=data.get("url"),
            caption=data.get("caption"),
            activity_id=data.get("activity_id"),
        )
        return ok(photo, 201)
