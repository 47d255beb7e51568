from __future__ import annotations

from flask import Flask, session

from ..common.web import SESSION_KEY, body, current_principal, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def principal():
        return current_principal(container.auth_service)

    # -------- Auth --------
    @app.route("/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = body()
        member = container.auth_service.authenticate(data.get("phone") or "", data.get("password") or "")
        session.clear()
        session[SESSION_KEY] = member.member_id
        session.permanent = True
        return ok(member)

    @app.route("/auth/logout", methods=["POST"], endpoint="auth_logout")
    def logout():
        session.clear()
        return ok({"ok": True})

    @app.route("/auth/me", methods=["GET"], endpoint="auth_me")
    def auth_me():
        return ok(container.member_service.me(principal()))

    # -------- Members --------
    @app.route("/members", methods=["GET"], endpoint="members_list")
    def list_members():
        return ok(container.member_service.list_members(principal()))

    @app.route("/members", methods=["POST"], endpoint="members_create")
    def create_member():
        data = body()
        member = container.member_service.create_member(
            principal(),
            phone=data.get("phone"),
            password=data.get("password"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            role=data.get("role"),
            email=data.get("email"),
            neighborhood=data.get("neighborhood"),
            secondary_contact=data.get("secondary_contact"),
            profile_photo_url=data.get("profile_photo_url"),
        )
        return ok(member, 201)

    @app.route("/members/me", methods=["GET"], endpoint="members_me")
    def members_me():
        return ok(container.member_service.me(principal()))

    @app.route("/members/me/complete-profile", methods=["PATCH"], endpoint="members_complete_profile")
    def complete_profile():
        data = body()
        member = container.member_service.complete_profile(
            principal(),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            profile_photo_url=data.get("profile_photo_url"),
            email=data.get("email"),
            neighborhood=data.get("neighborhood"),
            secondary_contact=data.get("secondary_contact"),
        )
        return ok(member)

    @app.route("/members/<int:member_id>", methods=["GET"], endpoint="members_get")
    def get_member(member_id: int):
        return ok(container.member_service.get_member(principal(), member_id))

    @app.route("/members/<int:member_id>", methods=["PATCH"], endpoint="members_update")
    def update_member(member_id: int):
        return ok(container.member_service.update_member(principal(), member_id, body()))

    @app.route("/members/<int:member_id>", methods=["DELETE"], endpoint="members_delete")
    def delete_member(member_id: int):
        container.member_service.delete_member(principal(), member_id)
        return ok({"ok": True})

    @app.route("/members/<int:member_id>/audit-log", methods=["GET"], endpoint="members_audit_log")
    def audit_log(member_id: int):
        return ok(container.member_service.audit_log(principal(), member_id))
