from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import (
    body,
    current_role,
    current_user_id,
    json_errors,
    login_required,
    manager_required,
    query_int,
    query_str,
)
from ..common.validators import require_id
from ..core.enums import TimesheetStatus
from ..core.exceptions import ValidationError
from ..container import Container


def _status_filter(value):
    if value is None:
        return None
    try:
        return TimesheetStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown timesheet status: {value}")


def register(app: Flask, container: Container) -> None:
    service = container.timesheet_service

    @app.route("/api/timesheets", methods=["GET"], endpoint="list_timesheets")
    @json_errors
    @login_required
    def list_timesheets():
        items = service.list_timesheets(
            current_role=current_role(),
            requester_id=current_user_id(),
            status=_status_filter(query_str("status")),
            month=query_int("month"),
            year=query_int("year"),
            user_id=query_int("userId"),
            project_id=query_int("projectId"),
            name=query_str("name"),
        )
        return jsonify({"success": True, "count": len(items), "timesheets": [t.to_dict() for t in items]})

    @app.route("/api/timesheets/pending", methods=["GET"], endpoint="pending_timesheets")
    @json_errors
    @manager_required
    def pending_timesheets():
        items = service.list_pending_review(current_role=current_role())
        return jsonify({"success": True, "count": len(items), "timesheets": [t.to_dict() for t in items]})

    @app.route("/api/timesheets/user/<int:user_id>", methods=["GET"], endpoint="user_timesheets")
    @json_errors
    @login_required
    def user_timesheets(user_id: int):
        items = service.list_by_user(current_role=current_role(), requester_id=current_user_id(), user_id=user_id)
        return jsonify({"success": True, "count": len(items), "timesheets": [t.to_dict() for t in items]})

    @app.route("/api/timesheets/project/<int:project_id>", methods=["GET"], endpoint="project_timesheets")
    @json_errors
    @login_required
    def project_timesheets(project_id: int):
        items = service.list_by_project(
            current_role=current_role(),
            requester_id=current_user_id(),
            project_id=project_id,
        )
        return jsonify({"success": True, "count": len(items), "timesheets": [t.to_dict() for t in items]})

    @app.route("/api/timesheets/<int:timesheet_id>", methods=["GET"], endpoint="get_timesheet")
    @json_errors
    @login_required
    def get_timesheet(timesheet_id: int):
        ts = service.get(timesheet_id=timesheet_id, requester_id=current_user_id(), current_role=current_role())
        return jsonify({"success": True, "timesheet": ts.to_dict()})

    @app.route("/api/timesheets", methods=["POST"], endpoint="create_timesheet")
    @json_errors
    @login_required
    def create_timesheet():
        data = body()
        ts = service.create(
            current_role=current_role(),
            user_id=current_user_id(),
            project_id=require_id(data.get("projectId"), "project id"),
            month=data.get("month"),
            year=data.get("year"),
            discipline_codes=data.get("disciplineCodes", data.get("disciplineCode")),
            entries=data.get("entries") or [],
            area=data.get("area"),
            platform=data.get("platform"),
            comments=data.get("comments"),
        )
        return jsonify({"success": True, "timesheet": ts.to_dict()}), 201

    @app.route("/api/timesheets/<int:timesheet_id>", methods=["PUT"], endpoint="update_timesheet")
    @json_errors
    @login_required
    def update_timesheet(timesheet_id: int):
        data = body()
        ts = service.update(
            timesheet_id=timesheet_id,
            requester_id=current_user_id(),
            current_role=current_role(),
            entries=data.get("entries"),
            area=data.get("area"),
            comments=data.get("comments"),
            discipline_codes=data.get("disciplineCodes"),
        )
        return jsonify({"success": True, "timesheet": ts.to_dict()})

    @app.route("/api/timesheets/<int:timesheet_id>/submit", methods=["PATCH"], endpoint="submit_timesheet")
    @json_errors
    @login_required
    def submit_timesheet(timesheet_id: int):
        ts = service.submit(timesheet_id=timesheet_id, requester_id=current_user_id())
        return jsonify({"success": True, "timesheet": ts.to_dict()})

    @app.route("/api/timesheets/<int:timesheet_id>/approve", methods=["PATCH"], endpoint="approve_timesheet")
    @json_errors
    @manager_required
    def approve_timesheet(timesheet_id: int):
        ts = service.approve(
            timesheet_id=timesheet_id,
            approver_id=current_user_id(),
            current_role=current_role(),
            comments=body().get("comments"),
        )
        return jsonify({"success": True, "timesheet": ts.to_dict()})

    @app.route("/api/timesheets/<int:timesheet_id>/reject", methods=["PATCH"], endpoint="reject_timesheet")
    @json_errors
    @manager_required
    def reject_timesheet(timesheet_id: int):
        data = body()
        ts = service.reject(
            timesheet_id=timesheet_id,
            approver_id=current_user_id(),
            current_role=current_role(),
            rejection_reason=data.get("rejectionReason"),
            comments=data.get("comments"),
        )
        return jsonify({"success": True, "timesheet": ts.to_dict()})

    @app.route("/api/timesheets/<int:timesheet_id>", methods=["DELETE"], endpoint="delete_timesheet")
    @json_errors
    @login_required
    def delete_timesheet(timesheet_id: int):
        service.delete(timesheet_id=timesheet_id, requester_id=current_user_id(), current_role=current_role())
        return jsonify({"success": True, "message": "Timesheet deleted successfully"})
