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
from ..core.enums import OvertimeStatus
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.overtime_service

    @app.route("/api/overtime-requests", methods=["POST"], endpoint="create_overtime_request")
    @json_errors
    @login_required
    def create_overtime_request():
        data = body()
        common = dict(
            current_role=current_role(),
            user_id=current_user_id(),
            project_id=require_id(data.get("projectId"), "project id"),
            reason=data.get("reason"),
            work_description=data.get("workDescription"),
            discipline_code=data.get("disciplineCode"),
            area=data.get("area"),
        )
        if data.get("weekStartDate") or data.get("dailyHours"):
            req = service.create(
                week_start_date=data.get("weekStartDate"),
                daily_hours=data.get("dailyHours") or [],
                **common,
            )
        else:
            # Legacy single-day payload: {date, requestedHours}
            req = service.create_single_day(
                work_date=data.get("date"),
                requested_hours=data.get("requestedHours"),
                **common,
            )
        return jsonify({"success": True, "request": req.to_dict()}), 201

    @app.route("/api/overtime-requests", methods=["GET"], endpoint="list_overtime_requests")
    @json_errors
    @manager_required
    def list_overtime_requests():
        status = query_str("status")
        try:
            status_filter = OvertimeStatus(status) if status else None
        except ValueError:
            raise ValidationError(f"Unknown overtime status: {status}")
        items = service.list_requests(
            current_role=current_role(),
            status=status_filter,
            user_id=query_int("userId"),
            project_id=query_int("projectId"),
        )
        return jsonify({"success": True, "count": len(items), "requests": [r.to_dict() for r in items]})

    @app.route("/api/overtime-requests/my-requests", methods=["GET"], endpoint="my_overtime_requests")
    @json_errors
    @login_required
    def my_overtime_requests():
        items = service.list_my_requests(user_id=current_user_id())
        return jsonify({"success": True, "count": len(items), "requests": [r.to_dict() for r in items]})

    @app.route("/api/overtime-requests/<int:request_id>", methods=["GET"], endpoint="get_overtime_request")
    @json_errors
    @login_required
    def get_overtime_request(request_id: int):
        req = service.get(request_id=request_id, requester_id=current_user_id(), current_role=current_role())
        return jsonify({"success": True, "request": req.to_dict()})

    @app.route("/api/overtime-requests/<int:request_id>", methods=["PUT"], endpoint="update_overtime_request")
    @json_errors
    @login_required
    def update_overtime_request(request_id: int):
        data = body()
        req = service.update(
            request_id=request_id,
            requester_id=current_user_id(),
            project_id=require_id(data["projectId"], "project id") if data.get("projectId") else None,
            week_start_date=data.get("weekStartDate"),
            daily_hours=data.get("dailyHours"),
            reason=data.get("reason"),
            work_description=data.get("workDescription"),
            discipline_code=data.get("disciplineCode"),
            area=data.get("area"),
        )
        return jsonify({"success": True, "request": req.to_dict()})

    @app.route("/api/overtime-requests/<int:request_id>", methods=["DELETE"], endpoint="delete_overtime_request")
    @json_errors
    @login_required
    def delete_overtime_request(request_id: int):
        service.delete(request_id=request_id, requester_id=current_user_id())
        return jsonify({"success": True, "message": "Overtime request deleted"})

    @app.route("/api/overtime-requests/<int:request_id>/approve", methods=["PUT"], endpoint="approve_overtime_request")
    @json_errors
    @manager_required
    def approve_overtime_request(request_id: int):
        req = service.approve(current_role=current_role(), approver_id=current_user_id(), request_id=request_id)
        return jsonify({"success": True, "request": req.to_dict()})

    @app.route("/api/overtime-requests/<int:request_id>/reject", methods=["PUT"], endpoint="reject_overtime_request")
    @json_errors
    @manager_required
    def reject_overtime_request(request_id: int):
        req = service.reject(
            current_role=current_role(),
            approver_id=current_user_id(),
            request_id=request_id,
            rejection_reason=body().get("rejectionReason"),
        )
        return jsonify({"success": True, "request": req.to_dict()})

    @app.route("/api/overtime-requests/validate", methods=["POST"], endpoint="validate_overtime_hours")
    @json_errors
    @login_required
    def validate_overtime_hours():
        data = body()
        result = service.validate_for_entry(
            user_id=current_user_id(),
            project_id=require_id(data.get("projectId"), "project id"),
            work_date=data.get("date"),
            hours=data.get("hours"),
            timesheet_type=data.get("timesheetType") or "",
        )
        return jsonify(result.to_dict())
