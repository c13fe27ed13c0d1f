from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import json_errors, manager_required, query_str
from ..common.validators import require_id
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.costing_service

    @app.route("/api/costing/project/<project_id>", methods=["GET"], endpoint="project_costing")
    @json_errors
    @manager_required
    def project_costing(project_id: str):
        report = service.build_project_costing(
            project_id=require_id(project_id, "project id"),
            month=query_str("month"),
            year=query_str("year"),
            start_date=query_str("startDate"),
            end_date=query_str("endDate"),
            default_hourly_rate=query_str("hourlyRate"),
            discipline_code=query_str("disciplineCode"),
        )
        return jsonify({"success": True, **report.to_dict()})

    @app.route("/api/costing/summary", methods=["GET"], endpoint="costing_summary")
    @json_errors
    @manager_required
    def costing_summary():
        summary = service.build_portfolio_summary(default_hourly_rate=query_str("hourlyRate"))
        return jsonify({"success": True, **summary.to_dict()})
