# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

# backend/rotierp/routes/reports.py
"""
Reporting API routes.

SECURITY: MANAGER+ sees everything; FRANCHISE_MANAGER sees only the
counters of franchises they manage.

All time windows are resolved on the server-local calendar and queried as
half-open UTC ranges.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_min_role
from ..services import reporting_service
from ..validation import parse_date_arg, parse_int_arg


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_auth
@require_min_role("FRANCHISE_MANAGER")
def sales_report_route():
    """
    Sales report with chart buckets.

    Query params:
    - period: today | yesterday | this-week | this-month | last-month | custom (optional)
    - startDate, endDate: ISO date or datetime (default: last 30 days)
    - groupBy: day | week | month (default: day)
    - counterId, franchiseId: int (optional)
    """
    args = request.args
    period = args.get("period")
    if period:
        window = reporting_service.resolve_period(period, args.get("startDate"), args.get("endDate"))
    else:
        window = reporting_service.resolve_range(args.get("startDate"), args.get("endDate"))

    counter_id = parse_int_arg(args.get("counterId"), "counterId")
    franchise_id = parse_int_arg(args.get("franchiseId"), "franchiseId")
    group_by = args.get("groupBy") or "day"

    data = reporting_service.sales_report(
        window=window,
        group_by=group_by,
        counter_id=counter_id,
        franchise_id=franchise_id,
        user=g.current_user,
    )
    return jsonify({
        "message": "Sales report generated successfully",
        "data": data,
        "filters": {
            **window.to_dict(),
            "groupBy": group_by,
            "counterId": counter_id,
            "franchiseId": franchise_id,
        },
    })


@reports_bp.get("/dashboard")
@require_auth
@require_min_role("FRANCHISE_MANAGER")
def dashboard_route():
    return jsonify({
        "message": "Dashboard data retrieved successfully",
        "data": reporting_service.dashboard(user=g.current_user),
    })


@reports_bp.get("/inventory")
@require_auth
@require_min_role("FRANCHISE_MANAGER")
def inventory_report_route():
    """Query params: date (YYYY-MM-DD, default today), counterId (optional)."""
    data = reporting_service.inventory_report(
        day=parse_date_arg(request.args.get("date"), "date"),
        counter_id=parse_int_arg(request.args.get("counterId"), "counterId"),
        user=g.current_user,
    )
    return jsonify({"message": "Inventory report generated successfully", "data": data})
