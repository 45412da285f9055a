# Overview: Flask API routes for HR operations; employees, attendance, payroll and training.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_min_role
from ..errors import ValidationError
from ..models import Attendance, Employee, Payroll, TrainingProgram
from ..models.hr import ATTENDANCE_STATUSES, EMPLOYEE_STATUSES, TRAINING_STATUSES
from ..services import hr_service
from ..services.pagination import paginate, parse_page_args
from ..validation import (
    ModelValidationPolicy,
    coerce_int,
    json_object_body,
    parse_date_arg,
    parse_int_arg,
    validate_payload,
)

EMPLOYEE_POLICY = ModelValidationPolicy(
    fields={
        "firstName": "first_name",
        "lastName": "last_name",
        "email": "email",
        "phone": "phone",
        "position": "position",
        "department": "department",
        "salary": "salary_cents",
        "joinDate": "join_date",
        "address": "address",
        "emergencyContact": "emergency_contact",
    },
    required_on_create={"firstName", "lastName", "email", "phone", "position", "department", "salary", "joinDate"},
)

EMPLOYEE_UPDATE_POLICY = ModelValidationPolicy(
    fields={
        "status": "status",
        "salary": "salary_cents",
        "position": "position",
        "department": "department",
        "phone": "phone",
        "address": "address",
        "emergencyContact": "emergency_contact",
    },
    choices={"status": EMPLOYEE_STATUSES},
)

ATTENDANCE_POLICY = ModelValidationPolicy(
    fields={
        "employeeId": "employee_id",
        "date": "date",
        "checkIn": "check_in",
        "checkOut": "check_out",
        "status": "status",
        "notes": "notes",
    },
    required_on_create={"employeeId", "date", "status"},
    choices={"status": ATTENDANCE_STATUSES},
)

PAYROLL_POLICY = ModelValidationPolicy(
    fields={
        "employeeId": "employee_id",
        "month": "month",
        "year": "year",
        "basicSalary": "basic_salary_cents",
        "allowances": "allowances_cents",
        "overtime": "overtime_cents",
        "deductions": "deductions_cents",
    },
    required_on_create={"employeeId", "month", "year", "basicSalary"},
)

TRAINING_POLICY = ModelValidationPolicy(
    fields={
        "title": "title",
        "description": "description",
        "instructor": "instructor",
        "startDate": "start_date",
        "endDate": "end_date",
        "duration": "duration_hours",
        "maxParticipants": "max_participants",
        "location": "location",
        "cost": "cost_cents",
    },
    required_on_create={"title", "instructor", "startDate", "endDate", "duration", "maxParticipants", "location"},
)

hr_bp = Blueprint("hr", __name__, url_prefix="/api/hr")


@hr_bp.get("/employees")
@require_auth
@require_min_role("MANAGER")
def list_employees_route():
    """Query params: department, status, page, limit. Stats cover all employees."""
    page, limit = parse_page_args(request.args)
    query = hr_service.list_employees_query(
        department=request.args.get("department"),
        status=request.args.get("status"),
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return jsonify({
        "employees": [e.to_dict() for e in rows],
        "stats": hr_service.employee_stats(),
        "pagination": pagination,
    })


@hr_bp.post("/employees")
@require_auth
@require_min_role("MANAGER")
def create_employee_route():
    payload = json_object_body()
    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=False)
    patch["email"] = patch["email"].lower()
    employee = hr_service.create_employee(patch=patch)
    return jsonify({"message": "Employee created successfully", "employee": employee.to_dict()}), 201


@hr_bp.put("/employees/<int:employee_id>")
@require_auth
@require_min_role("MANAGER")
def update_employee_route(employee_id: int):
    payload = json_object_body()
    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_UPDATE_POLICY, partial=True)
    employee = hr_service.update_employee(employee_id, patch=patch)
    return jsonify({"message": "Employee updated successfully", "employee": employee.to_dict()})


@hr_bp.get("/attendance")
@require_auth
@require_min_role("MANAGER")
def list_attendance_route():
    """Query params: date, employeeId, startDate, endDate (inclusive)."""
    rows, summary = hr_service.list_attendance(
        on_date=parse_date_arg(request.args.get("date"), "date"),
        employee_id=parse_int_arg(request.args.get("employeeId"), "employeeId"),
        start=parse_date_arg(request.args.get("startDate"), "startDate"),
        end=parse_date_arg(request.args.get("endDate"), "endDate"),
    )
    return jsonify({"attendance": [a.to_dict() for a in rows], "summary": summary})


@hr_bp.post("/attendance")
@require_auth
@require_min_role("MANAGER")
def mark_attendance_route():
    """
    Request body:
    {
        "employeeId": 1,
        "date": "YYYY-MM-DD",
        "status": "PRESENT",
        "checkIn": "09:00",   // optional
        "checkOut": "18:30",  // optional
        "notes": "..."        // optional
    }

    workingHours and overtime (beyond 8 hours) are derived from the check times.
    """
    payload = json_object_body()
    patch = validate_payload(model=Attendance, payload=payload, policy=ATTENDANCE_POLICY, partial=False)
    attendance = hr_service.mark_attendance(patch=patch)
    return jsonify({"message": "Attendance marked successfully", "attendance": attendance.to_dict()}), 201


@hr_bp.get("/payroll")
@require_auth
@require_min_role("MANAGER")
def list_payroll_route():
    rows, summary = hr_service.list_payroll(
        month=parse_int_arg(request.args.get("month"), "month"),
        year=parse_int_arg(request.args.get("year"), "year"),
        employee_id=parse_int_arg(request.args.get("employeeId"), "employeeId"),
    )
    return jsonify({"payroll": [p.to_dict() for p in rows], "summary": summary})


@hr_bp.post("/payroll")
@require_auth
@require_min_role("MANAGER")
def process_payroll_route():
    """net = basicSalary + allowances + overtime - deductions."""
    payload = json_object_body()
    patch = validate_payload(model=Payroll, payload=payload, policy=PAYROLL_POLICY, partial=False)
    if not 1 <= patch["month"] <= 12:
        raise ValidationError("month must be between 1 and 12", details=[{"field": "month", "message": "must be 1-12"}])
    if patch["year"] < 2000:
        raise ValidationError("year must be 2000 or later", details=[{"field": "year", "message": "must be >= 2000"}])
    payroll = hr_service.process_payroll(patch=patch)
    return jsonify({"message": "Payroll processed successfully", "payroll": payroll.to_dict()}), 201


@hr_bp.get("/training")
@require_auth
@require_min_role("MANAGER")
def list_training_route():
    """Query params: status (UPCOMING, ONGOING, COMPLETED, CANCELLED)."""
    status = request.args.get("status")
    if status and status.strip().upper() not in TRAINING_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(TRAINING_STATUSES)}")
    programs = hr_service.list_training_programs(status=status)
    return jsonify({"programs": [p.to_dict() for p in programs]})


@hr_bp.post("/training")
@require_auth
@require_min_role("MANAGER")
def create_training_route():
    """
    Request body:
    {
        "title": "Food Safety Basics",
        "instructor": "...",
        "startDate": "YYYY-MM-DD",
        "endDate": "YYYY-MM-DD",
        "duration": 6,            // hours
        "maxParticipants": 20,
        "location": "...",
        "cost": 1500.00,          // optional
        "description": "..."      // optional
    }
    """
    payload = json_object_body()
    patch = validate_payload(model=TrainingProgram, payload=payload, policy=TRAINING_POLICY, partial=False)
    program = hr_service.create_training_program(patch=patch)
    return jsonify({"message": "Training program created successfully", "program": program.to_dict()}), 201


@hr_bp.post("/training/<int:program_id>/enrollments")
@require_auth
@require_min_role("MANAGER")
def enroll_training_route(program_id: int):
    """Request body: {"employeeId": 1}"""
    data = json_object_body()
    if data.get("employeeId") is None:
        raise ValidationError("employeeId is required", details=[{"field": "employeeId", "message": "employeeId is required"}])
    try:
        employee_id = coerce_int(data["employeeId"], "employeeId")
    except ValidationError as exc:
        raise ValidationError(exc.message, details=[{"field": "employeeId", "message": exc.message}])
    enrollment = hr_service.enroll_employee(program_id, employee_id=employee_id)
    return jsonify({
        "message": "Employee enrolled successfully",
        "enrollment": enrollment.to_dict(),
        "program": hr_service.get_training_program(program_id).to_dict(),
    }), 201
