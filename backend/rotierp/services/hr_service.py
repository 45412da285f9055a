# Overview: Service-layer operations for HR; employees, attendance, payroll and training.

from __future__ import annotations

import re
from datetime import date

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Attendance, Employee, Payroll, TrainingEnrollment, TrainingProgram
from ..money import cents_to_amount
from .concurrency import run_with_retry
from .document_service import next_document_number

STANDARD_WORKING_HOURS = 8.0

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


# =============================================================================
# Employees
# =============================================================================


def list_employees_query(*, department: str | None = None, status: str | None = None):
    query = db.session.query(Employee)
    if department:
        query = query.filter(Employee.department == department)
    if status:
        query = query.filter(Employee.status == status.strip().upper())
    return query.order_by(Employee.created_at.desc(), Employee.id.desc())


def employee_stats() -> dict:
    """Headcount over all employees, independent of list filters."""
    by_status = dict(
        db.session.query(Employee.status, func.count(Employee.id)).group_by(Employee.status).all()
    )
    departments = db.session.query(func.count(func.distinct(Employee.department))).scalar() or 0
    return {
        "total": sum(by_status.values()),
        "active": by_status.get("ACTIVE", 0),
        "onLeave": by_status.get("ON_LEAVE", 0),
        "departments": departments,
    }


def get_employee(employee_id: int) -> Employee:
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee")
    return employee


def create_employee(*, patch: dict) -> Employee:
    """Create an employee with the next EMPnnn code; duplicate email is a conflict."""
    if db.session.query(Employee.id).filter_by(email=patch["email"]).first():
        raise ConflictError("Employee with this email already exists", error="Duplicate email")

    def _op() -> int:
        code = next_document_number(document_type="EMPLOYEE", prefix="EMP", pad=3, separator="")
        employee = Employee(employee_code=code, status="ACTIVE", **patch)
        db.session.add(employee)
        db.session.commit()
        return employee.id

    try:
        employee_id = run_with_retry(_op, retry_on=(IntegrityError,))
    except IntegrityError:
        raise ConflictError("Employee with this email already exists", error="Duplicate email")
    return db.session.get(Employee, employee_id)


def update_employee(employee_id: int, *, patch: dict) -> Employee:
    employee = get_employee(employee_id)
    for key, value in patch.items():
        setattr(employee, key, value)
    db.session.commit()
    return employee


# =============================================================================
# Attendance
# =============================================================================


def _clock_minutes(value: str, field: str) -> int:
    match = _CLOCK_RE.match(value or "")
    if not match:
        raise ValidationError(
            f"{field} must be HH:MM",
            details=[{"field": field, "message": "must be a 24-hour HH:MM time"}],
        )
    return int(match.group(1)) * 60 + int(match.group(2))


def compute_working_hours(check_in: str | None, check_out: str | None) -> tuple[float | None, float | None]:
    """
    Hours between check-in and check-out, and the overtime beyond a standard
    8-hour day. Both are None unless both times are given.
    """
    if not check_in or not check_out:
        return None, None
    start = _clock_minutes(check_in, "checkIn")
    end = _clock_minutes(check_out, "checkOut")
    if end < start:
        raise ValidationError(
            "checkOut must not be before checkIn",
            details=[{"field": "checkOut", "message": "must not be before checkIn"}],
        )
    hours = round((end - start) / 60, 2)
    overtime = round(hours - STANDARD_WORKING_HOURS, 2) if hours > STANDARD_WORKING_HOURS else None
    return hours, overtime


def list_attendance(*, on_date: date | None = None, employee_id: int | None = None,
                    start: date | None = None, end: date | None = None) -> tuple[list[Attendance], dict]:
    query = db.session.query(Attendance).options(joinedload(Attendance.employee))
    if on_date is not None:
        query = query.filter(Attendance.date == on_date)
    if employee_id is not None:
        query = query.filter(Attendance.employee_id == employee_id)
    if start is not None:
        query = query.filter(Attendance.date >= start)
    if end is not None:
        query = query.filter(Attendance.date <= end)
    rows = query.order_by(Attendance.date.desc(), Attendance.id.desc()).all()

    def _count(status):
        return sum(1 for r in rows if r.status == status)

    summary = {
        "present": _count("PRESENT"),
        "absent": _count("ABSENT"),
        "late": _count("LATE"),
        "halfDay": _count("HALF_DAY"),
        "leave": _count("LEAVE"),
        "totalWorkingHours": round(sum(r.working_hours or 0 for r in rows), 2),
        "totalOvertimeHours": round(sum(r.overtime_hours or 0 for r in rows), 2),
    }
    return rows, summary


def mark_attendance(*, patch: dict) -> Attendance:
    get_employee(patch["employee_id"])
    working, overtime = compute_working_hours(patch.get("check_in"), patch.get("check_out"))

    exists = (
        db.session.query(Attendance.id)
        .filter_by(employee_id=patch["employee_id"], date=patch["date"])
        .first()
    )
    if exists:
        raise ConflictError("Attendance already marked for this date", error="Duplicate attendance")

    attendance = Attendance(working_hours=working, overtime_hours=overtime, **patch)
    db.session.add(attendance)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Attendance already marked for this date", error="Duplicate attendance")
    return attendance


# =============================================================================
# Payroll
# =============================================================================


def list_payroll(*, month: int | None = None, year: int | None = None,
                 employee_id: int | None = None) -> tuple[list[Payroll], dict]:
    query = db.session.query(Payroll).options(joinedload(Payroll.employee))
    if month is not None:
        query = query.filter(Payroll.month == month)
    if year is not None:
        query = query.filter(Payroll.year == year)
    if employee_id is not None:
        query = query.filter(Payroll.employee_id == employee_id)
    rows = query.order_by(Payroll.year.desc(), Payroll.month.desc(), Payroll.id.desc()).all()

    summary = {
        "totalPayroll": cents_to_amount(sum(r.net_salary_cents for r in rows)),
        "processed": sum(1 for r in rows if r.status == "PROCESSED"),
        "pending": sum(1 for r in rows if r.status == "PENDING"),
        "paid": sum(1 for r in rows if r.status == "PAID"),
    }
    return rows, summary


def process_payroll(*, patch: dict) -> Payroll:
    """net = basic + allowances + overtime - deductions, in cents."""
    get_employee(patch["employee_id"])

    for key in ("allowances_cents", "overtime_cents", "deductions_cents"):
        patch[key] = patch.get(key) or 0
    allowances, overtime, deductions = patch["allowances_cents"], patch["overtime_cents"], patch["deductions_cents"]
    net = patch["basic_salary_cents"] + allowances + overtime - deductions
    if net < 0:
        raise ValidationError(
            "Deductions cannot exceed gross salary",
            details=[{"field": "deductions", "message": "cannot exceed basic salary plus allowances and overtime"}],
        )

    exists = (
        db.session.query(Payroll.id)
        .filter_by(employee_id=patch["employee_id"], month=patch["month"], year=patch["year"])
        .first()
    )
    if exists:
        raise ConflictError("Payroll already processed for this period", error="Duplicate payroll")

    payroll = Payroll(net_salary_cents=net, status="PROCESSED", **patch)
    db.session.add(payroll)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Payroll already processed for this period", error="Duplicate payroll")
    return payroll


# =============================================================================
# Training
# =============================================================================

OPEN_TRAINING_STATUSES = ("UPCOMING", "ONGOING")


def list_training_programs(*, status: str | None = None) -> list[TrainingProgram]:
    query = db.session.query(TrainingProgram).options(
        joinedload(TrainingProgram.enrollments).joinedload(TrainingEnrollment.employee)
    )
    if status:
        query = query.filter(TrainingProgram.status == status.strip().upper())
    return query.order_by(TrainingProgram.start_date.desc(), TrainingProgram.id.desc()).all()


def get_training_program(program_id: int) -> TrainingProgram:
    program = db.session.get(TrainingProgram, program_id)
    if program is None:
        raise NotFoundError("Training program")
    return program


def create_training_program(*, patch: dict) -> TrainingProgram:
    """New programs start UPCOMING; the end date may not precede the start date."""
    if patch["end_date"] < patch["start_date"]:
        raise ValidationError(
            "endDate cannot be before startDate",
            details=[{"field": "endDate", "message": "must be on or after startDate"}],
        )
    for key, name in (("duration_hours", "duration"), ("max_participants", "maxParticipants")):
        if patch[key] < 1:
            raise ValidationError(f"{name} must be at least 1", details=[{"field": name, "message": "must be >= 1"}])

    program = TrainingProgram(status="UPCOMING", **patch)
    db.session.add(program)
    db.session.commit()
    return program


def enroll_employee(program_id: int, *, employee_id: int) -> TrainingEnrollment:
    """
    Enroll an active employee in an open program.

    Raises NotFoundError for a missing program or employee and ConflictError
    when the employee is already enrolled or the program is full.
    """
    program = get_training_program(program_id)
    employee = get_employee(employee_id)

    if program.status not in OPEN_TRAINING_STATUSES:
        raise ValidationError(f"Training program is {program.status.lower()}", error="Enrollment closed")
    if employee.status != "ACTIVE":
        raise ValidationError(
            "Only active employees can be enrolled",
            details=[{"field": "employeeId", "message": f"employee is {employee.status}"}],
        )

    enrolled = {e.employee_id for e in program.enrollments}
    if employee.id in enrolled:
        raise ConflictError("Employee is already enrolled in this program", error="Duplicate enrollment")
    if len(enrolled) >= program.max_participants:
        raise ConflictError(
            f"Training program is full ({program.max_participants} participants)",
            error="Program full",
        )

    enrollment = TrainingEnrollment(program_id=program.id, employee_id=employee.id)
    db.session.add(enrollment)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Employee is already enrolled in this program", error="Duplicate enrollment")
    return enrollment
