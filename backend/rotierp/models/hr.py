from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from ..time_utils import to_iso_date, to_utc_z, utcnow

EMPLOYEE_STATUSES = ("ACTIVE", "INACTIVE", "ON_LEAVE")
ATTENDANCE_STATUSES = ("PRESENT", "ABSENT", "LATE", "HALF_DAY", "LEAVE")
PAYROLL_STATUSES = ("PENDING", "PROCESSED", "PAID")
TRAINING_STATUSES = ("UPCOMING", "ONGOING", "COMPLETED", "CANCELLED")


class Employee(db.Model):
    __tablename__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("employee_code", name="uq_employees_code"),
        db.UniqueConstraint("email", name="uq_employees_email"),
        db.Index("ix_employees_department_status", "department", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Human-readable identifier (e.g., "EMP001")
    employee_code = db.Column(db.String(16), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    position = db.Column(db.String(100), nullable=False)
    department = db.Column(db.String(100), nullable=False)
    salary_cents = db.Column(db.Integer, nullable=False, default=0)
    join_date = db.Column(db.Date, nullable=False)
    address = db.Column(db.Text, nullable=True)
    emergency_contact = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "employeeId": self.employee_code,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "department": self.department,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employeeId": self.employee_code,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "position": self.position,
            "department": self.department,
            "salary": cents_to_amount(self.salary_cents),
            "joinDate": to_iso_date(self.join_date),
            "address": self.address,
            "emergencyContact": self.emergency_contact,
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Attendance(db.Model):
    """One attendance mark per employee per day; check times are "HH:MM"."""
    __tablename__ = "attendance"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    check_in = db.Column(db.String(5), nullable=True)
    check_out = db.Column(db.String(5), nullable=True)
    status = db.Column(db.String(16), nullable=False)
    working_hours = db.Column(db.Float, nullable=True)
    overtime_hours = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    employee = db.relationship("Employee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "employee": self.employee.to_summary() if self.employee else None,
            "date": to_iso_date(self.date),
            "checkIn": self.check_in,
            "checkOut": self.check_out,
            "status": self.status,
            "workingHours": self.working_hours,
            "overtime": self.overtime_hours,
            "notes": self.notes,
        }


class Payroll(db.Model):
    """
    Monthly payroll run for one employee.

    net_salary_cents = basic + allowances + overtime - deductions
    """
    __tablename__ = "payroll"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", "year", name="uq_payroll_employee_period"),
        db.CheckConstraint("month >= 1 AND month <= 12", name="ck_payroll_month"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    basic_salary_cents = db.Column(db.Integer, nullable=False)
    allowances_cents = db.Column(db.Integer, nullable=False, default=0)
    overtime_cents = db.Column(db.Integer, nullable=False, default=0)
    deductions_cents = db.Column(db.Integer, nullable=False, default=0)
    net_salary_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PROCESSED")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    employee = db.relationship("Employee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "employee": self.employee.to_summary() if self.employee else None,
            "month": self.month,
            "year": self.year,
            "basicSalary": cents_to_amount(self.basic_salary_cents),
            "allowances": cents_to_amount(self.allowances_cents),
            "overtime": cents_to_amount(self.overtime_cents),
            "deductions": cents_to_amount(self.deductions_cents),
            "netSalary": cents_to_amount(self.net_salary_cents),
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
        }


class TrainingProgram(db.Model):
    """Scheduled training course; duration is in hours."""
    __tablename__ = "training_programs"
    __table_args__ = (
        db.CheckConstraint("end_date >= start_date", name="ck_training_programs_dates"),
        db.CheckConstraint("max_participants >= 1", name="ck_training_programs_max_participants"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    instructor = db.Column(db.String(128), nullable=False)
    start_date = db.Column(db.Date, nullable=False, index=True)
    end_date = db.Column(db.Date, nullable=False)
    duration_hours = db.Column(db.Integer, nullable=False)
    max_participants = db.Column(db.Integer, nullable=False)
    location = db.Column(db.String(200), nullable=False)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="UPCOMING")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    enrollments = db.relationship(
        "TrainingEnrollment",
        back_populates="program",
        cascade="all, delete-orphan",
        order_by="TrainingEnrollment.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "instructor": self.instructor,
            "startDate": to_iso_date(self.start_date),
            "endDate": to_iso_date(self.end_date),
            "duration": self.duration_hours,
            "maxParticipants": self.max_participants,
            "location": self.location,
            "cost": cents_to_amount(self.cost_cents),
            "status": self.status,
            "enrolledCount": len(self.enrollments),
            "enrollments": [e.to_dict() for e in self.enrollments],
            "createdAt": to_utc_z(self.created_at),
        }


class TrainingEnrollment(db.Model):
    __tablename__ = "training_enrollments"
    __table_args__ = (
        db.UniqueConstraint("program_id", "employee_id", name="uq_training_enrollments_program_employee"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    program_id = db.Column(db.Integer, db.ForeignKey("training_programs.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    enrolled_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    program = db.relationship("TrainingProgram", back_populates="enrollments")
    employee = db.relationship("Employee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "employee": self.employee.to_summary() if self.employee else None,
            "enrolledAt": to_utc_z(self.enrolled_at),
        }
