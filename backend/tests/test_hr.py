"""
HR tests: employees, attendance, payroll and training.
"""

import pytest

from rotierp.errors import ValidationError
from rotierp.extensions import db
from rotierp.models import Attendance, Employee, Payroll, TrainingEnrollment, TrainingProgram
from rotierp.services.hr_service import compute_working_hours


def _employee_payload(**overrides):
    payload = {
        "firstName": "Sunita",
        "lastName": "Rao",
        "email": "Sunita.Rao@RotiFactory.com",
        "phone": "9000000001",
        "position": "Baker",
        "department": "Production",
        "salary": 18000,
        "joinDate": "2023-06-01",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def employee(client, manager_headers):
    resp = client.post("/api/hr/employees", json=_employee_payload(), headers=manager_headers)
    assert resp.status_code == 201
    return resp.get_json()["employee"]


class TestWorkingHours:

    def test_regular_day(self):
        assert compute_working_hours("09:00", "17:00") == (8.0, None)

    def test_overtime(self):
        assert compute_working_hours("08:30", "19:15") == (10.75, 2.75)

    def test_missing_time(self):
        assert compute_working_hours("09:00", None) == (None, None)

    @pytest.mark.parametrize("check_in,check_out", [("9am", "17:00"), ("09:00", "24:00"), ("18:00", "09:00")])
    def test_invalid(self, check_in, check_out):
        with pytest.raises(ValidationError):
            compute_working_hours(check_in, check_out)


class TestEmployees:

    def test_create_assigns_code(self, client, manager_headers, employee):
        assert employee["employeeId"] == "EMP001"
        assert employee["email"] == "sunita.rao@rotifactory.com"
        assert employee["salary"] == 18000.0
        assert employee["status"] == "ACTIVE"

        second = client.post(
            "/api/hr/employees", json=_employee_payload(email="arun@rotifactory.com"), headers=manager_headers,
        )
        assert second.get_json()["employee"]["employeeId"] == "EMP002"

    def test_duplicate_email(self, client, manager_headers, employee):
        resp = client.post("/api/hr/employees", json=_employee_payload(), headers=manager_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Duplicate email"

    def test_required_fields(self, client, manager_headers):
        resp = client.post("/api/hr/employees", json={"firstName": "A"}, headers=manager_headers)
        assert resp.status_code == 400
        fields = {d["field"] for d in resp.get_json()["details"]}
        assert {"lastName", "email", "phone", "position", "department", "salary", "joinDate"} <= fields

    def test_list_with_stats(self, client, manager_headers, employee):
        client.post(
            "/api/hr/employees",
            json=_employee_payload(email="arun@rotifactory.com", department="Sales"),
            headers=manager_headers,
        )
        client.put(f"/api/hr/employees/{employee['id']}", json={"status": "on_leave"}, headers=manager_headers)

        body = client.get("/api/hr/employees?department=Sales", headers=manager_headers).get_json()
        assert body["pagination"]["total"] == 1
        assert body["stats"] == {"total": 2, "active": 1, "onLeave": 1, "departments": 2}

    def test_update_rejects_unknown_status(self, client, manager_headers, employee):
        resp = client.put(f"/api/hr/employees/{employee['id']}", json={"status": "FIRED"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_update_missing_employee(self, client, manager_headers):
        resp = client.put("/api/hr/employees/41", json={"position": "Driver"}, headers=manager_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Employee not found"


class TestAttendance:

    def test_mark_with_overtime(self, client, manager_headers, employee):
        resp = client.post(
            "/api/hr/attendance",
            json={"employeeId": employee["id"], "date": "2024-05-02", "checkIn": "08:00", "checkOut": "18:30",
                  "status": "present"},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        attendance = resp.get_json()["attendance"]
        assert attendance["status"] == "PRESENT"
        assert attendance["workingHours"] == 10.5
        assert attendance["overtime"] == 2.5
        assert attendance["employee"]["employeeId"] == "EMP001"

    def test_duplicate_day(self, client, manager_headers, employee):
        payload = {"employeeId": employee["id"], "date": "2024-05-02", "status": "ABSENT"}
        client.post("/api/hr/attendance", json=payload, headers=manager_headers)
        resp = client.post("/api/hr/attendance", json=payload, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Duplicate attendance"
        assert db.session.query(Attendance).count() == 1

    def test_check_out_before_check_in(self, client, manager_headers, employee):
        resp = client.post(
            "/api/hr/attendance",
            json={"employeeId": employee["id"], "date": "2024-05-02", "checkIn": "18:00", "checkOut": "09:00",
                  "status": "PRESENT"},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["field"] == "checkOut"

    def test_unknown_employee(self, client, manager_headers):
        resp = client.post(
            "/api/hr/attendance", json={"employeeId": 99, "date": "2024-05-02", "status": "PRESENT"},
            headers=manager_headers,
        )
        assert resp.status_code == 404

    def test_list_summary(self, client, manager_headers, employee):
        for day, status, check_in, check_out in (
            ("2024-05-01", "PRESENT", "09:00", "19:00"),
            ("2024-05-02", "LATE", "10:00", "17:00"),
            ("2024-05-03", "LEAVE", None, None),
        ):
            client.post(
                "/api/hr/attendance",
                json={"employeeId": employee["id"], "date": day, "status": status,
                      "checkIn": check_in, "checkOut": check_out},
                headers=manager_headers,
            )

        body = client.get(
            "/api/hr/attendance?startDate=2024-05-01&endDate=2024-05-02", headers=manager_headers,
        ).get_json()
        assert [a["date"] for a in body["attendance"]] == ["2024-05-02", "2024-05-01"]
        assert body["summary"]["present"] == 1
        assert body["summary"]["late"] == 1
        assert body["summary"]["totalWorkingHours"] == 17.0
        assert body["summary"]["totalOvertimeHours"] == 2.0

        body = client.get("/api/hr/attendance?date=2024-05-03", headers=manager_headers).get_json()
        assert body["summary"]["leave"] == 1


class TestPayroll:

    def _process(self, client, headers, employee_id, **overrides):
        payload = {
            "employeeId": employee_id,
            "month": 4,
            "year": 2024,
            "basicSalary": 18000,
            "allowances": 1500.50,
            "overtime": 600,
            "deductions": 200.25,
        }
        payload.update(overrides)
        return client.post("/api/hr/payroll", json=payload, headers=headers)

    def test_net_salary(self, client, manager_headers, employee):
        resp = self._process(client, manager_headers, employee["id"])
        assert resp.status_code == 201
        payroll = resp.get_json()["payroll"]
        assert payroll["netSalary"] == 19900.25
        assert payroll["status"] == "PROCESSED"

    def test_optional_components_default_to_zero(self, client, manager_headers, employee):
        resp = client.post(
            "/api/hr/payroll",
            json={"employeeId": employee["id"], "month": 5, "year": 2024, "basicSalary": 18000},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        payroll = resp.get_json()["payroll"]
        assert payroll["allowances"] == 0
        assert payroll["netSalary"] == 18000.0

    def test_duplicate_period(self, client, manager_headers, employee):
        self._process(client, manager_headers, employee["id"])
        resp = self._process(client, manager_headers, employee["id"])
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Duplicate payroll"
        assert db.session.query(Payroll).count() == 1

    @pytest.mark.parametrize("overrides,field", [({"month": 13}, "month"), ({"year": 1999}, "year")])
    def test_period_bounds(self, client, manager_headers, employee, overrides, field):
        resp = self._process(client, manager_headers, employee["id"], **overrides)
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["field"] == field

    def test_deductions_cannot_exceed_gross(self, client, manager_headers, employee):
        resp = self._process(client, manager_headers, employee["id"], deductions=50000)
        assert resp.status_code == 400

    def test_list_summary(self, client, manager_headers, employee):
        self._process(client, manager_headers, employee["id"])
        self._process(client, manager_headers, employee["id"], month=5)
        body = client.get("/api/hr/payroll?year=2024", headers=manager_headers).get_json()
        assert [p["month"] for p in body["payroll"]] == [5, 4]
        assert body["summary"]["processed"] == 2
        assert body["summary"]["totalPayroll"] == 39800.5

        body = client.get("/api/hr/payroll?month=4", headers=manager_headers).get_json()
        assert len(body["payroll"]) == 1


class TestTraining:

    def _payload(self, **overrides):
        payload = {
            "title": "Food Safety Basics",
            "instructor": "Meera Iyer",
            "startDate": "2024-07-01",
            "endDate": "2024-07-02",
            "duration": 12,
            "maxParticipants": 2,
            "location": "Factory Hall",
            "cost": "1500.00",
        }
        payload.update(overrides)
        return payload

    @pytest.fixture
    def program(self, client, manager_headers):
        resp = client.post("/api/hr/training", json=self._payload(), headers=manager_headers)
        assert resp.status_code == 201
        return resp.get_json()["program"]

    def test_create_program(self, program):
        assert program["status"] == "UPCOMING"
        assert program["cost"] == 1500.0
        assert program["duration"] == 12
        assert program["enrolledCount"] == 0

    def test_required_fields(self, client, manager_headers):
        resp = client.post("/api/hr/training", json={"title": "Only a title"}, headers=manager_headers)
        assert resp.status_code == 400
        fields = {d["field"] for d in resp.get_json()["details"]}
        assert {"instructor", "startDate", "endDate", "duration", "maxParticipants", "location"} <= fields

    @pytest.mark.parametrize("overrides,field", [
        ({"endDate": "2024-06-30"}, "endDate"),
        ({"duration": 0}, "duration"),
        ({"maxParticipants": 0}, "maxParticipants"),
        ({"cost": -5}, "cost"),
    ])
    def test_invalid_program(self, client, manager_headers, overrides, field):
        resp = client.post("/api/hr/training", json=self._payload(**overrides), headers=manager_headers)
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["field"] == field
        assert db.session.query(TrainingProgram).count() == 0

    def test_list_newest_start_first(self, client, manager_headers, program):
        client.post("/api/hr/training", json=self._payload(title="Oven Handling", startDate="2024-08-01",
                                                           endDate="2024-08-01"), headers=manager_headers)
        body = client.get("/api/hr/training", headers=manager_headers).get_json()
        assert [p["title"] for p in body["programs"]] == ["Oven Handling", "Food Safety Basics"]

        body = client.get("/api/hr/training?status=completed", headers=manager_headers).get_json()
        assert body["programs"] == []
        assert client.get("/api/hr/training?status=LOST", headers=manager_headers).status_code == 400

    def test_enrollment_until_full(self, client, manager_headers, program, employee):
        url = f"/api/hr/training/{program['id']}/enrollments"
        resp = client.post(url, json={"employeeId": employee["id"]}, headers=manager_headers)
        assert resp.status_code == 201
        assert resp.get_json()["program"]["enrolledCount"] == 1

        resp = client.post(url, json={"employeeId": employee["id"]}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Duplicate enrollment"

        others = []
        for idx in (2, 3):
            created = client.post(
                "/api/hr/employees",
                json=_employee_payload(email=f"staff{idx}@rotifactory.com", phone=f"900000000{idx}"),
                headers=manager_headers,
            )
            others.append(created.get_json()["employee"]["id"])

        assert client.post(url, json={"employeeId": others[0]}, headers=manager_headers).status_code == 201
        resp = client.post(url, json={"employeeId": others[1]}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Program full"
        assert db.session.query(TrainingEnrollment).count() == 2

        listed = client.get("/api/hr/training", headers=manager_headers).get_json()["programs"][0]
        assert {e["employeeId"] for e in listed["enrollments"]} == {employee["id"], others[0]}

    def test_inactive_employee_not_enrolled(self, client, manager_headers, program, employee):
        db.session.get(Employee, employee["id"]).status = "INACTIVE"
        db.session.commit()
        resp = client.post(
            f"/api/hr/training/{program['id']}/enrollments", json={"employeeId": employee["id"]}, headers=manager_headers,
        )
        assert resp.status_code == 400
        assert db.session.query(TrainingEnrollment).count() == 0

    def test_enroll_missing_program_or_employee(self, client, manager_headers, program):
        resp = client.post("/api/hr/training/999/enrollments", json={"employeeId": 1}, headers=manager_headers)
        assert resp.status_code == 404
        resp = client.post(
            f"/api/hr/training/{program['id']}/enrollments", json={"employeeId": 999}, headers=manager_headers,
        )
        assert resp.status_code == 404
        resp = client.post(f"/api/hr/training/{program['id']}/enrollments", json={}, headers=manager_headers)
        assert resp.status_code == 400

    def test_operator_forbidden(self, client, operator_headers):
        assert client.get("/api/hr/training", headers=operator_headers).status_code == 403
