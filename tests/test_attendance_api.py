"""Attendance batch upsert, listing and summaries."""
import uuid
from datetime import date

import pytest

from erp.models.hr import Employee
from erp.services.attendance_service import AttendanceError, AttendanceService, resolve_range


async def save(client, records):
    return await client.post("/api/v1/attendance", json={"records": records})


@pytest.fixture
async def staff(create_employee):
    ravi = await create_employee()
    meena = await create_employee(full_name="Meena Iyer", role_title="Accountant")
    return ravi, meena


class TestResolveRange:
    def test_month_wins_over_dates(self):
        assert resolve_range("2025-02", "2025-01-01", "2025-01-10") == (date(2025, 2, 1), date(2025, 2, 28))

    def test_explicit_dates(self):
        assert resolve_range(None, "2025-01-05", "2025-01-10") == (date(2025, 1, 5), date(2025, 1, 10))

    def test_defaults_to_current_month(self):
        assert resolve_range(today=date(2025, 6, 14)) == (date(2025, 6, 1), date(2025, 6, 30))

    def test_half_range_is_rejected(self):
        with pytest.raises(AttendanceError):
            resolve_range(None, "2025-01-05", None)

    def test_reversed_range_is_rejected(self):
        with pytest.raises(AttendanceError):
            resolve_range(None, "2025-01-10", "2025-01-05")


class TestBatchSave:
    async def test_same_employee_and_date_is_updated(self, client, staff):
        ravi, _ = staff
        first = await save(client, [{"employeeId": ravi["id"], "date": "2025-11-03", "status": "present"}])
        assert first.status_code == 201

        second = await save(client, [{
            "employeeId": ravi["id"], "date": "2025-11-03", "status": "Absent", "notes": "Sick",
        }])

        assert second.status_code == 201
        record = second.json()["data"]["records"][0]
        assert record["id"] == first.json()["data"]["records"][0]["id"]
        assert record["status"] == "absent"
        assert record["date"] == "2025-11-03"
        assert record["employeeName"] == "Ravi Kumar"

        rows = (await client.get("/api/v1/attendance", params={"date": "2025-11-03"})).json()["data"]
        assert len(rows) == 1

    async def test_bad_records_do_not_block_the_rest(self, client, staff):
        ravi, meena = staff

        response = await save(client, [
            {"employeeId": ravi["id"], "date": "2025-11-03", "status": "present", "checkIn": "09:15"},
            {"employeeId": meena["id"], "date": "2025-11-03", "status": "holiday"},
            {"employeeId": str(uuid.uuid4()), "date": "2025-11-03", "status": "present"},
            {"employeeId": meena["id"], "date": "2025-11-03", "status": "leave", "checkIn": "25:00"},
        ])

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Attendance saved with 3 error(s)"
        assert len(body["data"]["records"]) == 1
        assert body["data"]["records"][0]["checkIn"] == "09:15"
        errors = body["data"]["errors"]
        assert [e["index"] for e in errors] == [1, 2, 3]
        assert errors[1]["message"] == "Employee not found"

    async def test_empty_batch_is_rejected(self, client):
        response = await save(client, [])

        assert response.status_code == 400
        assert response.json()["message"] == "At least one attendance record is required"

    async def test_filter_by_employee(self, client, staff):
        ravi, meena = staff
        await save(client, [
            {"employeeId": ravi["id"], "date": "2025-11-03", "status": "present"},
            {"employeeId": meena["id"], "date": "2025-11-03", "status": "present"},
            {"employeeId": ravi["id"], "date": "2025-11-04", "status": "present"},
        ])

        rows = (await client.get("/api/v1/attendance", params={"employeeId": ravi["id"]})).json()["data"]

        assert [r["date"] for r in rows] == ["2025-11-04", "2025-11-03"]

    async def test_update_record(self, client, staff):
        ravi, _ = staff
        saved = (await save(client, [
            {"employeeId": ravi["id"], "date": "2025-11-03", "status": "present"},
        ])).json()["data"]["records"][0]

        response = await client.patch(
            f"/api/v1/attendance/{saved['id']}", json={"status": "leave", "checkOut": "17:30"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "leave"
        assert response.json()["data"]["checkOut"] == "17:30"

    async def test_update_unknown_record(self, client):
        response = await client.patch(f"/api/v1/attendance/{uuid.uuid4()}", json={"status": "leave"})
        assert response.status_code == 404


class TestSummaries:
    @pytest.fixture
    async def november(self, client, staff):
        ravi, meena = staff
        await save(client, [
            {"employeeId": ravi["id"], "date": "2025-11-03", "status": "present"},
            {"employeeId": ravi["id"], "date": "2025-11-04", "status": "absent"},
            {"employeeId": ravi["id"], "date": "2025-11-05", "status": "leave"},
            {"employeeId": meena["id"], "date": "2025-11-03", "status": "present"},
            {"employeeId": meena["id"], "date": "2025-12-01", "status": "present"},
        ])
        return ravi, meena

    async def test_employee_summary_for_month(self, client, november):
        ravi, meena = november

        data = (await client.get(
            "/api/v1/attendance/summary/employees", params={"month": "2025-11"}
        )).json()["data"]

        assert data["range"] == {"start": "2025-11-01", "end": "2025-11-30"}
        by_id = {row["employeeMongoId"]: row for row in data["totals"]}
        assert by_id[ravi["id"]]["employeeId"] == ravi["employee_code"]
        assert by_id[ravi["id"]]["fullName"] == "Ravi Kumar"
        assert by_id[meena["id"]]["roleTitle"] == "Accountant"
        assert by_id[ravi["id"]]["present"] == 1
        assert by_id[ravi["id"]]["absent"] == 1
        assert by_id[ravi["id"]]["leave"] == 1
        assert by_id[meena["id"]]["total"] == 1
        for row in data["totals"]:
            assert row["total"] == row["present"] + row["absent"] + row["leave"]

    async def test_employee_summary_for_range(self, client, november):
        ravi, _ = november

        data = (await client.get(
            "/api/v1/attendance/summary/employees",
            params={"startDate": "2025-11-04", "endDate": "2025-11-04"},
        )).json()["data"]

        assert [row["employeeMongoId"] for row in data["totals"]] == [ravi["id"]]

    async def test_employee_summary_rejects_bad_month(self, client):
        response = await client.get("/api/v1/attendance/summary/employees", params={"month": "2025-13"})
        assert response.status_code == 400

    async def test_monthly_summary_is_zero_filled(self, client, november):
        data = (await client.get(
            "/api/v1/attendance/summary/monthly", params={"year": 2025}
        )).json()["data"]

        assert data["year"] == 2025
        assert [m["month"] for m in data["months"]] == list(range(1, 13))
        assert data["months"][0] == {"month": 1, "present": 0, "absent": 0, "leave": 0, "total": 0}
        assert data["months"][10]["total"] == 4
        assert data["months"][11]["present"] == 1

    async def test_monthly_summary_for_one_employee(self, client, november):
        _, meena = november

        data = (await client.get(
            "/api/v1/attendance/summary/monthly", params={"year": 2025, "employeeId": meena["id"]}
        )).json()["data"]

        assert data["employeeId"] == meena["id"]
        assert data["months"][10]["present"] == 1
        assert sum(m["total"] for m in data["months"]) == 2


class TestConflictingSaves:
    """A row inserted by another save between lookup and insert is overwritten."""

    @pytest.fixture
    async def service_staff(self, db):
        org_id = uuid.uuid4()
        ravi = Employee(
            organization_id=org_id, employee_code="EMP-0001", full_name="Ravi Kumar",
            role_title="Cashier", joining_date=date(2024, 4, 1),
        )
        meena = Employee(
            organization_id=org_id, employee_code="EMP-0002", full_name="Meena Iyer",
            role_title="Accountant", joining_date=date(2024, 4, 1),
        )
        db.add_all([ravi, meena])
        await db.commit()
        return AttendanceService(db, org_id), ravi, meena

    async def test_last_write_wins_and_batch_continues(self, db, service_staff, monkeypatch):
        service, ravi, meena = service_staff
        await service.save_batch([{"employeeId": str(ravi.id), "date": "2025-11-01", "status": "present"}])
        await db.commit()

        # The first lookup misses the stored row, as if it had not been committed yet
        find_record = service._find_record
        lookups = []

        async def stale_find(employee_id, day):
            lookups.append(employee_id)
            if len(lookups) == 1:
                return None
            return await find_record(employee_id, day)

        monkeypatch.setattr(service, "_find_record", stale_find)

        result = await service.save_batch([
            {"employeeId": str(ravi.id), "date": "2025-11-01", "status": "absent"},
            {"employeeId": str(meena.id), "date": "2025-11-02", "status": "present"},
        ])
        await db.commit()

        assert result["errors"] == []
        assert len(result["records"]) == 2
        rows = await service.list_attendance()
        assert sorted((e.full_name, a.attendance_date.isoformat(), a.status) for a, e in rows) == [
            ("Meena Iyer", "2025-11-02", "present"),
            ("Ravi Kumar", "2025-11-01", "absent"),
        ]
